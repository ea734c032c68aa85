"""
Seed demo data: operator accounts, two Class 9/10 fee structures and three students.

Run once against an empty database:
  python -m edupay.db.seed

Opening balances are written as payment records so every student's total_paid
equals the sum of their payments.
"""
import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from edupay.auth.models import User
from edupay.auth.security import hash_password
from edupay.core.config import settings
from edupay.core.domain import (
    ActivityLog,
    FeeComponent,
    FeeStructure,
    PaymentRecord,
    Student,
    new_id,
)
from edupay.core.enums import ActivityAction, Gender, PaymentMethod, PaymentType, UserRole
from edupay.core.ledger import derive_status, compute_balance
from edupay.core.models import StudentRow
from edupay.db.persistence import SqlLedgerPersistence
from edupay.db.session import AsyncSessionLocal, Base, engine

logger = logging.getLogger(__name__)

SYSTEM_USER_ID = "system"
SYSTEM_USER_NAME = "System"

DEMO_USERS = [
    ("John Admin", "admin@school.com", "admin123", UserRole.ADMIN),
    ("Mike Staff", "staff@school.com", "staff123", UserRole.STAFF),
    ("Accounts Desk", "accounts@school.com", "staff123", UserRole.ACCOUNTS),
]

DEMO_SESSION = "2024-25"


def demo_structures():
    return [
        FeeStructure.build(
            "Class 10",
            DEMO_SESSION,
            [
                FeeComponent(name="Tuition Fee", amount=Decimal("15000")),
                FeeComponent(name="Lab Fee", amount=Decimal("5000")),
                FeeComponent(name="Library Fee", amount=Decimal("2000")),
                FeeComponent(name="Sports Fee", amount=Decimal("3000")),
            ],
            structure_id="s1",
        ),
        FeeStructure.build(
            "Class 9",
            DEMO_SESSION,
            [
                FeeComponent(name="Tuition Fee", amount=Decimal("12000")),
                FeeComponent(name="Lab Fee", amount=Decimal("4000")),
                FeeComponent(name="Library Fee", amount=Decimal("2000")),
                FeeComponent(name="Sports Fee", amount=Decimal("4000")),
            ],
            structure_id="s2",
        ),
    ]


def demo_students():
    """(student, opening amount already paid)."""
    return [
        (
            Student(
                id="st1", roll_no="1001", name="Alice Johnson", class_name="Class 10",
                academic_year=DEMO_SESSION, parent_name="Robert Johnson", contact="555-0101",
                gender=Gender.FEMALE, previous_year_dues=Decimal("2500"), discount=Decimal("500"),
            ),
            Decimal("10000"),
        ),
        (
            Student(
                id="st2", roll_no="1002", name="Bob Smith", class_name="Class 10",
                academic_year=DEMO_SESSION, parent_name="Linda Smith", contact="555-0102",
                gender=Gender.MALE,
            ),
            Decimal("25000"),
        ),
        (
            Student(
                id="st3", roll_no="9001", name="Charlie Brown", class_name="Class 9",
                academic_year=DEMO_SESSION, parent_name="Lucy Brown", contact="555-0103",
                gender=Gender.MALE, previous_year_dues=Decimal("1200"),
            ),
            Decimal("0"),
        ),
    ]


def _system_log(action: ActivityAction, details: str) -> ActivityLog:
    return ActivityLog(
        id=new_id("log"),
        user_id=SYSTEM_USER_ID,
        user_name=SYSTEM_USER_NAME,
        action=action,
        details=details,
        timestamp=datetime.now(timezone.utc),
    )


async def seed_users(session_factory: async_sessionmaker) -> None:
    async with session_factory() as db:
        for name, email, password, role in DEMO_USERS:
            existing = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
            if existing:
                continue
            db.add(User(name=name, email=email, password_hash=hash_password(password), role=role.value))
        await db.commit()


async def seed_demo_data(session_factory: async_sessionmaker) -> bool:
    """Seed users and the demo ledger when no students exist. Returns True if the ledger was seeded."""
    await seed_users(session_factory)
    async with session_factory() as db:
        count = (await db.execute(select(func.count()).select_from(StudentRow))).scalar() or 0
    if count:
        return False

    persistence = SqlLedgerPersistence(session_factory)
    structures = demo_structures()
    for st in structures:
        await persistence.save_structure(
            st, [], _system_log(ActivityAction.STRUCTURE_UPDATED, f"Seeded fee structure for {st.class_name}")
        )

    seeds = demo_students()
    students = []
    for student, _ in seeds:
        balance = compute_balance(student, structures)
        students.append(student.model_copy(update={"status": derive_status(Decimal("0"), balance.net_payable)}))
    await persistence.save_students(
        students, _system_log(ActivityAction.STUDENT_ADDED, f"Seeded {len(students)} demo students.")
    )

    for student, (_, opening) in zip(students, seeds):
        if opening <= 0:
            continue
        balance = compute_balance(student, structures)
        paid = student.model_copy(
            update={
                "total_paid": opening,
                "status": derive_status(opening, balance.net_payable),
                "version": student.version + 1,
            }
        )
        payment = PaymentRecord(
            id=new_id("pay"),
            student_id=student.id,
            amount=opening,
            date=datetime.now(timezone.utc),
            payment_type=PaymentType.PART,
            method=PaymentMethod.CASH,
            received_by=SYSTEM_USER_NAME,
            note="Opening balance",
        )
        await persistence.save_payment(
            paid, payment, _system_log(ActivityAction.PAYMENT_COLLECTED, f"Opening balance for {student.name}")
        )
    logger.info("Seeded demo ledger: %d structures, %d students", len(structures), len(students))
    return True


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    seeded = await seed_demo_data(AsyncSessionLocal)
    print("Seeded demo data." if seeded else "Ledger already has students; skipping seed.")
    await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    asyncio.run(main())
