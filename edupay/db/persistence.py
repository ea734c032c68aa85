"""SQL persistence for the in-memory ledger. Each write is one transaction."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edupay.core.domain import (
    ActivityLog,
    FeeComponent,
    FeeStructure,
    PaymentRecord,
    Student,
    to_decimal,
)
from edupay.core.exceptions import PersistenceError
from edupay.core.models import (
    ActivityLogRow,
    FeeComponentRow,
    FeeStructureRow,
    PaymentRecordRow,
    StudentRow,
)
from edupay.core.store import LedgerPersistence, LedgerSnapshot


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


# --- Row -> domain ---
def _student_from_row(row: StudentRow) -> Student:
    return Student(
        id=row.id,
        roll_no=row.roll_no,
        name=row.name,
        class_name=row.class_name,
        academic_year=row.academic_year,
        parent_name=row.parent_name or "",
        contact=row.contact or "",
        gender=row.gender,
        previous_year_dues=to_decimal(row.previous_year_dues),
        discount=to_decimal(row.discount),
        total_paid=to_decimal(row.total_paid),
        status=row.status,
        version=row.version or 0,
    )


def _structure_from_row(row: FeeStructureRow) -> FeeStructure:
    return FeeStructure.build(
        row.class_name,
        row.academic_year,
        [FeeComponent(name=c.name, amount=to_decimal(c.amount)) for c in row.components],
        structure_id=row.id,
    )


def _payment_from_row(row: PaymentRecordRow) -> PaymentRecord:
    return PaymentRecord(
        id=row.id,
        student_id=row.student_id,
        amount=to_decimal(row.amount),
        date=_aware(row.paid_at),
        payment_type=row.payment_type,
        method=row.method,
        received_by=row.received_by,
        note=row.note,
    )


def _activity_from_row(row: ActivityLogRow) -> ActivityLog:
    return ActivityLog(
        id=row.id,
        user_id=row.user_id,
        user_name=row.user_name,
        action=row.action,
        details=row.details,
        timestamp=_aware(row.timestamp),
    )


def _activity_row(entry: ActivityLog) -> ActivityLogRow:
    return ActivityLogRow(
        id=entry.id,
        user_id=entry.user_id,
        user_name=entry.user_name,
        action=entry.action.value,
        details=entry.details,
        timestamp=entry.timestamp,
    )


# --- Domain -> row ---
async def _write_student(db: AsyncSession, student: Student) -> None:
    row = await db.get(StudentRow, student.id)
    if row is None:
        row = StudentRow(id=student.id)
        db.add(row)
    elif (row.version or 0) > student.version:
        # A newer state of this student is already stored (out-of-order retry)
        return
    row.roll_no = student.roll_no
    row.name = student.name
    row.class_name = student.class_name
    row.academic_year = student.academic_year
    row.parent_name = student.parent_name
    row.contact = student.contact
    row.gender = student.gender.value
    row.previous_year_dues = student.previous_year_dues
    row.discount = student.discount
    row.total_paid = student.total_paid
    row.status = student.status.value
    row.version = student.version


async def _write_activity(db: AsyncSession, entry: ActivityLog) -> None:
    if await db.get(ActivityLogRow, entry.id) is None:
        db.add(_activity_row(entry))


class SqlLedgerPersistence(LedgerPersistence):
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def load(self) -> LedgerSnapshot:
        async with self._session_factory() as db:
            students = (await db.execute(select(StudentRow).order_by(StudentRow.created_at))).scalars().all()
            structures = (
                await db.execute(select(FeeStructureRow).order_by(FeeStructureRow.academic_year, FeeStructureRow.class_name))
            ).scalars().all()
            payments = (
                await db.execute(select(PaymentRecordRow).order_by(PaymentRecordRow.paid_at, PaymentRecordRow.created_at))
            ).scalars().all()
            activity = (
                await db.execute(select(ActivityLogRow).order_by(ActivityLogRow.timestamp.desc()).limit(100))
            ).scalars().all()
            return LedgerSnapshot(
                students=[_student_from_row(r) for r in students],
                structures=[_structure_from_row(r) for r in structures],
                payments=[_payment_from_row(r) for r in payments],
                activity=[_activity_from_row(r) for r in activity],
            )

    async def _transaction(self, work) -> None:
        async with self._session_factory() as db:
            try:
                await work(db)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError(str(e)) from e

    async def save_payment(self, student: Student, payment: PaymentRecord, activity: ActivityLog) -> None:
        async def work(db: AsyncSession) -> None:
            await _write_student(db, student)
            if await db.get(PaymentRecordRow, payment.id) is None:
                db.add(
                    PaymentRecordRow(
                        id=payment.id,
                        student_id=payment.student_id,
                        amount=payment.amount,
                        paid_at=payment.date,
                        payment_type=payment.payment_type.value,
                        method=payment.method.value,
                        received_by=payment.received_by,
                        note=payment.note,
                    )
                )
            await _write_activity(db, activity)

        await self._transaction(work)

    async def save_students(self, students: List[Student], activity: ActivityLog) -> None:
        async def work(db: AsyncSession) -> None:
            for student in students:
                await _write_student(db, student)
            await _write_activity(db, activity)

        await self._transaction(work)

    async def save_structure(self, structure: FeeStructure, students: List[Student], activity: ActivityLog) -> None:
        async def work(db: AsyncSession) -> None:
            row = await db.get(FeeStructureRow, structure.id)
            if row is None:
                row = FeeStructureRow(id=structure.id, components=[])
                db.add(row)
            row.class_name = structure.class_name
            row.academic_year = structure.academic_year
            row.total = structure.total
            # Components are replaced as a whole list
            row.components = [
                FeeComponentRow(position=i, name=c.name, amount=c.amount)
                for i, c in enumerate(structure.components)
            ]
            for student in students:
                await _write_student(db, student)
            await _write_activity(db, activity)

        await self._transaction(work)

    async def delete_structure(self, structure_id: str, students: List[Student], activity: ActivityLog) -> None:
        async def work(db: AsyncSession) -> None:
            row = await db.get(FeeStructureRow, structure_id)
            if row is not None:
                await db.delete(row)
            for student in students:
                await _write_student(db, student)
            await _write_activity(db, activity)

        await self._transaction(work)

    async def save_activity(self, activity: ActivityLog) -> None:
        async def work(db: AsyncSession) -> None:
            await _write_activity(db, activity)

        await self._transaction(work)
