"""
In-memory fee ledger: the working set of students, fee structures, payments and activity.

LedgerStore is created once per application and handed to services through a
dependency. Every change to a student's ledger runs inside that student's lock;
persistence is awaited only after the lock is released.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Union

from fastapi import status
from pydantic import BaseModel

from edupay.core.domain import (
    ActivityLog,
    Actor,
    FeeComponent,
    FeeStructure,
    PaymentRecord,
    Student,
    new_id,
)
from edupay.core.enums import ActivityAction, PaymentMethod, PaymentType, RejectionReason
from edupay.core.exceptions import PersistenceError, ServiceError, UnpersistedChangeError
from edupay.core.ledger import (
    BalanceSnapshot,
    Rejected,
    SessionScope,
    apply_payment,
    compute_balance,
    payments_for,
    recompute_status,
    scope_to_session,
    tag_session,
    validate_payment,
)

logger = logging.getLogger(__name__)

ACTIVITY_LOG_LIMIT = 100

# Fields an administrator may edit on an enrolled student
EDITABLE_STUDENT_FIELDS = {
    "roll_no",
    "name",
    "class_name",
    "parent_name",
    "contact",
    "gender",
    "previous_year_dues",
}
REQUIRED_STUDENT_FIELDS = ("roll_no", "name", "class_name")


class LedgerSnapshot(BaseModel):
    students: List[Student] = []
    structures: List[FeeStructure] = []
    payments: List[PaymentRecord] = []
    activity: List[ActivityLog] = []


class LedgerPersistence(ABC):
    """Durable storage behind the ledger. Implementations raise PersistenceError on failure."""

    @abstractmethod
    async def load(self) -> LedgerSnapshot: ...

    @abstractmethod
    async def save_payment(self, student: Student, payment: PaymentRecord, activity: ActivityLog) -> None: ...

    @abstractmethod
    async def save_students(self, students: List[Student], activity: ActivityLog) -> None: ...

    @abstractmethod
    async def save_structure(
        self, structure: FeeStructure, students: List[Student], activity: ActivityLog
    ) -> None: ...

    @abstractmethod
    async def delete_structure(
        self, structure_id: str, students: List[Student], activity: ActivityLog
    ) -> None: ...

    @abstractmethod
    async def save_activity(self, activity: ActivityLog) -> None: ...


# --- Outcomes ---
class PaymentMetadata(BaseModel):
    payment_type: PaymentType = PaymentType.MONTHLY
    method: PaymentMethod = PaymentMethod.CASH
    note: Optional[str] = None
    paid_at: Optional[datetime] = None


class PaymentPosted(BaseModel):
    student: Student
    payment: PaymentRecord
    balance: BalanceSnapshot


class PaymentRejected(BaseModel):
    student_id: str
    reason: RejectionReason
    balance_due: Decimal
    message: str


class PersistenceFailure(BaseModel):
    """The payment is applied in memory but was not durably written. Retry with these exact records."""

    student: Student
    payment: PaymentRecord
    error: str


PaymentOutcome = Union[PaymentPosted, PaymentRejected, PersistenceFailure]


def _rejected(student_id: str, decision: Rejected) -> PaymentRejected:
    return PaymentRejected(
        student_id=student_id,
        reason=decision.reason,
        balance_due=decision.balance_due,
        message=decision.message,
    )


class EnrollmentFailure(BaseModel):
    index: int
    roll_no: str
    name: str
    reason: str


class EnrollmentResult(BaseModel):
    accepted: List[Student]
    failed: List[EnrollmentFailure] = []


class PendingWrite:
    """A write that failed and is waiting to be retried."""

    def __init__(self, description: str, write: Callable[[], Awaitable[None]]) -> None:
        self.description = description
        self.write = write


Listener = Callable[[ActivityLog], None]


class LedgerStore:
    def __init__(self, persistence: LedgerPersistence) -> None:
        self._persistence = persistence
        self._students: Dict[str, Student] = {}
        self._structures: Dict[str, FeeStructure] = {}
        self._payments: List[PaymentRecord] = []
        # Newest first
        self._activity: List[ActivityLog] = []
        self._locks: Dict[str, asyncio.Lock] = {}
        self._catalog_lock = asyncio.Lock()
        self._listeners: Set[Listener] = set()
        self._pending: List[PendingWrite] = []

    async def hydrate(self) -> None:
        snapshot = await self._persistence.load()
        self._students = {s.id: s for s in snapshot.students}
        self._structures = {st.id: st for st in snapshot.structures}
        self._payments = list(snapshot.payments)
        self._activity = sorted(snapshot.activity, key=lambda a: a.timestamp, reverse=True)[
            :ACTIVITY_LOG_LIMIT
        ]
        logger.info(
            "Ledger loaded: %d students, %d structures, %d payments",
            len(self._students),
            len(self._structures),
            len(self._payments),
        )

    # --- Observers ---
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.add(listener)

        def unsubscribe() -> None:
            self._listeners.discard(listener)

        return unsubscribe

    def _notify(self, event: ActivityLog) -> None:
        for listener in list(self._listeners):
            listener(event)

    # --- Reads ---
    def students(self) -> List[Student]:
        return list(self._students.values())

    def structures(self) -> List[FeeStructure]:
        return list(self._structures.values())

    def payments(self) -> List[PaymentRecord]:
        return list(self._payments)

    def activity_logs(self) -> List[ActivityLog]:
        return list(self._activity)

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._students.get(student_id)

    def get_structure(self, structure_id: str) -> Optional[FeeStructure]:
        return self._structures.get(structure_id)

    def student_payments(self, student_id: str) -> List[PaymentRecord]:
        return payments_for(self._payments, student_id)

    def session_scope(self, session: str) -> SessionScope:
        return scope_to_session(self.students(), self.structures(), self._payments, session)

    def balance_for(self, student: Student) -> BalanceSnapshot:
        balance = compute_balance(student, self._structures.values())
        if not balance.structure_found:
            logger.warning(
                "No fee structure for %s / %s (student %s); treating structure total as 0",
                student.class_name,
                student.academic_year,
                student.id,
            )
        return balance

    def balances_for(self, students: Iterable[Student]) -> Dict[str, BalanceSnapshot]:
        """Balances keyed by student id. Logs one warning per class/session without a structure."""
        structures = list(self._structures.values())
        balances: Dict[str, BalanceSnapshot] = {}
        missing: Set[tuple] = set()
        for student in students:
            balance = compute_balance(student, structures)
            if not balance.structure_found:
                missing.add((student.class_name, student.academic_year))
            balances[student.id] = balance
        for class_name, session in sorted(missing):
            logger.warning("No fee structure for %s / %s; treating structure total as 0", class_name, session)
        return balances

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    # --- Internals ---
    def _lock_for(self, student_id: str) -> asyncio.Lock:
        lock = self._locks.get(student_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[student_id] = lock
        return lock

    def _require_student(self, student_id: str) -> Student:
        student = self._students.get(student_id)
        if student is None:
            raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
        return student

    def _log(self, actor: Actor, action: ActivityAction, details: str) -> ActivityLog:
        entry = ActivityLog(
            id=new_id("log"),
            user_id=actor.user_id,
            user_name=actor.name,
            action=action,
            details=details,
            timestamp=datetime.now(timezone.utc),
        )
        self._activity = [entry] + self._activity[: ACTIVITY_LOG_LIMIT - 1]
        return entry

    async def _persist(self, description: str, write: Callable[[], Awaitable[None]]) -> Optional[str]:
        """Run a write; on failure queue it for retry and return the error text."""
        try:
            await write()
        except PersistenceError as e:
            logger.error("Persistence failed (%s); queued for retry", description, exc_info=True)
            self._pending.append(PendingWrite(description, write))
            return str(e)
        return None

    def _restatus(self, students: Iterable[Student]) -> List[Student]:
        """Recompute status for students whose balance inputs changed; bumps their version."""
        structures = list(self._structures.values())
        changed = []
        for s in students:
            updated = recompute_status(s, structures)
            updated = updated.model_copy(update={"version": s.version + 1})
            self._students[updated.id] = updated
            changed.append(updated)
        return changed

    # --- Payments ---
    async def submit_payment(
        self,
        student_id: str,
        amount: Decimal,
        metadata: PaymentMetadata,
        actor: Actor,
        expected_version: Optional[int] = None,
    ) -> PaymentOutcome:
        """Validate and post a payment. The only path that increases a student's total_paid."""
        async with self._lock_for(student_id):
            student = self._require_student(student_id)
            if expected_version is not None and student.version != expected_version:
                logger.info(
                    "Payment for %s rejected: version %s expected, found %s",
                    student_id,
                    expected_version,
                    student.version,
                )
                return _rejected(
                    student_id,
                    Rejected(
                        reason=RejectionReason.CONCURRENT_MUTATION_CONFLICT,
                        balance_due=compute_balance(student, self._structures.values()).balance_due,
                    ),
                )
            structures = list(self._structures.values())
            before = self.balance_for(student)
            decision = validate_payment(amount, before.balance_due)
            if isinstance(decision, Rejected):
                logger.info(
                    "Payment of %s for %s rejected: %s", amount, student_id, decision.reason.value
                )
                return _rejected(student_id, decision)
            payment = PaymentRecord(
                id=new_id("pay"),
                student_id=student_id,
                amount=amount,
                date=metadata.paid_at or datetime.now(timezone.utc),
                payment_type=metadata.payment_type,
                method=metadata.method,
                received_by=actor.name,
                note=(metadata.note or "").strip() or None,
            )
            updated = apply_payment(student, structures, payment)
            self._students[student_id] = updated
            self._payments.append(payment)
            entry = self._log(
                actor,
                ActivityAction.PAYMENT_COLLECTED,
                f"Collected {payment.amount} from {updated.name} ({updated.roll_no}) for transaction {payment.id}",
            )
            after = compute_balance(updated, structures)

        logger.info("Payment %s of %s posted for %s", payment.id, payment.amount, student_id)
        error = await self._persist(
            f"payment {payment.id}",
            lambda: self._persistence.save_payment(updated, payment, entry),
        )
        self._notify(entry)
        if error is not None:
            return PersistenceFailure(student=updated, payment=payment, error=error)
        return PaymentPosted(student=updated, payment=payment, balance=after)

    # --- Administrative adjustments ---
    async def apply_discount(self, student_id: str, discount: Decimal, actor: Actor) -> Student:
        """Set a student's discount and re-derive status from the existing total_paid."""
        if discount < 0:
            raise ServiceError("Discount cannot be negative", status.HTTP_400_BAD_REQUEST)
        async with self._lock_for(student_id):
            student = self._require_student(student_id)
            (updated,) = self._restatus([student.model_copy(update={"discount": discount})])
            entry = self._log(
                actor,
                ActivityAction.DISCOUNT_APPLIED,
                f"Applied discount of {discount} to {updated.name} ({updated.id})",
            )
        await self._write_or_raise(
            f"discount for {student_id}",
            lambda: self._persistence.save_students([updated], entry),
            [updated],
        )
        self._notify(entry)
        return updated

    async def update_student(self, student_id: str, changes: Dict[str, object], actor: Actor) -> Student:
        unknown = set(changes) - EDITABLE_STUDENT_FIELDS
        if unknown:
            raise ServiceError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}", status.HTTP_400_BAD_REQUEST
            )
        blank = [f for f in REQUIRED_STUDENT_FIELDS if f in changes and not str(changes[f] or "").strip()]
        if blank:
            raise ServiceError(f"Fields cannot be blank: {', '.join(blank)}", status.HTTP_400_BAD_REQUEST)
        async with self._lock_for(student_id):
            student = self._require_student(student_id)
            roll_no = changes.get("roll_no")
            if roll_no is not None and self._roll_taken(str(roll_no), student.academic_year, exclude=student_id):
                raise ServiceError(
                    f"Roll number {roll_no} already exists in {student.academic_year}",
                    status.HTTP_409_CONFLICT,
                )
            edited = Student.model_validate({**student.model_dump(), **changes})
            (updated,) = self._restatus([edited])
            entry = self._log(
                actor,
                ActivityAction.STUDENT_UPDATED,
                f"Updated {', '.join(sorted(changes))} for {updated.name} ({updated.id})",
            )
        await self._write_or_raise(
            f"student {student_id}",
            lambda: self._persistence.save_students([updated], entry),
            [updated],
        )
        self._notify(entry)
        return updated

    def _roll_taken(self, roll_no: str, session: str, exclude: Optional[str] = None) -> bool:
        return any(
            s.roll_no == roll_no and s.academic_year == session and s.id != exclude
            for s in self._students.values()
        )

    async def bulk_enroll(self, new_students: List[Student], session: str, actor: Actor) -> EnrollmentResult:
        """Enroll students into session. Session is applied unconditionally; ledgers start empty."""
        accepted: List[Student] = []
        failed: List[EnrollmentFailure] = []
        async with self._catalog_lock:
            structures = list(self._structures.values())
            seen: Set[str] = set()
            for index, incoming in enumerate(tag_session(new_students, session)):
                roll_no = incoming.roll_no.strip()
                if not roll_no or not incoming.name.strip():
                    failed.append(
                        EnrollmentFailure(
                            index=index, roll_no=roll_no, name=incoming.name, reason="rollNo and name are required"
                        )
                    )
                    continue
                if roll_no in seen or self._roll_taken(roll_no, session):
                    failed.append(
                        EnrollmentFailure(
                            index=index,
                            roll_no=roll_no,
                            name=incoming.name,
                            reason=f"Roll number {roll_no} already exists in {session}",
                        )
                    )
                    continue
                seen.add(roll_no)
                fresh = incoming.model_copy(
                    update={
                        "id": incoming.id or new_id("st"),
                        "roll_no": roll_no,
                        "total_paid": Decimal("0"),
                        "version": 0,
                    }
                )
                student = recompute_status(fresh, structures)
                self._students[student.id] = student
                accepted.append(student)
            if not accepted:
                return EnrollmentResult(accepted=[], failed=failed)
            entry = self._log(
                actor,
                ActivityAction.STUDENT_ADDED,
                f"Enrolled {len(accepted)} new students into {session}.",
            )
        await self._write_or_raise(
            f"enrollment of {len(accepted)} students",
            lambda: self._persistence.save_students(accepted, entry),
            accepted,
        )
        self._notify(entry)
        return EnrollmentResult(accepted=accepted, failed=failed)

    # --- Fee structures ---
    async def save_structure(
        self,
        class_name: str,
        academic_year: str,
        components: List[FeeComponent],
        actor: Actor,
        structure_id: Optional[str] = None,
    ) -> FeeStructure:
        """Create a structure, or replace one's component list. Total is always recomputed."""
        async with self._catalog_lock:
            if structure_id is not None and structure_id not in self._structures:
                raise ServiceError("Fee structure not found", status.HTTP_404_NOT_FOUND)
            for other in self._structures.values():
                if (
                    other.id != structure_id
                    and other.class_name == class_name
                    and other.academic_year == academic_year
                ):
                    raise ServiceError(
                        f"A fee structure for {class_name} in {academic_year} already exists",
                        status.HTTP_409_CONFLICT,
                    )
            previous = self._structures.get(structure_id) if structure_id else None
            structure = FeeStructure.build(class_name, academic_year, components, structure_id=structure_id)
            affected_keys = {(structure.class_name, structure.academic_year)}
            if previous is not None:
                affected_keys.add((previous.class_name, previous.academic_year))
            async with self._hold_students(affected_keys):
                self._structures[structure.id] = structure
                changed = self._restatus(
                    s for s in list(self._students.values()) if (s.class_name, s.academic_year) in affected_keys
                )
                entry = self._log(
                    actor,
                    ActivityAction.STRUCTURE_UPDATED,
                    f"Saved fee structure for {class_name} ({academic_year}), total {structure.total}",
                )
        await self._write_or_raise(
            f"structure {structure.id}",
            lambda: self._persistence.save_structure(structure, changed, entry),
            [structure, *changed],
        )
        self._notify(entry)
        return structure

    async def delete_structure(self, structure_id: str, actor: Actor) -> FeeStructure:
        async with self._catalog_lock:
            structure = self._structures.get(structure_id)
            if structure is None:
                raise ServiceError("Fee structure not found", status.HTTP_404_NOT_FOUND)
            key = (structure.class_name, structure.academic_year)
            async with self._hold_students({key}):
                del self._structures[structure_id]
                changed = self._restatus(
                    s for s in list(self._students.values()) if (s.class_name, s.academic_year) == key
                )
                entry = self._log(
                    actor,
                    ActivityAction.STRUCTURE_DELETED,
                    f"Deleted fee structure for {structure.class_name} ({structure.academic_year})",
                )
        await self._write_or_raise(
            f"delete structure {structure_id}",
            lambda: self._persistence.delete_structure(structure_id, changed, entry),
            changed,
        )
        self._notify(entry)
        return structure

    @asynccontextmanager
    async def _hold_students(self, keys: Set[tuple]) -> AsyncIterator[None]:
        """Hold the locks of every student in the given (class, session) groups, taken in id order."""
        ids = sorted(s.id for s in self._students.values() if (s.class_name, s.academic_year) in keys)
        async with AsyncExitStack() as stack:
            for sid in ids:
                await stack.enter_async_context(self._lock_for(sid))
            yield

    # --- Activity ---
    async def record_login(self, actor: Actor) -> ActivityLog:
        entry = self._log(actor, ActivityAction.LOGIN, f"{actor.name} signed in")
        await self._persist(f"activity {entry.id}", lambda: self._persistence.save_activity(entry))
        self._notify(entry)
        return entry

    # --- Retry ---
    async def _write_or_raise(
        self, description: str, write: Callable[[], Awaitable[None]], records: List[object]
    ) -> None:
        error = await self._persist(description, write)
        if error is not None:
            raise UnpersistedChangeError(f"Change applied but not saved ({description}): {error}", records)

    async def retry_pending(self) -> int:
        """Retry queued writes in their original order. Returns how many succeeded."""
        succeeded = 0
        remaining: List[PendingWrite] = []
        queued, self._pending = self._pending, []
        for item in queued:
            try:
                await item.write()
                succeeded += 1
            except PersistenceError:
                logger.error("Retry failed for %s", item.description, exc_info=True)
                remaining.append(item)
        self._pending = remaining + self._pending
        return succeeded
