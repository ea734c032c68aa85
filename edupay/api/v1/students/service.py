import logging
from typing import Dict, List, Optional, Tuple

from fastapi import UploadFile, status

from edupay.api.v1.payments.service import balance_response, payment_response
from edupay.core.config import settings
from edupay.core.domain import Actor, Student
from edupay.core.exceptions import ServiceError
from edupay.core.ledger import BalanceSnapshot
from edupay.core.store import LedgerStore

from .importer import parse_upload
from .schemas import (
    EnrollmentFailureResponse,
    StudentBulkResponse,
    StudentCreate,
    StudentLedgerResponse,
    StudentResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)


def student_response(student: Student, balance: BalanceSnapshot) -> StudentResponse:
    return StudentResponse(**student.model_dump(), balance=balance_response(balance))


def _require(ledger: LedgerStore, student_id: str) -> Student:
    student = ledger.get_student(student_id)
    if student is None:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    return student


def list_students(
    ledger: LedgerStore,
    session: Optional[str] = None,
    class_name: Optional[str] = None,
    search: Optional[str] = None,
) -> List[StudentResponse]:
    scope = ledger.session_scope(session or settings.current_session)
    term = (search or "").strip().lower()
    students = [
        s
        for s in scope.students
        if (not class_name or s.class_name == class_name)
        and (not term or term in s.name.lower() or term in s.roll_no.lower())
    ]
    students.sort(key=lambda s: (s.class_name, s.roll_no))
    balances = ledger.balances_for(students)
    return [student_response(s, balances[s.id]) for s in students]


def get_student(ledger: LedgerStore, student_id: str) -> StudentResponse:
    student = _require(ledger, student_id)
    return student_response(student, ledger.balance_for(student))


def get_ledger(ledger: LedgerStore, student_id: str) -> StudentLedgerResponse:
    student = _require(ledger, student_id)
    payments = sorted(ledger.student_payments(student_id), key=lambda p: p.date)
    return StudentLedgerResponse(
        student=student_response(student, ledger.balance_for(student)),
        payments=[payment_response(p) for p in payments],
    )


def _to_student(item: StudentCreate) -> Student:
    # id and academic_year are assigned by the ledger on enrollment
    return Student(
        id="",
        roll_no=item.roll_no.strip(),
        name=item.name.strip(),
        class_name=item.class_name.strip(),
        academic_year=item.academic_year or "",
        parent_name=item.parent_name.strip(),
        contact=item.contact.strip(),
        gender=item.gender,
        previous_year_dues=item.previous_year_dues,
        discount=item.discount,
    )


async def enroll(
    ledger: LedgerStore,
    items: List[Tuple[int, StudentCreate]],
    session: str,
    actor: Actor,
    failed: Optional[List[EnrollmentFailureResponse]] = None,
) -> StudentBulkResponse:
    """Enroll (row number, student) pairs into session. Rows the ledger refuses join failed."""
    failed = list(failed or [])
    result = await ledger.bulk_enroll([_to_student(item) for _, item in items], session, actor)
    for failure in result.failed:
        failed.append(
            EnrollmentFailureResponse(
                row=items[failure.index][0],
                roll_no=failure.roll_no,
                name=failure.name,
                reason=failure.reason,
            )
        )
    failed.sort(key=lambda f: f.row)
    balances = ledger.balances_for(result.accepted)
    return StudentBulkResponse(
        session=session,
        created=len(result.accepted),
        students=[student_response(s, balances[s.id]) for s in result.accepted],
        failed=failed,
    )


async def create_student(ledger: LedgerStore, payload: StudentCreate, actor: Actor) -> StudentResponse:
    session = payload.academic_year or settings.current_session
    result = await enroll(ledger, [(1, payload)], session, actor)
    if result.failed:
        raise ServiceError(result.failed[0].reason, status.HTTP_409_CONFLICT)
    return result.students[0]


async def create_students_bulk(
    ledger: LedgerStore, items: List[StudentCreate], session: Optional[str], actor: Actor
) -> StudentBulkResponse:
    return await enroll(
        ledger,
        list(enumerate(items, start=1)),
        session or settings.current_session,
        actor,
    )


async def upload_students(
    ledger: LedgerStore, file: UploadFile, session: Optional[str], actor: Actor
) -> StudentBulkResponse:
    try:
        parsed, failures = await parse_upload(file)
    except ValueError as e:
        raise ServiceError(str(e), status.HTTP_400_BAD_REQUEST)
    if not parsed and not failures:
        raise ServiceError("File has no data rows", status.HTTP_400_BAD_REQUEST)
    session = session or settings.current_session
    logger.info(
        "Bulk upload %s: %d rows parsed, %d rejected while parsing", file.filename, len(parsed), len(failures)
    )
    if not parsed:
        return StudentBulkResponse(session=session, created=0, students=[], failed=failures)
    return await enroll(ledger, parsed, session, actor, failed=failures)


async def update_student(
    ledger: LedgerStore, student_id: str, payload: StudentUpdate, actor: Actor
) -> StudentResponse:
    changes: Dict[str, object] = {
        k: (v.strip() if isinstance(v, str) else v)
        for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None
    }
    if not changes:
        raise ServiceError("No changes supplied", status.HTTP_400_BAD_REQUEST)
    student = await ledger.update_student(student_id, changes, actor)
    return student_response(student, ledger.balance_for(student))


async def apply_discount(ledger: LedgerStore, student_id: str, discount, actor: Actor) -> StudentResponse:
    student = await ledger.apply_discount(student_id, discount, actor)
    return student_response(student, ledger.balance_for(student))
