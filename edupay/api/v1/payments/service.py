from decimal import Decimal
from typing import List, Optional

from edupay.core.config import settings
from edupay.core.domain import Actor, PaymentRecord, Student
from edupay.core.ledger import BalanceSnapshot
from edupay.core.store import LedgerStore, PaymentMetadata, PaymentOutcome

from .schemas import (
    BalanceResponse,
    PaymentCreate,
    PaymentListItem,
    PaymentListResponse,
    PaymentReceipt,
    PaymentResponse,
)


def balance_response(balance: BalanceSnapshot) -> BalanceResponse:
    return BalanceResponse(
        gross_total=balance.gross_total,
        net_payable=balance.net_payable,
        balance_due=balance.balance_due,
        amount_due=balance.amount_due,
        structure_found=balance.structure_found,
    )


def payment_response(payment: PaymentRecord) -> PaymentResponse:
    return PaymentResponse.model_validate(payment.model_dump())


def receipt(student: Student, payment: PaymentRecord, balance: BalanceSnapshot) -> PaymentReceipt:
    return PaymentReceipt(
        payment=payment_response(payment),
        student_id=student.id,
        student_name=student.name,
        roll_no=student.roll_no,
        class_name=student.class_name,
        academic_year=student.academic_year,
        total_paid=student.total_paid,
        status=student.status.value,
        version=student.version,
        balance=balance_response(balance),
    )


async def submit_payment(ledger: LedgerStore, payload: PaymentCreate, actor: Actor) -> PaymentOutcome:
    metadata = PaymentMetadata(
        payment_type=payload.payment_type,
        method=payload.method,
        note=payload.note,
    )
    return await ledger.submit_payment(
        payload.student_id,
        payload.amount,
        metadata,
        actor,
        expected_version=payload.expected_version,
    )


def _matches(payment: PaymentRecord, student: Optional[Student], term: str) -> bool:
    haystack = [payment.id, payment.received_by]
    if student is not None:
        haystack.extend([student.name, student.roll_no])
    return any(term in value.lower() for value in haystack)


def search_payments(
    ledger: LedgerStore,
    session: Optional[str] = None,
    search: Optional[str] = None,
    date: Optional[str] = None,
) -> PaymentListResponse:
    """Session payments, newest first. date is an ISO prefix: 2024-06 or 2024-06-15."""
    scope = ledger.session_scope(session or settings.current_session)
    students = {s.id: s for s in scope.students}
    term = (search or "").strip().lower()
    date_prefix = (date or "").strip()

    items: List[PaymentListItem] = []
    for payment in sorted(scope.payments, key=lambda p: p.date, reverse=True):
        student = students.get(payment.student_id)
        if term and not _matches(payment, student, term):
            continue
        if date_prefix and not payment.date.date().isoformat().startswith(date_prefix):
            continue
        items.append(
            PaymentListItem(
                **payment.model_dump(),
                student_name=student.name if student else "",
                roll_no=student.roll_no if student else "",
                class_name=student.class_name if student else "",
            )
        )
    total = sum((p.amount for p in items), Decimal("0"))
    return PaymentListResponse(items=items, total_amount=total, count=len(items))
