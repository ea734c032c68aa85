"""Ledger mutation: applies accepted payments and keeps status derived from the balance."""

from decimal import Decimal
from typing import Iterable, List

from edupay.core.domain import FeeStructure, PaymentRecord, Student
from edupay.core.enums import FeeStatus
from edupay.core.exceptions import LedgerContractError

from .acceptance import Rejected, validate_payment
from .balance import compute_balance


def derive_status(total_paid: Decimal, net_payable: Decimal) -> FeeStatus:
    # total_paid == net_payable resolves to PAID
    if total_paid >= net_payable:
        return FeeStatus.PAID
    if total_paid > 0:
        return FeeStatus.PARTIAL
    return FeeStatus.UNPAID


def recompute_status(student: Student, structures: Iterable[FeeStructure]) -> Student:
    """Re-derive status after a change to discount, prior dues or the matching structure."""
    balance = compute_balance(student, structures)
    status = derive_status(student.total_paid, balance.net_payable)
    if status == student.status:
        return student
    return student.model_copy(update={"status": status})


def apply_payment(
    student: Student,
    structures: Iterable[FeeStructure],
    payment: PaymentRecord,
) -> Student:
    """Return the student with payment applied. The payment must pass validate_payment first."""
    if payment.student_id != student.id:
        raise LedgerContractError(
            f"Payment {payment.id} belongs to student {payment.student_id}, not {student.id}"
        )
    structures = list(structures)
    before = compute_balance(student, structures)
    decision = validate_payment(payment.amount, before.balance_due)
    if isinstance(decision, Rejected):
        raise LedgerContractError(
            f"Payment {payment.id} was not accepted ({decision.reason.value}); it must not be applied"
        )
    new_total = student.total_paid + payment.amount
    return student.model_copy(
        update={
            "total_paid": new_total,
            "status": derive_status(new_total, before.net_payable),
            "version": student.version + 1,
        }
    )


def ledger_total(payments: Iterable[PaymentRecord], student_id: str) -> Decimal:
    """Sum of a student's payment records; equals the student's total_paid."""
    return sum((p.amount for p in payments if p.student_id == student_id), Decimal("0"))


def payments_for(payments: Iterable[PaymentRecord], student_id: str) -> List[PaymentRecord]:
    return [p for p in payments if p.student_id == student_id]
