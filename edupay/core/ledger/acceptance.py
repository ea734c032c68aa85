from decimal import Decimal
from typing import Union

from pydantic import BaseModel

from edupay.core.enums import RejectionReason


class Accepted(BaseModel):
    balance_due: Decimal

    class Config:
        frozen = True


class Rejected(BaseModel):
    reason: RejectionReason
    balance_due: Decimal

    class Config:
        frozen = True

    @property
    def message(self) -> str:
        if self.reason == RejectionReason.NON_POSITIVE_AMOUNT:
            return "Payment amount must be greater than zero"
        if self.reason == RejectionReason.EXCEEDS_OUTSTANDING_BALANCE:
            return f"Amount exceeds remaining due of {self.balance_due}"
        if self.reason == RejectionReason.CONCURRENT_MUTATION_CONFLICT:
            return "Student ledger changed since it was read; reload and retry"
        raise ValueError(f"Unknown rejection reason: {self.reason}")


PaymentDecision = Union[Accepted, Rejected]


def validate_payment(amount: Decimal, balance_due: Decimal) -> PaymentDecision:
    """Check a proposed amount against the outstanding balance. Paying exactly to zero is allowed."""
    if amount <= 0:
        return Rejected(reason=RejectionReason.NON_POSITIVE_AMOUNT, balance_due=balance_due)
    if amount > balance_due:
        return Rejected(reason=RejectionReason.EXCEEDS_OUTSTANDING_BALANCE, balance_due=balance_due)
    return Accepted(balance_due=balance_due)
