"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from edupay.core.enums import PaymentMethod, PaymentType, RejectionReason


class BalanceResponse(BaseModel):
    gross_total: Decimal
    net_payable: Decimal
    balance_due: Decimal
    amount_due: Decimal
    structure_found: bool


class PaymentCreate(BaseModel):
    student_id: str
    # Non-positive amounts are a ledger rejection with a reason, not a schema error
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    payment_type: PaymentType = PaymentType.MONTHLY
    method: PaymentMethod = PaymentMethod.CASH
    note: Optional[str] = Field(None, max_length=500)
    expected_version: Optional[int] = Field(
        None, description="Student version shown to the operator; stale versions are rejected"
    )


class PaymentResponse(BaseModel):
    id: str
    student_id: str
    amount: Decimal
    date: datetime
    payment_type: PaymentType
    method: PaymentMethod
    received_by: str
    note: Optional[str] = None

    class Config:
        from_attributes = True


class PaymentReceipt(BaseModel):
    payment: PaymentResponse
    student_id: str
    student_name: str
    roll_no: str
    class_name: str
    academic_year: str
    total_paid: Decimal
    status: str
    version: int
    balance: BalanceResponse


class PaymentRejection(BaseModel):
    student_id: str
    reason: RejectionReason
    balance_due: Decimal
    message: str


class PaymentNotSaved(BaseModel):
    """Applied in memory but not durably written; the records are queued for retry."""

    message: str
    student_id: str
    payment: PaymentResponse
    total_paid: Decimal
    version: int


class PaymentListItem(PaymentResponse):
    student_name: str
    roll_no: str
    class_name: str


class PaymentListResponse(BaseModel):
    items: List[PaymentListItem]
    total_amount: Decimal
    count: int


class RetryResponse(BaseModel):
    retried: int
    still_pending: int
