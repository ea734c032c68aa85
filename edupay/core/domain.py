"""Ledger domain records. Frozen pydantic models; edits produce new instances via model_copy."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from edupay.core.enums import ActivityAction, FeeStatus, Gender, PaymentMethod, PaymentType


def to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class FeeComponent(BaseModel):
    name: str
    amount: Decimal = Field(..., ge=0)

    class Config:
        frozen = True


class FeeStructure(BaseModel):
    """Fee structure for one class in one academic session. total is always the component sum."""

    id: str
    class_name: str
    academic_year: str
    components: List[FeeComponent] = Field(default_factory=list)
    total: Decimal = Field(Decimal("0"), ge=0)

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_total(self) -> "FeeStructure":
        expected = sum((c.amount for c in self.components), Decimal("0"))
        if self.total != expected:
            raise ValueError(f"total {self.total} does not equal component sum {expected}")
        return self

    @classmethod
    def build(
        cls,
        class_name: str,
        academic_year: str,
        components: List[FeeComponent],
        structure_id: Optional[str] = None,
    ) -> "FeeStructure":
        return cls(
            id=structure_id or new_id("fs"),
            class_name=class_name,
            academic_year=academic_year,
            components=list(components),
            total=sum((c.amount for c in components), Decimal("0")),
        )


class Student(BaseModel):
    id: str
    roll_no: str
    name: str
    class_name: str
    academic_year: str
    parent_name: str = ""
    contact: str = ""
    gender: Gender = Gender.MALE
    previous_year_dues: Decimal = Field(Decimal("0"), ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    total_paid: Decimal = Field(Decimal("0"), ge=0)
    status: FeeStatus = FeeStatus.UNPAID
    # Bumped on every ledger mutation; used to detect stale submissions
    version: int = 0

    class Config:
        frozen = True


class PaymentRecord(BaseModel):
    id: str
    student_id: str
    amount: Decimal = Field(..., gt=0)
    date: datetime
    payment_type: PaymentType
    method: PaymentMethod
    received_by: str
    note: Optional[str] = None

    class Config:
        frozen = True


class ActivityLog(BaseModel):
    id: str
    user_id: str
    user_name: str
    action: ActivityAction
    details: str
    timestamp: datetime

    class Config:
        frozen = True


class Actor(BaseModel):
    """Who performed a ledger operation."""

    user_id: str
    name: str

    class Config:
        frozen = True
