"""Student schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from edupay.api.v1.payments.schemas import BalanceResponse, PaymentResponse
from edupay.core.enums import FeeStatus, Gender


class StudentCreate(BaseModel):
    roll_no: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    class_name: str = Field(..., min_length=1, max_length=100)
    academic_year: Optional[str] = Field(None, description="Defaults to the current session")
    gender: Gender = Gender.MALE
    parent_name: str = Field("", max_length=255)
    contact: str = Field("", max_length=50)
    previous_year_dues: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    discount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)


class StudentBulkCreate(BaseModel):
    # Every student is enrolled into this session, whatever academic_year the rows carry
    session: Optional[str] = None
    students: List[StudentCreate] = Field(..., min_length=1, max_length=1000)


class StudentUpdate(BaseModel):
    roll_no: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    class_name: Optional[str] = Field(None, min_length=1, max_length=100)
    gender: Optional[Gender] = None
    parent_name: Optional[str] = Field(None, max_length=255)
    contact: Optional[str] = Field(None, max_length=50)
    previous_year_dues: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)


class DiscountUpdate(BaseModel):
    discount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class StudentResponse(BaseModel):
    id: str
    roll_no: str
    name: str
    class_name: str
    academic_year: str
    parent_name: str
    contact: str
    gender: Gender
    previous_year_dues: Decimal
    discount: Decimal
    total_paid: Decimal
    status: FeeStatus
    version: int
    balance: BalanceResponse


class StudentLedgerResponse(BaseModel):
    student: StudentResponse
    payments: List[PaymentResponse]


class EnrollmentFailureResponse(BaseModel):
    row: int
    roll_no: str
    name: str
    reason: str


class StudentBulkResponse(BaseModel):
    session: str
    created: int
    students: List[StudentResponse]
    failed: List[EnrollmentFailureResponse] = []
