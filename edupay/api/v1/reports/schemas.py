"""Report schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from edupay.core.enums import ActivityAction


class DailyCollection(BaseModel):
    day: date
    label: str
    cash_amount: Decimal
    online_amount: Decimal
    total: Decimal


class MonthlyCollection(BaseModel):
    name: str
    year: int
    month: int
    amount: Decimal
    is_current: bool = False


class ClassEnrollment(BaseModel):
    class_name: str
    total: int
    boys: int
    girls: int


class DashboardResponse(BaseModel):
    session: str
    total_students: int
    session_collection: Decimal
    monthly_collection: Decimal
    monthly_cash_count: int
    monthly_online_count: int
    # Sum of raw balances; overpaid students reduce it
    total_dues: Decimal
    # Sum of balances clamped at zero per student
    outstanding_dues: Decimal
    paid_count: int
    partial_count: int
    unpaid_count: int
    last_five_days: List[DailyCollection]
    academic_trend: List[MonthlyCollection]
    class_enrollment: List[ClassEnrollment]
    total_boys: int
    total_girls: int


class ClassStrength(BaseModel):
    class_name: str
    count: int


class AnalyticsResponse(BaseModel):
    session: str
    calendar_months: List[MonthlyCollection]
    last_thirty_days: List[DailyCollection]
    class_strength: List[ClassStrength]


class ActivityLogResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    action: ActivityAction
    details: str
    timestamp: datetime


class CertificateResponse(BaseModel):
    school_name: str
    title: str
    student_id: str
    student_name: str
    roll_no: str
    class_name: str
    academic_year: str
    total_paid: Decimal
    verified_on: date
    verification_id: str
    statement: str
