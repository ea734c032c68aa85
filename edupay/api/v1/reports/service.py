"""Session reports: dashboard figures, analytics, collections, activity and fee clearance certificates."""

import calendar
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from fastapi import status

from edupay.api.v1.payments.schemas import PaymentListResponse
from edupay.api.v1.payments.service import search_payments
from edupay.core.config import settings
from edupay.core.domain import PaymentRecord
from edupay.core.enums import FeeStatus, Gender, PaymentMethod
from edupay.core.exceptions import ServiceError
from edupay.core.store import LedgerStore

from .schemas import (
    ActivityLogResponse,
    AnalyticsResponse,
    CertificateResponse,
    ClassEnrollment,
    ClassStrength,
    DailyCollection,
    DashboardResponse,
    MonthlyCollection,
)

ZERO = Decimal("0")

# June to May
ACADEMIC_MONTHS = [(m, 0) for m in range(6, 13)] + [(m, 1) for m in range(1, 6)]


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _sum(payments: Iterable[PaymentRecord]) -> Decimal:
    return sum((p.amount for p in payments), ZERO)


def session_start_year(session: str, fallback: int = 2024) -> int:
    try:
        return int(session.split("-")[0])
    except ValueError:
        return fallback


def _daily(payments: List[PaymentRecord], days: int, today: date) -> List[DailyCollection]:
    rows = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        on_day = [p for p in payments if p.date.date() == day]
        cash = _sum(p for p in on_day if p.method == PaymentMethod.CASH)
        online = _sum(p for p in on_day if p.method == PaymentMethod.ONLINE)
        rows.append(
            DailyCollection(
                day=day,
                label=day.strftime("%d %b"),
                cash_amount=cash,
                online_amount=online,
                total=cash + online,
            )
        )
    return rows


def _month_amount(payments: List[PaymentRecord], year: int, month: int) -> Decimal:
    return _sum(p for p in payments if p.date.year == year and p.date.month == month)


def build_dashboard(
    ledger: LedgerStore, session: Optional[str] = None, today: Optional[date] = None
) -> DashboardResponse:
    session = session or settings.current_session
    today = today or _today()
    scope = ledger.session_scope(session)
    payments = scope.payments

    this_month = [p for p in payments if p.date.year == today.year and p.date.month == today.month]

    balances = ledger.balances_for(scope.students)
    total_dues = sum((b.balance_due for b in balances.values()), ZERO)
    outstanding = sum((b.amount_due for b in balances.values()), ZERO)
    statuses = Counter(s.status for s in scope.students)

    start_year = session_start_year(session)
    trend = []
    for month, year_offset in ACADEMIC_MONTHS:
        year = start_year + year_offset
        trend.append(
            MonthlyCollection(
                name=calendar.month_abbr[month],
                year=year,
                month=month,
                amount=_month_amount(payments, year, month),
                is_current=(today.year == year and today.month == month),
            )
        )

    enrollment = []
    for class_name in sorted({s.class_name for s in scope.students}):
        members = [s for s in scope.students if s.class_name == class_name]
        enrollment.append(
            ClassEnrollment(
                class_name=class_name,
                total=len(members),
                boys=sum(1 for s in members if s.gender == Gender.MALE),
                girls=sum(1 for s in members if s.gender == Gender.FEMALE),
            )
        )

    return DashboardResponse(
        session=session,
        total_students=len(scope.students),
        session_collection=_sum(payments),
        monthly_collection=_sum(this_month),
        monthly_cash_count=sum(1 for p in this_month if p.method == PaymentMethod.CASH),
        monthly_online_count=sum(1 for p in this_month if p.method == PaymentMethod.ONLINE),
        total_dues=total_dues,
        outstanding_dues=outstanding,
        paid_count=statuses[FeeStatus.PAID],
        partial_count=statuses[FeeStatus.PARTIAL],
        unpaid_count=statuses[FeeStatus.UNPAID],
        last_five_days=_daily(payments, 5, today),
        academic_trend=trend,
        class_enrollment=enrollment,
        total_boys=sum(c.boys for c in enrollment),
        total_girls=sum(c.girls for c in enrollment),
    )


def build_analytics(
    ledger: LedgerStore, session: Optional[str] = None, today: Optional[date] = None
) -> AnalyticsResponse:
    session = session or settings.current_session
    today = today or _today()
    scope = ledger.session_scope(session)
    payments = scope.payments

    # Calendar months of the current year, January first
    months = [
        MonthlyCollection(
            name=calendar.month_abbr[m],
            year=today.year,
            month=m,
            amount=_month_amount(payments, today.year, m),
            is_current=(m == today.month),
        )
        for m in range(1, 13)
    ]
    strength = Counter(s.class_name for s in scope.students)
    return AnalyticsResponse(
        session=session,
        calendar_months=months,
        last_thirty_days=_daily(payments, 30, today),
        class_strength=[ClassStrength(class_name=c, count=strength[c]) for c in sorted(strength)],
    )


def collections(
    ledger: LedgerStore,
    session: Optional[str] = None,
    search: Optional[str] = None,
    date_prefix: Optional[str] = None,
) -> PaymentListResponse:
    return search_payments(ledger, session=session, search=search, date=date_prefix)


def activity(
    ledger: LedgerStore, search: Optional[str] = None, date_prefix: Optional[str] = None
) -> List[ActivityLogResponse]:
    term = (search or "").strip().lower()
    prefix = (date_prefix or "").strip()
    logs = []
    for entry in sorted(ledger.activity_logs(), key=lambda a: a.timestamp, reverse=True):
        if term and term not in entry.user_name.lower() and term not in entry.details.lower():
            continue
        if prefix and not entry.timestamp.date().isoformat().startswith(prefix):
            continue
        logs.append(ActivityLogResponse(**entry.model_dump()))
    return logs


def certificate(ledger: LedgerStore, student_id: str, today: Optional[date] = None) -> CertificateResponse:
    """Fee clearance certificate. Only issued once the student's status is PAID."""
    student = ledger.get_student(student_id)
    if student is None:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    if student.status != FeeStatus.PAID:
        raise ServiceError(
            f"Fee clearance requires a settled account; {student.name} is {student.status.value}",
            status.HTTP_409_CONFLICT,
        )
    return CertificateResponse(
        school_name=settings.school_name,
        title="Fee Clearance Certificate",
        student_id=student.id,
        student_name=student.name,
        roll_no=student.roll_no,
        class_name=student.class_name,
        academic_year=student.academic_year,
        total_paid=student.total_paid,
        verified_on=today or _today(),
        verification_id=student.id[-6:].upper(),
        statement=(
            "This document serves as a formal attestation that the following student has fulfilled "
            f"all financial obligations for the academic session {student.academic_year}."
        ),
    )
