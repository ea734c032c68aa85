from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from edupay.api.v1.payments.schemas import PaymentListResponse
from edupay.auth.dependencies import get_current_user, get_ledger, require_roles
from edupay.core.enums import UserRole
from edupay.core.exceptions import ServiceError
from edupay.core.store import LedgerStore

from .schemas import ActivityLogResponse, AnalyticsResponse, CertificateResponse, DashboardResponse
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

SESSION_QUERY = Query(None, description="Academic session, e.g. 2024-25")


@router.get("/dashboard", response_model=DashboardResponse, dependencies=[Depends(get_current_user)])
async def dashboard(
    session: Optional[str] = SESSION_QUERY,
    ledger: LedgerStore = Depends(get_ledger),
) -> DashboardResponse:
    return service.build_dashboard(ledger, session)


@router.get("/analytics", response_model=AnalyticsResponse, dependencies=[Depends(get_current_user)])
async def analytics(
    session: Optional[str] = SESSION_QUERY,
    ledger: LedgerStore = Depends(get_ledger),
) -> AnalyticsResponse:
    return service.build_analytics(ledger, session)


@router.get("/collections", response_model=PaymentListResponse, dependencies=[Depends(get_current_user)])
async def collections(
    session: Optional[str] = SESSION_QUERY,
    search: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="ISO date prefix, e.g. 2024-06"),
    ledger: LedgerStore = Depends(get_ledger),
) -> PaymentListResponse:
    return service.collections(ledger, session=session, search=search, date_prefix=date)


@router.get(
    "/activity",
    response_model=List[ActivityLogResponse],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def activity(
    search: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="ISO date prefix"),
    ledger: LedgerStore = Depends(get_ledger),
) -> List[ActivityLogResponse]:
    return service.activity(ledger, search=search, date_prefix=date)


@router.get(
    "/certificates/{student_id}",
    response_model=CertificateResponse,
    dependencies=[Depends(get_current_user)],
)
async def fee_clearance_certificate(
    student_id: str,
    ledger: LedgerStore = Depends(get_ledger),
) -> CertificateResponse:
    try:
        return service.certificate(ledger, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
