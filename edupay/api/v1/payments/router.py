"""Fee collection. Any signed-in operator may submit; the ledger decides acceptance."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from edupay.auth.dependencies import get_current_user, get_ledger, require_roles
from edupay.auth.schemas import CurrentUser
from edupay.core.enums import RejectionReason, UserRole
from edupay.core.exceptions import ServiceError
from edupay.core.store import LedgerStore, PaymentPosted, PaymentRejected, PersistenceFailure

from .schemas import (
    PaymentCreate,
    PaymentListResponse,
    PaymentNotSaved,
    PaymentReceipt,
    PaymentRejection,
    RetryResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "",
    response_model=PaymentReceipt,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_409_CONFLICT: {"model": PaymentRejection},
        status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": PaymentRejection},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": PaymentNotSaved},
    },
)
async def submit_payment(
    payload: PaymentCreate,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        outcome = await service.submit_payment(ledger, payload, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if isinstance(outcome, PaymentPosted):
        return service.receipt(outcome.student, outcome.payment, outcome.balance)
    if isinstance(outcome, PaymentRejected):
        code = (
            status.HTTP_409_CONFLICT
            if outcome.reason == RejectionReason.CONCURRENT_MUTATION_CONFLICT
            else status.HTTP_422_UNPROCESSABLE_ENTITY
        )
        body = PaymentRejection(**outcome.model_dump())
        return JSONResponse(status_code=code, content=jsonable_encoder(body))
    if isinstance(outcome, PersistenceFailure):
        body = PaymentNotSaved(
            message=f"Payment recorded but not saved: {outcome.error}",
            student_id=outcome.student.id,
            payment=service.payment_response(outcome.payment),
            total_paid=outcome.student.total_paid,
            version=outcome.student.version,
        )
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=jsonable_encoder(body))
    raise TypeError(f"Unhandled payment outcome: {type(outcome).__name__}")


@router.get(
    "",
    response_model=PaymentListResponse,
    dependencies=[Depends(get_current_user)],
)
async def list_payments(
    session: Optional[str] = Query(None, description="Academic session, e.g. 2024-25"),
    search: Optional[str] = Query(None, description="Student name, roll number, collector or payment id"),
    date: Optional[str] = Query(None, description="ISO date prefix, e.g. 2024-06 or 2024-06-15"),
    ledger: LedgerStore = Depends(get_ledger),
) -> PaymentListResponse:
    return service.search_payments(ledger, session=session, search=search, date=date)


@router.post(
    "/retry-pending",
    response_model=RetryResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def retry_pending(ledger: LedgerStore = Depends(get_ledger)) -> RetryResponse:
    retried = await ledger.retry_pending()
    return RetryResponse(retried=retried, still_pending=ledger.pending_writes)
