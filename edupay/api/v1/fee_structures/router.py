"""Fee structures per class and session. Reads for any operator; writes for administrators."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from edupay.auth.dependencies import get_current_user, get_ledger, require_roles
from edupay.auth.schemas import CurrentUser
from edupay.core.enums import UserRole
from edupay.core.exceptions import ServiceError
from edupay.core.store import LedgerStore

from .schemas import FeeStructureCreate, FeeStructureResponse, FeeStructureUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-structures", tags=["fee-structures"])


@router.get(
    "",
    response_model=List[FeeStructureResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_fee_structures(
    session: Optional[str] = Query(None, description="Academic session, e.g. 2024-25"),
    ledger: LedgerStore = Depends(get_ledger),
) -> List[FeeStructureResponse]:
    return service.list_structures(ledger, session)


@router.get(
    "/{structure_id}",
    response_model=FeeStructureResponse,
    dependencies=[Depends(get_current_user)],
)
async def read_fee_structure(
    structure_id: str,
    ledger: LedgerStore = Depends(get_ledger),
) -> FeeStructureResponse:
    try:
        return service.get_structure(ledger, structure_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=FeeStructureResponse, status_code=status.HTTP_201_CREATED)
async def create_fee_structure(
    payload: FeeStructureCreate,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> FeeStructureResponse:
    try:
        return await service.create_structure(ledger, payload, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{structure_id}", response_model=FeeStructureResponse)
async def update_fee_structure(
    structure_id: str,
    payload: FeeStructureUpdate,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> FeeStructureResponse:
    try:
        return await service.update_structure(ledger, structure_id, payload, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{structure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee_structure(
    structure_id: str,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> Response:
    try:
        await service.delete_structure(ledger, structure_id, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
