"""Student enrollment, profiles and per-student ledgers."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status

from edupay.auth.dependencies import get_current_user, get_ledger, require_roles
from edupay.auth.schemas import CurrentUser
from edupay.core.enums import UserRole
from edupay.core.exceptions import ServiceError
from edupay.core.store import LedgerStore

from .importer import build_template
from .schemas import (
    DiscountUpdate,
    StudentBulkCreate,
    StudentBulkResponse,
    StudentCreate,
    StudentLedgerResponse,
    StudentResponse,
    StudentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get(
    "",
    response_model=List[StudentResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_students(
    session: Optional[str] = Query(None, description="Academic session, e.g. 2024-25"),
    class_name: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Name or roll number"),
    ledger: LedgerStore = Depends(get_ledger),
) -> List[StudentResponse]:
    return service.list_students(ledger, session=session, class_name=class_name, search=search)


@router.get(
    "/bulk-upload/template",
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def download_upload_template() -> Response:
    """Sample CSV with the expected columns. Fill it in and upload via POST /bulk-upload."""
    return Response(
        content=build_template(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=student_upload_template.csv"},
    )


@router.post(
    "/bulk-upload",
    response_model=StudentBulkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_students(
    file: UploadFile = File(..., description="CSV or .xlsx with columns from GET /bulk-upload/template"),
    session: Optional[str] = Query(None, description="Session to enroll into; defaults to the current one"),
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> StudentBulkResponse:
    """
    Bulk enroll from a file. Valid rows are enrolled into the session; rows that fail
    parsing or duplicate an existing roll number come back under failed with their row number.
    """
    try:
        return await service.upload_students(ledger, file, session, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/bulk",
    response_model=StudentBulkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_students_bulk(
    payload: StudentBulkCreate,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> StudentBulkResponse:
    try:
        return await service.create_students_bulk(
            ledger, payload.students, payload.session, current_user.as_actor()
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    payload: StudentCreate,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> StudentResponse:
    try:
        return await service.create_student(ledger, payload, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(get_current_user)],
)
async def read_student(student_id: str, ledger: LedgerStore = Depends(get_ledger)) -> StudentResponse:
    try:
        return service.get_student(ledger, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{student_id}/ledger",
    response_model=StudentLedgerResponse,
    dependencies=[Depends(get_current_user)],
)
async def read_student_ledger(
    student_id: str, ledger: LedgerStore = Depends(get_ledger)
) -> StudentLedgerResponse:
    try:
        return service.get_ledger(ledger, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: str,
    payload: StudentUpdate,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN, UserRole.ACCOUNTS)),
) -> StudentResponse:
    try:
        return await service.update_student(ledger, student_id, payload, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{student_id}/discount", response_model=StudentResponse)
async def apply_discount(
    student_id: str,
    payload: DiscountUpdate,
    ledger: LedgerStore = Depends(get_ledger),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> StudentResponse:
    try:
        return await service.apply_discount(ledger, student_id, payload.discount, current_user.as_actor())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
