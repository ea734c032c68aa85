"""Operator accounts. Administrators only."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from edupay.auth import services
from edupay.auth.dependencies import require_roles
from edupay.auth.schemas import CurrentUser, UserCreate, UserInfo, UserUpdate
from edupay.core.enums import UserRole
from edupay.core.exceptions import ServiceError
from edupay.db.session import get_db

router = APIRouter(prefix="/api/v1/users", tags=["users"])

admin_only = require_roles(UserRole.ADMIN)


@router.get("", response_model=List[UserInfo], dependencies=[Depends(admin_only)])
async def list_users(db: AsyncSession = Depends(get_db)) -> List[UserInfo]:
    return await services.list_users(db)


@router.post(
    "",
    response_model=UserInfo,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
async def create_user(payload: UserCreate, db: AsyncSession = Depends(get_db)) -> UserInfo:
    try:
        return await services.create_user(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{user_id}", response_model=UserInfo, dependencies=[Depends(admin_only)])
async def update_user(
    user_id: str,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
) -> UserInfo:
    try:
        return await services.update_user(db, user_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(admin_only),
) -> Response:
    try:
        await services.delete_user(db, user_id, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
