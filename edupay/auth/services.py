from datetime import datetime, timezone
from typing import List

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edupay.auth.models import User
from edupay.auth.schemas import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    UserCreate,
    UserInfo,
    UserUpdate,
)
from edupay.auth.security import create_access_token, hash_password, verify_password
from edupay.core.domain import Actor
from edupay.core.exceptions import ServiceError
from edupay.core.store import LedgerStore


def _to_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        last_login=user.last_login,
    )


async def login_user(db: AsyncSession, ledger: LedgerStore, payload: LoginRequest) -> LoginResponse:
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)

    now = datetime.now(timezone.utc)
    user.last_login = now
    await db.commit()
    await db.refresh(user)

    token = create_access_token(subject={"user_id": user.id, "role": user.role, "name": user.name})
    await ledger.record_login(Actor(user_id=user.id, name=user.name))
    return LoginResponse(access_token=token, user=_to_info(user), issued_at=now)


# --- User management ---
async def list_users(db: AsyncSession) -> List[UserInfo]:
    result = await db.execute(select(User).order_by(User.created_at, User.name))
    return [_to_info(u) for u in result.scalars().all()]


async def create_user(db: AsyncSession, payload: UserCreate) -> UserInfo:
    email = payload.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)
    user = User(
        name=payload.name.strip(),
        email=email,
        role=payload.role.value,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)
    await db.refresh(user)
    return _to_info(user)


async def update_user(db: AsyncSession, user_id: str, payload: UserUpdate) -> UserInfo:
    user = await db.get(User, user_id)
    if not user:
        raise ServiceError("User not found", status.HTTP_404_NOT_FOUND)
    if payload.email is not None and payload.email.lower() != user.email:
        clash = await db.execute(select(User).where(User.email == payload.email.lower()))
        if clash.scalar_one_or_none():
            raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)
        user.email = payload.email.lower()
    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.role is not None:
        user.role = payload.role.value
    if payload.password is not None:
        user.password_hash = hash_password(payload.password)
    await db.commit()
    await db.refresh(user)
    return _to_info(user)


async def delete_user(db: AsyncSession, user_id: str, current_user: CurrentUser) -> None:
    if user_id == current_user.id:
        raise ServiceError("You cannot delete your own account", status.HTTP_400_BAD_REQUEST)
    user = await db.get(User, user_id)
    if not user:
        raise ServiceError("User not found", status.HTTP_404_NOT_FOUND)
    await db.delete(user)
    await db.commit()
