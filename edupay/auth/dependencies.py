from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from edupay.auth.models import User
from edupay.auth.schemas import CurrentUser
from edupay.core.config import settings
from edupay.core.enums import UserRole
from edupay.core.store import LedgerStore
from edupay.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated operator from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    user_id: Optional[str] = payload.get("user_id") or payload.get("sub")
    if not user_id:
        raise credentials_exception

    # Role and name come from the stored user so role changes apply immediately
    user = await db.get(User, user_id)
    if not user:
        raise credentials_exception

    try:
        role = UserRole(user.role)
    except ValueError:
        raise credentials_exception

    return CurrentUser(id=user.id, name=user.name, role=role)


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Example:
        Depends(require_roles(UserRole.ADMIN))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker


def get_ledger(request: Request) -> LedgerStore:
    """The application's ledger, created during startup."""
    return request.app.state.ledger
