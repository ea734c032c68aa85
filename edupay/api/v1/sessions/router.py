from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from edupay.auth.dependencies import get_current_user
from edupay.core.config import settings

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


class SessionsResponse(BaseModel):
    current: str
    available: List[str]


@router.get("", response_model=SessionsResponse, dependencies=[Depends(get_current_user)])
async def list_sessions() -> SessionsResponse:
    available = list(settings.available_sessions)
    if settings.current_session not in available:
        available.append(settings.current_session)
    return SessionsResponse(current=settings.current_session, available=sorted(available))
