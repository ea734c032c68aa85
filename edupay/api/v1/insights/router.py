from typing import AsyncIterator, Optional

import httpx
from fastapi import APIRouter, Depends, Query

from edupay.auth.dependencies import get_current_user, get_ledger
from edupay.core.config import settings
from edupay.core.store import LedgerStore

from .schemas import InsightsResponse
from . import service

router = APIRouter(prefix="/api/v1/insights", tags=["insights"])


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.insights_timeout_seconds) as client:
        yield client


@router.get("", response_model=InsightsResponse, dependencies=[Depends(get_current_user)])
async def financial_insights(
    session: Optional[str] = Query(None, description="Academic session, e.g. 2024-25"),
    ledger: LedgerStore = Depends(get_ledger),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> InsightsResponse:
    return await service.generate_insights(ledger, client, session)
