"""
Financial insights from a generative model.

Only an aggregate summary of the session leaves the service. The call runs outside
any ledger lock, and any failure (missing key, timeout, HTTP error, unexpected
payload) returns the fallback text instead of an error.
"""

import logging
from decimal import Decimal
from typing import Optional

import httpx

from edupay.core.config import settings
from edupay.core.store import LedgerStore

from .schemas import FinancialSummary, InsightsResponse

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "AI insights unavailable."
EMPTY_TEXT = "Unable to generate insights at this time."


def summarize(ledger: LedgerStore, session: Optional[str] = None) -> FinancialSummary:
    scope = ledger.session_scope(session or settings.current_session)
    balances = ledger.balances_for(scope.students)
    return FinancialSummary(
        session=scope.session,
        total_students=len(scope.students),
        previous_year_dues=sum((s.previous_year_dues for s in scope.students), Decimal("0")),
        total_collected=sum((p.amount for p in scope.payments), Decimal("0")),
        outstanding_dues=sum((b.amount_due for b in balances.values()), Decimal("0")),
    )


def build_prompt(summary: FinancialSummary) -> str:
    data = (
        f"Session: {summary.session}. Total students: {summary.total_students}. "
        f"Total dues from previous years: Rs {summary.previous_year_dues}. "
        f"Total collected this session: Rs {summary.total_collected}. "
        f"Outstanding dues: Rs {summary.outstanding_dues}."
    )
    return (
        "Based on this school fee data, provide a 3-sentence summary of financial health "
        f"and 2 recommendations to improve collection. Data: {data}"
    )


def _extract_text(body: dict) -> str:
    candidates = body.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts).strip()


async def request_insights(client: httpx.AsyncClient, prompt: str) -> Optional[str]:
    """Call the generateContent endpoint. Returns None on any failure."""
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; returning fallback insights")
        return None
    url = f"{settings.gemini_api_base.rstrip('/')}/models/{settings.gemini_model}:generateContent"
    try:
        response = await client.post(
            url,
            params={"key": settings.gemini_api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
            timeout=settings.insights_timeout_seconds,
        )
        response.raise_for_status()
        return _extract_text(response.json())
    except httpx.HTTPError as e:
        logger.warning("Insights request failed: %s", e)
    except (ValueError, AttributeError, TypeError) as e:
        logger.warning("Insights response could not be read: %s", e)
    return None


async def generate_insights(
    ledger: LedgerStore, client: httpx.AsyncClient, session: Optional[str] = None
) -> InsightsResponse:
    summary = summarize(ledger, session)
    text = await request_insights(client, build_prompt(summary))
    if text is None:
        return InsightsResponse(summary=summary, insights=FALLBACK_TEXT, generated=False)
    return InsightsResponse(summary=summary, insights=text or EMPTY_TEXT, generated=bool(text))
