import json
from decimal import Decimal

import httpx
import pytest
from httpx import AsyncClient

from edupay.api.v1.insights import service
from edupay.api.v1.insights.router import get_http_client
from edupay.core.config import settings
from edupay.main import app


def _install_transport(handler) -> None:
    async def override_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as mock_client:
            yield mock_client

    app.dependency_overrides[get_http_client] = override_client


@pytest.mark.asyncio
async def test_summary_is_session_scoped(ledger) -> None:
    summary = service.summarize(ledger, "2024-25")

    assert summary.total_students == 3
    assert summary.previous_year_dues == Decimal("3700")
    assert summary.total_collected == Decimal("35000")
    assert summary.outstanding_dues == Decimal("40200")
    assert "Total students: 3" in service.build_prompt(summary)


@pytest.mark.asyncio
async def test_missing_key_returns_fallback(client: AsyncClient, staff_headers, monkeypatch) -> None:
    monkeypatch.setattr(settings, "gemini_api_key", None)
    calls = []
    _install_transport(lambda request: calls.append(request) or httpx.Response(200, json={}))

    response = await client.get("/api/v1/insights", headers=staff_headers)

    assert response.status_code == 200
    assert response.json()["insights"] == "AI insights unavailable."
    assert response.json()["generated"] is False
    assert calls == []


@pytest.mark.asyncio
async def test_generated_insights(client: AsyncClient, staff_headers, monkeypatch) -> None:
    monkeypatch.setattr(settings, "gemini_api_key", "test-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "Collections are healthy."}]}}]},
        )

    _install_transport(handler)

    response = await client.get("/api/v1/insights", headers=staff_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["insights"] == "Collections are healthy."
    assert data["generated"] is True
    assert data["summary"]["total_students"] == 3
    assert f"/models/{settings.gemini_model}:generateContent" in seen["url"]
    assert "key=test-key" in seen["url"]
    prompt = seen["body"]["contents"][0]["parts"][0]["text"]
    assert "Total students: 3" in prompt
    # Only aggregates are sent
    assert "Alice" not in prompt


@pytest.mark.asyncio
async def test_upstream_error_returns_fallback(client: AsyncClient, staff_headers, monkeypatch) -> None:
    monkeypatch.setattr(settings, "gemini_api_key", "test-key")
    _install_transport(lambda request: httpx.Response(500, json={"error": "boom"}))

    response = await client.get("/api/v1/insights", headers=staff_headers)

    assert response.status_code == 200
    assert response.json()["insights"] == "AI insights unavailable."


@pytest.mark.asyncio
async def test_unreadable_response_returns_fallback(client: AsyncClient, staff_headers, monkeypatch) -> None:
    monkeypatch.setattr(settings, "gemini_api_key", "test-key")
    _install_transport(lambda request: httpx.Response(200, content=b"not json"))

    response = await client.get("/api/v1/insights", headers=staff_headers)

    assert response.json()["generated"] is False


@pytest.mark.asyncio
async def test_network_failure_returns_fallback(client: AsyncClient, staff_headers, monkeypatch) -> None:
    monkeypatch.setattr(settings, "gemini_api_key", "test-key")

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    _install_transport(handler)

    response = await client.get("/api/v1/insights", headers=staff_headers)

    assert response.json()["insights"] == "AI insights unavailable."


@pytest.mark.asyncio
async def test_empty_candidates_use_placeholder_text(client: AsyncClient, staff_headers, monkeypatch) -> None:
    monkeypatch.setattr(settings, "gemini_api_key", "test-key")
    _install_transport(lambda request: httpx.Response(200, json={"candidates": []}))

    response = await client.get("/api/v1/insights", headers=staff_headers)

    assert response.json()["insights"] == "Unable to generate insights at this time."
    assert response.json()["generated"] is False
