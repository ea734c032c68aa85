import pytest
from httpx import AsyncClient

from edupay.core.enums import ActivityAction


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, ledger) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@school.com", "password": "admin123"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["role"] == "ADMIN"
    assert data["user"]["name"] == "John Admin"
    assert data["user"]["last_login"] is not None

    latest = ledger.activity_logs()[0]
    assert latest.action == ActivityAction.LOGIN
    assert latest.user_name == "John Admin"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@school.com", "password": "nope"},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "ghost@school.com", "password": "admin123"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_oauth_form_returns_usable_token(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/auth/login-oauth",
        data={"username": "staff@school.com", "password": "staff123"},
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert me.status_code == 200
    assert me.json()["role"] == "STAFF"
    assert me.json()["name"] == "Mike Staff"


@pytest.mark.asyncio
async def test_requests_without_token_are_unauthorized(client: AsyncClient) -> None:
    response = await client.get("/api/v1/students")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_is_unauthorized(client: AsyncClient) -> None:
    response = await client.get("/api/v1/students", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sessions_lists_current_and_available(client: AsyncClient, staff_headers) -> None:
    response = await client.get("/api/v1/sessions", headers=staff_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["current"] == "2024-25"
    assert data["available"] == ["2023-24", "2024-25", "2025-26"]
