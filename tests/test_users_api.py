import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_users_admin_only(client: AsyncClient, admin_headers, staff_headers) -> None:
    response = await client.get("/api/v1/users", headers=admin_headers)
    assert response.status_code == 200
    emails = {u["email"] for u in response.json()}
    assert emails == {"admin@school.com", "staff@school.com", "accounts@school.com"}

    forbidden = await client.get("/api/v1/users", headers=staff_headers)
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_create_user_and_login(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/users",
        json={"name": "Priya Clerk", "email": "Priya@School.com", "role": "ACCOUNTS", "password": "secret12"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["email"] == "priya@school.com"
    assert response.json()["role"] == "ACCOUNTS"

    login = await client.post("/api/v1/auth/login", json={"email": "priya@school.com", "password": "secret12"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_create_user_duplicate_email(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/users",
        json={"name": "Other", "email": "staff@school.com", "role": "STAFF", "password": "secret12"},
        headers=admin_headers,
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_user_role(client: AsyncClient, admin_headers) -> None:
    users = (await client.get("/api/v1/users", headers=admin_headers)).json()
    staff = next(u for u in users if u["email"] == "staff@school.com")

    response = await client.put(f"/api/v1/users/{staff['id']}", json={"role": "ACCOUNTS"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["role"] == "ACCOUNTS"


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client: AsyncClient, admin_headers) -> None:
    me = (await client.get("/api/v1/auth/me", headers=admin_headers)).json()

    response = await client.delete(f"/api/v1/users/{me['id']}", headers=admin_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient, admin_headers) -> None:
    users = (await client.get("/api/v1/users", headers=admin_headers)).json()
    accounts = next(u for u in users if u["email"] == "accounts@school.com")

    response = await client.delete(f"/api/v1/users/{accounts['id']}", headers=admin_headers)
    assert response.status_code == 204

    missing = await client.delete(f"/api/v1/users/{accounts['id']}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_deleted_user_token_stops_working(client: AsyncClient, admin_headers, accounts_headers) -> None:
    users = (await client.get("/api/v1/users", headers=admin_headers)).json()
    accounts = next(u for u in users if u["email"] == "accounts@school.com")
    await client.delete(f"/api/v1/users/{accounts['id']}", headers=admin_headers)

    response = await client.get("/api/v1/students", headers=accounts_headers)

    assert response.status_code == 401
