from decimal import Decimal

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_structures_for_session(client: AsyncClient, staff_headers) -> None:
    response = await client.get("/api/v1/fee-structures", headers=staff_headers)

    assert response.status_code == 200
    totals = {s["class_name"]: Decimal(s["total"]) for s in response.json()}
    assert totals == {"Class 10": Decimal("25000"), "Class 9": Decimal("22000")}

    other = await client.get("/api/v1/fee-structures", params={"session": "2025-26"}, headers=staff_headers)
    assert other.json() == []


@pytest.mark.asyncio
async def test_create_structure_computes_total(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fee-structures",
        json={
            "class_name": "Class 8",
            "total": "1",
            "components": [
                {"name": "Tuition Fee", "amount": "10000"},
                {"name": "Lab Fee", "amount": "2500.50"},
            ],
        },
        headers=admin_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["academic_year"] == "2024-25"
    assert Decimal(data["total"]) == Decimal("12500.50")
    assert [c["name"] for c in data["components"]] == ["Tuition Fee", "Lab Fee"]


@pytest.mark.asyncio
async def test_same_class_in_another_session_is_allowed(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fee-structures",
        json={"class_name": "Class 10", "academic_year": "2025-26", "components": [{"name": "Tuition Fee", "amount": "30000"}]},
        headers=admin_headers,
    )

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_duplicate_structure_conflicts(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fee-structures",
        json={"class_name": "Class 10", "components": [{"name": "Tuition Fee", "amount": "1"}]},
        headers=admin_headers,
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_duplicate_component_names_are_refused(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fee-structures",
        json={
            "class_name": "Class 7",
            "components": [{"name": "Tuition Fee", "amount": "1"}, {"name": "tuition fee", "amount": "2"}],
        },
        headers=admin_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_negative_component_is_invalid(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fee-structures",
        json={"class_name": "Class 7", "components": [{"name": "Tuition Fee", "amount": "-1"}]},
        headers=admin_headers,
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_editing_structure_updates_student_balances(client: AsyncClient, admin_headers, staff_headers) -> None:
    response = await client.put(
        "/api/v1/fee-structures/s1",
        json={"components": [{"name": "Tuition Fee", "amount": "8000"}]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("8000")

    alice = (await client.get("/api/v1/students/st1", headers=staff_headers)).json()
    assert alice["status"] == "PAID"
    assert Decimal(alice["balance"]["balance_due"]) == Decimal("0")


@pytest.mark.asyncio
async def test_update_unknown_structure(client: AsyncClient, admin_headers) -> None:
    response = await client.put(
        "/api/v1/fee-structures/missing",
        json={"components": [{"name": "Tuition Fee", "amount": "1"}]},
        headers=admin_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_structure_leaves_prior_dues(client: AsyncClient, admin_headers, staff_headers) -> None:
    response = await client.delete("/api/v1/fee-structures/s2", headers=admin_headers)
    assert response.status_code == 204

    charlie = (await client.get("/api/v1/students/st3", headers=staff_headers)).json()
    assert charlie["balance"]["structure_found"] is False
    assert Decimal(charlie["balance"]["balance_due"]) == Decimal("1200")

    again = await client.delete("/api/v1/fee-structures/s2", headers=admin_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_structure_writes_are_admin_only(client: AsyncClient, staff_headers, accounts_headers) -> None:
    payload = {"class_name": "Class 7", "components": [{"name": "Tuition Fee", "amount": "1"}]}

    assert (await client.post("/api/v1/fee-structures", json=payload, headers=staff_headers)).status_code == 403
    assert (await client.delete("/api/v1/fee-structures/s1", headers=accounts_headers)).status_code == 403
