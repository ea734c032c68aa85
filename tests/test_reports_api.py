from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient

from edupay.api.v1.reports import service


@pytest.mark.asyncio
async def test_dashboard_for_current_session(client: AsyncClient, staff_headers) -> None:
    response = await client.get("/api/v1/reports/dashboard", headers=staff_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["session"] == "2024-25"
    assert data["total_students"] == 3
    assert Decimal(data["session_collection"]) == Decimal("35000")
    # Alice 17000 + Bob 0 + Charlie 23200
    assert Decimal(data["total_dues"]) == Decimal("40200")
    assert Decimal(data["outstanding_dues"]) == Decimal("40200")
    assert (data["paid_count"], data["partial_count"], data["unpaid_count"]) == (1, 1, 1)
    assert len(data["last_five_days"]) == 5
    assert [m["name"] for m in data["academic_trend"]][:2] == ["Jun", "Jul"]
    assert data["academic_trend"][-1]["name"] == "May"
    assert data["academic_trend"][-1]["year"] == 2025
    assert data["class_enrollment"] == [
        {"class_name": "Class 10", "total": 2, "boys": 1, "girls": 1},
        {"class_name": "Class 9", "total": 1, "boys": 1, "girls": 0},
    ]
    assert (data["total_boys"], data["total_girls"]) == (2, 1)


@pytest.mark.asyncio
async def test_dashboard_raw_dues_include_overpayment(client: AsyncClient, admin_headers) -> None:
    # Lowering Class 10 fees leaves Bob 5000 in credit
    await client.put(
        "/api/v1/fee-structures/s1",
        json={"components": [{"name": "Tuition Fee", "amount": "20000"}]},
        headers=admin_headers,
    )

    data = (await client.get("/api/v1/reports/dashboard", headers=admin_headers)).json()

    assert Decimal(data["total_dues"]) == Decimal("30200")
    assert Decimal(data["outstanding_dues"]) == Decimal("35200")


@pytest.mark.asyncio
async def test_dashboard_other_session_is_empty(client: AsyncClient, staff_headers) -> None:
    data = (await client.get("/api/v1/reports/dashboard", params={"session": "2023-24"}, headers=staff_headers)).json()

    assert data["total_students"] == 0
    assert Decimal(data["session_collection"]) == Decimal("0")
    assert data["academic_trend"][0]["year"] == 2023


@pytest.mark.asyncio
async def test_dashboard_month_and_day_buckets(ledger) -> None:
    payments = ledger.payments()
    today = payments[0].date.date()

    data = service.build_dashboard(ledger, "2024-25", today=today)

    assert data.monthly_collection == Decimal("35000")
    assert data.monthly_cash_count == 2
    assert data.monthly_online_count == 0
    assert data.last_five_days[-1].day == today
    assert data.last_five_days[-1].cash_amount == Decimal("35000")


@pytest.mark.asyncio
async def test_academic_trend_places_payments_by_month(ledger) -> None:
    data = service.build_dashboard(ledger, "2024-25", today=date(2030, 1, 1))

    assert data.monthly_collection == Decimal("0")
    assert all(not m.is_current for m in data.academic_trend)
    assert service.session_start_year("garbage") == 2024


@pytest.mark.asyncio
async def test_analytics(client: AsyncClient, staff_headers) -> None:
    response = await client.get("/api/v1/reports/analytics", headers=staff_headers)

    assert response.status_code == 200
    data = response.json()
    assert len(data["calendar_months"]) == 12
    assert len(data["last_thirty_days"]) == 30
    assert data["class_strength"] == [
        {"class_name": "Class 10", "count": 2},
        {"class_name": "Class 9", "count": 1},
    ]


@pytest.mark.asyncio
async def test_collections_report(client: AsyncClient, staff_headers) -> None:
    response = await client.get("/api/v1/reports/collections", params={"search": "bob"}, headers=staff_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert Decimal(data["total_amount"]) == Decimal("25000")


@pytest.mark.asyncio
async def test_activity_log_admin_only(client: AsyncClient, admin_headers, staff_headers) -> None:
    await client.post("/api/v1/payments", json={"student_id": "st1", "amount": "100"}, headers=staff_headers)

    response = await client.get("/api/v1/reports/activity", params={"search": "mike"}, headers=admin_headers)
    assert response.status_code == 200
    logs = response.json()
    assert logs[0]["action"] == "PAYMENT_COLLECTED"
    assert logs[0]["user_name"] == "Mike Staff"

    forbidden = await client.get("/api/v1/reports/activity", headers=staff_headers)
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_certificate_for_settled_student(client: AsyncClient, staff_headers) -> None:
    response = await client.get("/api/v1/reports/certificates/st2", headers=staff_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["school_name"] == "Akshara School of Excellence"
    assert data["title"] == "Fee Clearance Certificate"
    assert data["student_name"] == "Bob Smith"
    assert data["verification_id"] == "ST2"
    assert "2024-25" in data["statement"]


@pytest.mark.asyncio
async def test_certificate_refused_until_paid(client: AsyncClient, staff_headers) -> None:
    refused = await client.get("/api/v1/reports/certificates/st1", headers=staff_headers)
    assert refused.status_code == 409

    await client.post("/api/v1/payments", json={"student_id": "st1", "amount": "17000"}, headers=staff_headers)
    issued = await client.get("/api/v1/reports/certificates/st1", headers=staff_headers)
    assert issued.status_code == 200


@pytest.mark.asyncio
async def test_certificate_for_unknown_student(client: AsyncClient, staff_headers) -> None:
    response = await client.get("/api/v1/reports/certificates/nobody", headers=staff_headers)

    assert response.status_code == 404
