"""
Dashboard aggregates.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from belle.core.timeutils import period_bounds, week_bounds
from belle.db.session import db_manager
from belle.services.dashboard_service import attendance_rate, dashboard_service

from tests.conftest import book, create_patient, identity_for, set_status


@pytest.mark.parametrize(
    "completed,total,expected",
    [(0, 0, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (4, 4, 100)],
)
def test_attendance_rate(completed, total, expected):
    assert attendance_rate(completed, total) == expected


def test_period_bounds():
    # 2024-01-10 is a Wednesday
    assert week_bounds(date(2024, 1, 10)) == (date(2024, 1, 7), date(2024, 1, 13))
    assert week_bounds(date(2024, 1, 7)) == (date(2024, 1, 7), date(2024, 1, 13))
    assert period_bounds("month", date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
    assert period_bounds("month", date(2024, 12, 31)) == (date(2024, 12, 1), date(2024, 12, 31))
    with pytest.raises(ValueError):
        period_bounds("year", date(2024, 1, 1))


async def seed_day(client, headers, procedure):
    patient = await create_patient(client, headers)
    done = (await book(client, headers, patient, procedure, at="08:00")).json()
    await set_status(client, headers, done["id"], "confirmed")
    await set_status(client, headers, done["id"], "completed")
    await book(client, headers, patient, procedure, at="11:00")
    dropped = (await book(client, headers, patient, procedure, at="15:00")).json()
    await set_status(client, headers, dropped["id"], "cancelled")

    closing = (await client.post(
        "/api/v1/cash-register/closings", json={"closing_date": "2024-01-10"}, headers=headers
    )).json()
    await client.post(
        f"/api/v1/cash-register/closings/{closing['id']}/transactions",
        json={"amount": "150.00", "payment_method": "PIX"},
        headers=headers,
    )


async def test_dashboard_counts_for_the_month(client, user_headers, other_headers, procedure):
    await seed_day(client, user_headers, procedure)
    await seed_day(client, other_headers, procedure)

    response = await client.get(
        "/api/v1/dashboard", params={"period": "month", "reference_date": "2024-01-10"}, headers=user_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["start_date"] == "2024-01-01"
    assert body["end_date"] == "2024-01-31"
    assert body["stats"]["completed_appointments"] == 1
    assert body["stats"]["total_appointments"] == 2
    assert body["stats"]["attendance_rate"] == 50
    assert Decimal(body["stats"]["total_revenue"]) == Decimal("150.00")
    assert body["top_procedures"] == [{"name": "Limpeza de pele", "count": 1}]


async def test_super_admin_dashboard_covers_everyone(client, admin_headers, user_headers, other_headers, procedure):
    await seed_day(client, user_headers, procedure)
    await seed_day(client, other_headers, procedure)

    body = (await client.get(
        "/api/v1/dashboard", params={"period": "week", "reference_date": "2024-01-10"}, headers=admin_headers
    )).json()
    assert body["stats"]["total_appointments"] == 4
    assert Decimal(body["stats"]["total_revenue"]) == Decimal("300.00")
    assert body["top_procedures"] == [{"name": "Limpeza de pele", "count": 2}]


async def test_ranking_keeps_same_named_procedures_apart(client, admin_headers, user_headers, procedure):
    twin = (await client.post(
        "/api/v1/procedures",
        json={"name": procedure["name"], "duration_minutes": 30, "default_price": "80.00"},
        headers=admin_headers,
    )).json()
    patient = await create_patient(client, user_headers)
    for at, chosen in (("08:00", procedure), ("09:00", procedure), ("10:00", twin)):
        booked = (await book(client, user_headers, patient, chosen, at=at)).json()
        await set_status(client, user_headers, booked["id"], "confirmed")
        await set_status(client, user_headers, booked["id"], "completed")

    body = (await client.get(
        "/api/v1/dashboard", params={"period": "day", "reference_date": "2024-01-10"}, headers=user_headers
    )).json()
    assert body["top_procedures"] == [
        {"name": "Limpeza de pele", "count": 2},
        {"name": "Limpeza de pele", "count": 1},
    ]


async def test_unknown_period_is_rejected(client, user_headers):
    response = await client.get("/api/v1/dashboard", params={"period": "year"}, headers=user_headers)
    assert response.status_code == 422


async def test_upcoming_lists_todays_pending_appointments_from_now(client, user_headers, procedure):
    await seed_day(client, user_headers, procedure)
    identity = await identity_for(client, user_headers)

    async with db_manager.transaction() as db:
        data = await dashboard_service.get_dashboard(
            db, identity, period="day", now=datetime(2024, 1, 10, 9, 30)
        )

    # 08:00 is past and completed, 15:00 was cancelled
    assert [row["appointment_time"].strftime("%H:%M") for row in data["upcoming_appointments"]] == ["11:00"]
    assert data["upcoming_appointments"][0]["patient_name"] == "Maria Silva"
