"""
Agenda: slot conflicts and appointment lifecycle.
"""

from belle.services.scheduling_service import SchedulingService

from tests.conftest import book, create_patient, identity_for, set_status


async def test_same_professional_same_slot_conflicts(client, user_headers, other_headers, procedure):
    patient_a = await create_patient(client, user_headers)
    patient_b = await create_patient(client, other_headers, full_name="Joana Reis")

    first = await book(client, user_headers, patient_a, procedure)
    assert first.status_code == 201, first.text
    assert first.json()["status"] == "scheduled"

    second = await book(client, user_headers, patient_a, procedure)
    assert second.status_code == 409
    body = second.json()
    assert body["code"] == "slot_conflict"
    assert body["existing_appointment_id"] == first.json()["id"]

    # Another professional can hold the same date and time
    third = await book(client, other_headers, patient_b, procedure)
    assert third.status_code == 201, third.text


async def test_cancelled_appointment_frees_slot(client, user_headers, procedure):
    patient = await create_patient(client, user_headers)
    first = (await book(client, user_headers, patient, procedure)).json()

    cancelled = await set_status(client, user_headers, first["id"], "cancelled", "Paciente desmarcou")
    assert cancelled.status_code == 200
    assert cancelled.json()["cancellation_reason"] == "Paciente desmarcou"

    rebooked = await book(client, user_headers, patient, procedure)
    assert rebooked.status_code == 201, rebooked.text
    assert rebooked.json()["id"] != first["id"]


async def test_storage_index_rejects_double_booking_without_precheck(
    client, user_headers, procedure, monkeypatch
):
    patient = await create_patient(client, user_headers)
    first = await book(client, user_headers, patient, procedure, at="14:30")
    assert first.status_code == 201, first.text

    real_find_conflict = SchedulingService.find_conflict
    skipped = []

    async def miss_once(self, *args, **kwargs):
        if not skipped:
            skipped.append(True)
            return None
        return await real_find_conflict(self, *args, **kwargs)

    monkeypatch.setattr(SchedulingService, "find_conflict", miss_once)
    second = await book(client, user_headers, patient, procedure, at="14:30")

    assert skipped
    assert second.status_code == 409
    assert second.json()["code"] == "slot_conflict"
    assert second.json()["existing_appointment_id"] == first.json()["id"]


async def test_seconds_are_ignored_when_comparing_slots(client, user_headers, procedure):
    patient = await create_patient(client, user_headers)
    assert (await book(client, user_headers, patient, procedure, at="10:00:00")).status_code == 201
    assert (await book(client, user_headers, patient, procedure, at="10:00:42")).status_code == 409


async def test_availability_check(client, user_headers, procedure):
    patient = await create_patient(client, user_headers)
    params = {"appointment_date": "2024-01-10", "appointment_time": "09:00"}

    before = await client.get("/api/v1/appointments/availability", params=params, headers=user_headers)
    assert before.status_code == 200
    assert before.json()["available"] is True

    await book(client, user_headers, patient, procedure)
    after = await client.get("/api/v1/appointments/availability", params=params, headers=user_headers)
    assert after.json()["available"] is False


async def test_status_moves_forward_only(client, user_headers, procedure):
    patient = await create_patient(client, user_headers)
    appointment = (await book(client, user_headers, patient, procedure)).json()

    skipped = await set_status(client, user_headers, appointment["id"], "completed")
    assert skipped.status_code == 400
    assert skipped.json()["code"] == "invalid_status_transition"

    assert (await set_status(client, user_headers, appointment["id"], "confirmed")).status_code == 200
    assert (await set_status(client, user_headers, appointment["id"], "completed")).status_code == 200

    for target in ("scheduled", "confirmed", "cancelled"):
        response = await set_status(client, user_headers, appointment["id"], target)
        assert response.status_code == 400, target


async def test_cancelled_is_terminal(client, user_headers, procedure):
    patient = await create_patient(client, user_headers)
    appointment = (await book(client, user_headers, patient, procedure)).json()
    await set_status(client, user_headers, appointment["id"], "cancelled")

    response = await set_status(client, user_headers, appointment["id"], "confirmed")
    assert response.status_code == 400


async def test_regular_user_cannot_book_for_another_professional(
    client, admin_headers, user_headers, other_headers, procedure
):
    patient = await create_patient(client, other_headers, full_name="Joana Reis")
    other = await identity_for(client, other_headers)

    response = await book(client, user_headers, patient, procedure, professional_id=str(other.profile_id))
    assert response.status_code == 403
    assert response.json()["code"] == "permission_denied"

    # Super admins book on behalf of any professional
    booked = await book(client, admin_headers, patient, procedure, professional_id=str(other.profile_id))
    assert booked.status_code == 201, booked.text
    assert booked.json()["professional_id"] == str(other.profile_id)


async def test_inactive_procedure_cannot_be_booked(client, admin_headers, user_headers, procedure):
    patient = await create_patient(client, user_headers)
    await client.patch(
        f"/api/v1/procedures/{procedure['id']}", json={"is_active": False}, headers=admin_headers
    )

    response = await book(client, user_headers, patient, procedure)
    assert response.status_code == 400
    assert response.json()["code"] == "constraint_violation"


async def test_week_agenda_runs_sunday_to_saturday(client, user_headers, procedure):
    patient = await create_patient(client, user_headers)
    # 2024-01-07 is a Sunday, 2024-01-13 the following Saturday
    for day in ("2024-01-06", "2024-01-07", "2024-01-10", "2024-01-13", "2024-01-14"):
        assert (await book(client, user_headers, patient, procedure, day=day)).status_code == 201

    response = await client.get(
        "/api/v1/appointments", params={"day": "2024-01-10", "view": "week"}, headers=user_headers
    )
    assert response.status_code == 200
    rows = response.json()
    assert [row["appointment_date"] for row in rows] == ["2024-01-07", "2024-01-10", "2024-01-13"]
    assert rows[0]["patient_name"] == "Maria Silva"
    assert rows[0]["procedure_name"] == "Limpeza de pele"
    assert rows[0]["professional_name"] == "Bruna Lima"


async def test_agenda_only_shows_own_appointments(client, admin_headers, user_headers, other_headers, procedure):
    mine = await create_patient(client, user_headers)
    theirs = await create_patient(client, other_headers, full_name="Joana Reis")
    await book(client, user_headers, mine, procedure)
    await book(client, other_headers, theirs, procedure)

    params = {"day": "2024-01-10"}
    own = (await client.get("/api/v1/appointments", params=params, headers=user_headers)).json()
    assert [row["patient_name"] for row in own] == ["Maria Silva"]

    everyone = (await client.get("/api/v1/appointments", params=params, headers=admin_headers)).json()
    assert len(everyone) == 2


async def test_cannot_book_another_professionals_patient(client, user_headers, other_headers, procedure):
    theirs = await create_patient(client, other_headers, full_name="Joana Reis")

    response = await book(client, user_headers, theirs, procedure)
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"

    agenda = (await client.get("/api/v1/appointments", params={"day": "2024-01-10"}, headers=user_headers)).json()
    assert agenda == []


async def test_patient_must_belong_to_the_booked_professional(
    client, admin_headers, user_headers, other_headers, procedure
):
    mine = await create_patient(client, user_headers)
    other = await identity_for(client, other_headers)

    response = await book(client, admin_headers, mine, procedure, professional_id=str(other.profile_id))
    assert response.status_code == 400
    assert response.json()["code"] == "constraint_violation"
