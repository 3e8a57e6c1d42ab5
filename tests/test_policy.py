"""
Row-level access rules and isolation between professionals.
"""

import uuid
from types import SimpleNamespace

import pytest

from belle.core.exceptions import PermissionDeniedError
from belle.core.policy import Action, Entity, can_access, ensure_access

from tests.conftest import create_patient, identity_for

ME = uuid.uuid4()
SOMEONE_ELSE = uuid.uuid4()

user = SimpleNamespace(profile_id=ME, is_super_admin=False)
admin = SimpleNamespace(profile_id=uuid.uuid4(), is_super_admin=True)


def owned_by(owner, **fields):
    return SimpleNamespace(professional_id=owner, **fields)


def test_owner_reads_own_rows_only():
    assert can_access(user, Entity.PATIENTS, Action.READ, owned_by(ME))
    assert not can_access(user, Entity.PATIENTS, Action.READ, owned_by(SOMEONE_ELSE))
    assert can_access(admin, Entity.PATIENTS, Action.READ, owned_by(SOMEONE_ELSE))


def test_unlisted_actions_are_denied():
    assert not can_access(user, Entity.PATIENTS, Action.DELETE, owned_by(ME))
    assert not can_access(admin, Entity.APPOINTMENTS, Action.DELETE, owned_by(ME))
    assert not can_access(None, Entity.PROFILES, Action.READ)


def test_appointment_created_by_must_be_caller():
    assert can_access(user, Entity.APPOINTMENTS, Action.CREATE, owned_by(ME, created_by=ME))
    assert not can_access(user, Entity.APPOINTMENTS, Action.CREATE, owned_by(SOMEONE_ELSE, created_by=ME))
    assert can_access(admin, Entity.APPOINTMENTS, Action.CREATE, owned_by(SOMEONE_ELSE, created_by=admin.profile_id))


def test_finalized_closing_blocks_owner_but_not_admin():
    open_closing = owned_by(ME, is_finalized=False)
    finalized = owned_by(ME, is_finalized=True)

    assert can_access(user, Entity.CLOSINGS, Action.UPDATE, open_closing)
    assert not can_access(user, Entity.CLOSINGS, Action.UPDATE, finalized)
    assert can_access(user, Entity.TRANSACTIONS, Action.CREATE, open_closing)
    assert not can_access(user, Entity.TRANSACTIONS, Action.CREATE, finalized)
    assert can_access(admin, Entity.TRANSACTIONS, Action.CREATE, finalized)


def test_only_owner_opens_closings():
    assert can_access(user, Entity.CLOSINGS, Action.CREATE, owned_by(ME))
    assert not can_access(admin, Entity.CLOSINGS, Action.CREATE, owned_by(ME))


def test_inactive_procedures_hidden_from_regular_users():
    inactive = SimpleNamespace(is_active=False)
    assert not can_access(user, Entity.PROCEDURES, Action.READ, inactive)
    assert can_access(admin, Entity.PROCEDURES, Action.READ, inactive)
    assert not can_access(user, Entity.PROCEDURES, Action.CREATE)


def test_profile_administration_reserved_to_super_admin():
    me = SimpleNamespace(id=ME)
    assert can_access(user, Entity.PROFILES, Action.UPDATE, me)
    assert not can_access(user, Entity.PROFILES, Action.UPDATE, SimpleNamespace(id=SOMEONE_ELSE))
    assert not can_access(user, Entity.PROFILES, Action.ADMINISTER, me)


def test_ensure_access_raises_permission_denied():
    with pytest.raises(PermissionDeniedError) as exc_info:
        ensure_access(user, Entity.PATIENTS, Action.UPDATE, owned_by(SOMEONE_ELSE))
    assert exc_info.value.extra == {"entity": "patients", "action": "update"}


async def test_patients_are_isolated_between_professionals(client, admin_headers, user_headers, other_headers):
    mine = await create_patient(client, user_headers)
    theirs = await create_patient(client, other_headers, full_name="Joana Reis")

    listed = (await client.get("/api/v1/patients", headers=user_headers)).json()
    assert [p["id"] for p in listed] == [mine["id"]]

    assert (await client.get(f"/api/v1/patients/{theirs['id']}", headers=user_headers)).status_code == 404
    patched = await client.patch(
        f"/api/v1/patients/{theirs['id']}", json={"notes": "x"}, headers=user_headers
    )
    assert patched.status_code == 404

    everyone = (await client.get("/api/v1/patients", headers=admin_headers)).json()
    assert {p["id"] for p in everyone} == {mine["id"], theirs["id"]}


async def test_patient_search(client, user_headers):
    await create_patient(client, user_headers, full_name="Maria Silva", phone="11911110000")
    await create_patient(client, user_headers, full_name="Joana Reis", phone="11922220000")

    by_name = (await client.get("/api/v1/patients", params={"search": "maria"}, headers=user_headers)).json()
    assert [p["full_name"] for p in by_name] == ["Maria Silva"]

    by_phone = (await client.get("/api/v1/patients", params={"search": "2222"}, headers=user_headers)).json()
    assert [p["full_name"] for p in by_phone] == ["Joana Reis"]


async def test_regular_user_cannot_create_patient_for_someone_else(client, user_headers, other_headers):
    other = await identity_for(client, other_headers)
    response = await client.post(
        "/api/v1/patients",
        json={"full_name": "Maria Silva", "phone": "11999990000", "professional_id": str(other.profile_id)},
        headers=user_headers,
    )
    assert response.status_code == 403


async def test_procedure_catalog_management(client, admin_headers, user_headers, procedure):
    created = await client.post(
        "/api/v1/procedures",
        json={"name": "Peeling", "duration_minutes": 30, "default_price": "90.00"},
        headers=user_headers,
    )
    assert created.status_code == 403

    await client.patch(f"/api/v1/procedures/{procedure['id']}", json={"is_active": False}, headers=admin_headers)

    assert (await client.get("/api/v1/procedures", headers=user_headers)).json() == []
    everything = await client.get("/api/v1/procedures", params={"include_inactive": True}, headers=admin_headers)
    assert [p["is_active"] for p in everything.json()] == [False]


async def test_profile_role_changes_need_super_admin(client, admin_headers, user_headers, other_headers):
    me = await identity_for(client, user_headers)
    other = await identity_for(client, other_headers)

    renamed = await client.patch(f"/api/v1/profiles/{me.profile_id}", json={"full_name": "Bruna L."}, headers=user_headers)
    assert renamed.status_code == 200
    assert renamed.json()["full_name"] == "Bruna L."

    promoted = await client.patch(f"/api/v1/profiles/{me.profile_id}", json={"role": "super_admin"}, headers=user_headers)
    assert promoted.status_code == 403

    foreign = await client.patch(f"/api/v1/profiles/{other.profile_id}", json={"full_name": "X Y"}, headers=user_headers)
    assert foreign.status_code == 403

    by_admin = await client.patch(f"/api/v1/profiles/{other.profile_id}", json={"role": "super_admin"}, headers=admin_headers)
    assert by_admin.status_code == 200
    assert by_admin.json()["role"] == "super_admin"


async def test_super_admin_creates_profiles_with_role(client, admin_headers, user_headers):
    payload = {"email": "dora@example.com", "password": "secret123", "full_name": "Dora Dias", "role": "super_admin"}

    assert (await client.post("/api/v1/profiles", json=payload, headers=user_headers)).status_code == 403

    response = await client.post("/api/v1/profiles", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["role"] == "super_admin"


async def test_patient_patch_clears_optional_fields(client, user_headers):
    patient = await create_patient(client, user_headers)
    url = f"/api/v1/patients/{patient['id']}"

    filled = await client.patch(url, json={"email": "maria@example.com", "notes": "Pele sensível"}, headers=user_headers)
    assert filled.status_code == 200, filled.text
    assert filled.json()["email"] == "maria@example.com"

    cleared = await client.patch(url, json={"email": None, "notes": None}, headers=user_headers)
    assert cleared.status_code == 200, cleared.text
    assert cleared.json()["email"] is None
    assert cleared.json()["notes"] is None
    assert cleared.json()["full_name"] == "Maria Silva"

    refused = await client.patch(url, json={"full_name": None}, headers=user_headers)
    assert refused.status_code == 400
    assert refused.json()["code"] == "constraint_violation"
