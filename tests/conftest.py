import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_ENV"] = "test"

import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from belle.core.auth import SessionContext
from belle.db.base import async_engine, create_all_tables, drop_all_tables
from belle.main import app

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
async def database():
    await create_all_tables()
    yield
    await drop_all_tables()
    await async_engine.dispose()


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


async def signup(client, email, full_name, password=PASSWORD):
    response = await client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": password, "full_name": full_name},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def login(client, email, password=PASSWORD):
    response = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


async def identity_for(client, headers) -> SessionContext:
    me = (await client.get("/api/v1/auth/me", headers=headers)).json()
    return SessionContext(
        profile_id=uuid.UUID(me["profile_id"]),
        email=me["email"],
        full_name=me["full_name"],
        role=me["role"],
        session_id=uuid.UUID(me["session_id"]),
    )


@pytest.fixture
async def admin_headers(client):
    await signup(client, "admin@example.com", "Ana Admin")
    return bearer(await login(client, "admin@example.com"))


@pytest.fixture
async def user_headers(client, admin_headers):
    await signup(client, "bruna@example.com", "Bruna Lima")
    return bearer(await login(client, "bruna@example.com"))


@pytest.fixture
async def other_headers(client, admin_headers):
    await signup(client, "carla@example.com", "Carla Souza")
    return bearer(await login(client, "carla@example.com"))


@pytest.fixture
async def procedure(client, admin_headers):
    response = await client.post(
        "/api/v1/procedures",
        json={"name": "Limpeza de pele", "duration_minutes": 60, "default_price": "150.00"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_patient(client, headers, full_name="Maria Silva", phone="11999990000"):
    response = await client.post(
        "/api/v1/patients",
        json={"full_name": full_name, "phone": phone},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def book(client, headers, patient, procedure, day="2024-01-10", at="09:00", professional_id=None):
    payload = {
        "patient_id": patient["id"],
        "procedure_id": procedure["id"],
        "appointment_date": day,
        "appointment_time": at,
    }
    if professional_id:
        payload["professional_id"] = professional_id
    return await client.post("/api/v1/appointments", json=payload, headers=headers)


async def set_status(client, headers, appointment_id, status, reason=None):
    payload = {"status": status}
    if reason:
        payload["cancellation_reason"] = reason
    return await client.post(f"/api/v1/appointments/{appointment_id}/status", json=payload, headers=headers)
