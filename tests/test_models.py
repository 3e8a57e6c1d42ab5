"""
Timestamp columns are timezone-aware end to end.
"""

from sqlalchemy import DateTime
from sqlmodel import SQLModel

from belle.models import CashRegisterClosing, LoginSession, Profile

from tests.conftest import bearer, login, signup


def test_timestamp_columns_carry_timezone():
    columns = [
        column
        for table in SQLModel.metadata.sorted_tables
        for column in table.columns
        if isinstance(column.type, DateTime)
    ]
    assert columns
    assert all(column.type.timezone for column in columns), [str(c) for c in columns if not c.type.timezone]


def test_default_timestamps_are_aware():
    profile = Profile(email="ana@example.com", full_name="Ana Souza", password_hash="x")
    session = LoginSession(profile_id=profile.id)
    closing = CashRegisterClosing(professional_id=profile.id, closing_date=profile.created_at.date())

    for stamp in (profile.created_at, profile.updated_at, session.created_at, closing.created_at):
        assert stamp.tzinfo is not None
        assert stamp.utcoffset().total_seconds() == 0


async def test_sign_in_records_last_login(client):
    await signup(client, "ana@example.com", "Ana Souza")
    headers = bearer(await login(client, "ana@example.com"))

    profiles = (await client.get("/api/v1/profiles", headers=headers)).json()
    assert profiles[0]["last_login"] is not None
