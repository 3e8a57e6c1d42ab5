"""
Sign-up, sign-in, refresh and sign-out.
"""

from belle.services.auth_service import SIGNED_IN, SIGNED_OUT, session_events

from tests.conftest import PASSWORD, bearer, login, signup


async def test_first_profile_is_super_admin(client):
    first = await signup(client, "first@example.com", "Primeira Pessoa")
    second = await signup(client, "second@example.com", "Segunda Pessoa")

    assert first["role"] == "super_admin"
    assert second["role"] == "user"


async def test_duplicate_email_is_refused(client):
    await signup(client, "dup@example.com", "Original")
    response = await client.post(
        "/api/v1/auth/signup",
        json={"email": "DUP@example.com", "password": PASSWORD, "full_name": "Copia"},
    )
    assert response.status_code == 401
    assert response.json()["code"] == "auth_error"


async def test_login_with_wrong_password(client):
    await signup(client, "ana@example.com", "Ana")
    response = await client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "wrong-pass"})
    assert response.status_code == 401


async def test_me_returns_session_context(client):
    await signup(client, "ana@example.com", "Ana Paula")
    headers = bearer(await login(client, "ana@example.com"))

    response = await client.get("/api/v1/auth/me", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "ana@example.com"
    assert body["full_name"] == "Ana Paula"
    assert body["is_super_admin"] is True


async def test_requests_without_token_are_rejected(client):
    response = await client.get("/api/v1/patients")
    assert response.status_code == 401


async def test_signed_out_tokens_are_rejected(client):
    await signup(client, "ana@example.com", "Ana")
    tokens = await login(client, "ana@example.com")

    response = await client.post("/api/v1/auth/logout", headers=bearer(tokens))
    assert response.status_code == 204

    assert (await client.get("/api/v1/auth/me", headers=bearer(tokens))).status_code == 401
    refreshed = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 401


async def test_sign_out_only_ends_its_own_session(client):
    await signup(client, "ana@example.com", "Ana")
    laptop = await login(client, "ana@example.com")
    phone = await login(client, "ana@example.com")

    await client.post("/api/v1/auth/logout", headers=bearer(laptop))

    assert (await client.get("/api/v1/auth/me", headers=bearer(phone))).status_code == 200


async def test_refresh_issues_working_tokens(client):
    await signup(client, "ana@example.com", "Ana")
    tokens = await login(client, "ana@example.com")

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    assert (await client.get("/api/v1/auth/me", headers=bearer(response.json()))).status_code == 200

    # An access token is not a refresh token
    misuse = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert misuse.status_code == 401


async def test_deactivated_user_is_locked_out(client, admin_headers):
    profile = await signup(client, "bruna@example.com", "Bruna")
    tokens = await login(client, "bruna@example.com")

    toggled = await client.post(f"/api/v1/profiles/{profile['id']}/toggle-active", headers=admin_headers)
    assert toggled.status_code == 200
    assert toggled.json()["is_active"] is False

    assert (await client.get("/api/v1/auth/me", headers=bearer(tokens))).status_code == 401
    response = await client.post("/api/v1/auth/login", json={"email": "bruna@example.com", "password": PASSWORD})
    assert response.status_code == 401


async def test_session_listeners_receive_changes_until_unsubscribed(client):
    events = []
    unsubscribe = session_events.subscribe(lambda event, session: events.append((event, session.email)))
    try:
        await signup(client, "ana@example.com", "Ana")
        tokens = await login(client, "ana@example.com")
        await client.post("/api/v1/auth/logout", headers=bearer(tokens))
    finally:
        unsubscribe()

    assert events == [(SIGNED_IN, "ana@example.com"), (SIGNED_OUT, "ana@example.com")]

    await login(client, "ana@example.com")
    assert len(events) == 2


async def test_failing_listener_does_not_break_sign_in(client):
    def broken(event, session):
        raise RuntimeError("listener down")

    unsubscribe = session_events.subscribe(broken)
    try:
        await signup(client, "ana@example.com", "Ana")
        await login(client, "ana@example.com")
    finally:
        unsubscribe()
