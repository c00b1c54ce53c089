"""Tests for require_auth, require_role, optional_auth and admin moderation."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from viewmaxx.auth.jwt import create_access_token, create_refresh_token
from viewmaxx.realtime.hub import Connection, user_room


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_valid_token_passes(client, make_user, login):
    tokens = login(make_user())
    resp = client.get("/api/users/profile", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 200


@pytest.mark.parametrize(
    "flag, message",
    [
        ("is_banned", "Your account has been banned."),
        ("is_suspended", "Your account has been suspended."),
    ],
)
def test_restricted_user_gets_403(client, make_user, login, users, flag, message):
    user = make_user()
    tokens = login(user)
    asyncio.run(users.update(user.id, {flag: True}))

    resp = client.get("/api/users/profile", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 403
    assert resp.json()["message"] == message


def test_deleted_user_gets_401(client, make_user, login, users):
    user = make_user()
    tokens = login(user)
    asyncio.run(users.delete(user.id))

    resp = client.get("/api/users/profile", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 401
    assert resp.json()["message"] == "The user belonging to this token does no longer exist."


def test_expired_and_invalid_tokens_have_distinct_messages(client, make_user, settings):
    user = make_user()
    expired = create_access_token(user.id, user.email, user.role, settings.JWT_SECRET, expires_minutes=-1)
    forged = create_access_token(user.id, user.email, user.role, "wrong-secret", expires_minutes=5)

    resp = client.get("/api/users/profile", headers=_bearer(expired))
    assert resp.status_code == 401
    assert resp.json()["message"] == "Your token has expired! Please log in again."

    resp = client.get("/api/users/profile", headers=_bearer(forged))
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token. Please log in again!"


def test_refresh_token_is_not_an_access_token(client, make_user, settings):
    user = make_user()
    refresh = create_refresh_token(user.id, settings.JWT_SECRET, expires_days=1)
    resp = client.get("/api/users/profile", headers=_bearer(refresh))
    assert resp.status_code == 401


def test_guard_reads_current_role(client, make_user, login, users):
    target = make_user()
    user = make_user()
    tokens = login(user)

    resp = client.post(f"/api/admin/users/{target.id}/ban", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 403
    assert resp.json()["message"] == "You do not have permission to perform this action"

    # Promotion applies to the already-issued token
    asyncio.run(users.update(user.id, {"role": "MODERATOR"}))
    resp = client.post(f"/api/admin/users/{target.id}/ban", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 200


def test_ban_takes_effect_on_live_token(client, make_user, login):
    admin = make_user(role="ADMIN")
    user = make_user()
    admin_tokens = login(admin)
    tokens = login(user)

    resp = client.get("/api/users/profile", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 200

    resp = client.post(f"/api/admin/users/{user.id}/ban", headers=_bearer(admin_tokens["accessToken"]))
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["isBanned"] is True

    resp = client.get("/api/users/profile", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 403

    # Ban also revoked the refresh token
    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 401


def test_unsuspend_restores_access(client, make_user, login):
    admin = make_user(role="ADMIN")
    user = make_user()
    admin_header = _bearer(login(admin)["accessToken"])
    tokens = login(user)

    client.post(f"/api/admin/users/{user.id}/suspend", headers=admin_header)
    assert client.get("/api/users/profile", headers=_bearer(tokens["accessToken"])).status_code == 403

    client.post(f"/api/admin/users/{user.id}/unsuspend", headers=admin_header)
    assert client.get("/api/users/profile", headers=_bearer(tokens["accessToken"])).status_code == 200


def test_admin_unknown_user(client, make_user, login):
    admin_header = _bearer(login(make_user(role="ADMIN"))["accessToken"])
    resp = client.post("/api/admin/users/does-not-exist/ban", headers=admin_header)
    assert resp.status_code == 404


def _watch_personal_room(app, user):
    frames = []

    async def collect(frame):
        frames.append(frame)

    hub = app.state.services.hub
    conn = Connection(collect, user.projection())
    hub.register(conn)
    hub.join(conn, user_room(user.id))
    return frames


def test_ban_reason_reaches_live_sessions(client, app, make_user, login):
    admin_header = _bearer(login(make_user(role="ADMIN"))["accessToken"])
    user = make_user()
    frames = _watch_personal_room(app, user)

    resp = client.post(
        f"/api/admin/users/{user.id}/ban", headers=admin_header, json={"reason": "spam uploads"}
    )

    assert resp.status_code == 200
    assert frames == [
        {"event": "account_restricted", "data": {"restriction": "banned", "reason": "spam uploads"}}
    ]


def test_suspend_carries_reason_and_duration(client, app, make_user, login):
    admin_header = _bearer(login(make_user(role="MODERATOR"))["accessToken"])
    user = make_user()
    frames = _watch_personal_room(app, user)

    resp = client.post(
        f"/api/admin/users/{user.id}/suspend",
        headers=admin_header,
        json={"reason": "harassment", "duration": 7},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["isSuspended"] is True
    assert frames[0]["data"] == {"restriction": "suspended", "reason": "harassment", "duration": 7}


def test_suspend_rejects_non_positive_duration(client, make_user, login):
    admin_header = _bearer(login(make_user(role="ADMIN"))["accessToken"])
    user = make_user()
    resp = client.post(f"/api/admin/users/{user.id}/suspend", headers=admin_header, json={"duration": 0})
    assert resp.status_code == 400


def test_verify_does_not_revoke_sessions(client, app, make_user, login):
    admin_header = _bearer(login(make_user(role="ADMIN"))["accessToken"])
    user = make_user()
    tokens = login(user)
    frames = _watch_personal_room(app, user)

    resp = client.post(f"/api/admin/users/{user.id}/verify", headers=admin_header)
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["isVerified"] is True
    assert frames == []

    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200

    resp = client.post(f"/api/admin/users/{user.id}/unverify", headers=admin_header)
    assert resp.json()["data"]["user"]["isVerified"] is False


def test_staff_may_verify_themselves(client, make_user, login):
    admin = make_user(role="ADMIN")
    admin_header = _bearer(login(admin)["accessToken"])
    assert client.post(f"/api/admin/users/{admin.id}/verify", headers=admin_header).status_code == 200
    assert client.post(f"/api/admin/users/{admin.id}/ban", headers=admin_header).status_code == 400

@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer"},
        {"Authorization": "Basic dXNlcjpwYXNz"},
        {"Authorization": "Bearer not.a.jwt"},
        {"Authorization": "Bearer " + "x" * 500},
    ],
)
def test_optional_auth_never_blocks(client, make_user, headers):
    target = make_user()
    resp = client.get(f"/api/users/{target.id}", headers=headers)
    assert resp.status_code == 200
    body = resp.json()["data"]
    assert body["isOwner"] is False
    assert "email" not in body["user"]


def test_optional_auth_ignores_expired_and_restricted(client, make_user, login, users, settings):
    target = make_user()
    expired = create_access_token(target.id, target.email, target.role, settings.JWT_SECRET, expires_minutes=-1)
    resp = client.get(f"/api/users/{target.id}", headers=_bearer(expired))
    assert resp.status_code == 200
    assert resp.json()["data"]["isOwner"] is False

    viewer = make_user()
    tokens = login(viewer)
    asyncio.run(users.update(viewer.id, {"is_suspended": True}))
    resp = client.get(f"/api/users/{viewer.id}", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 200
    assert resp.json()["data"]["isOwner"] is False


def test_optional_auth_attaches_owner(client, make_user, login):
    user = make_user()
    tokens = login(user)
    resp = client.get(f"/api/users/{user.id}", headers=_bearer(tokens["accessToken"]))
    body = resp.json()["data"]
    assert body["isOwner"] is True
    assert body["user"]["email"] == user.email


def test_optional_auth_swallows_store_outage(app, make_user, login, users, monkeypatch):
    client = TestClient(app, raise_server_exceptions=False)
    user = make_user()
    tokens = login(user)
    original = users.find_by_id

    async def flaky_find(user_id):
        if user_id == user.id:
            raise ConnectionError("database unavailable")
        return await original(user_id)

    monkeypatch.setattr(users, "find_by_id", flaky_find)
    other = make_user()

    resp = client.get(f"/api/users/{other.id}", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 200
    assert resp.json()["data"]["isOwner"] is False

    # require_auth does not mask infrastructure failures as auth failures
    resp = client.get("/api/users/profile", headers=_bearer(tokens["accessToken"]))
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Something went wrong!"}
