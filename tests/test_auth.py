"""Tests for login, session verification and logout."""
import hashlib
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from cnc_admin.models.admin_user import AdminRole, AdminSession, AdminUser
from cnc_admin.models.audit import AuditLogEntry

from conftest import bearer, make_user

AUTH_URL = "/api/admin-auth"


@pytest.mark.asyncio
async def test_login_verify_logout_scenario(client, db_session, seeded):
    """Login, verify with the token, logout, then the token is dead."""
    alice = await make_user(db_session, "alice", AdminRole.MANAGER, password="secret123")

    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "alice", "password": "secret123"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["id"] == alice.id
    assert body["user"]["role"] == "manager"
    assert "password_hash" not in body["user"]
    token = body["sessionToken"]
    assert len(token) == 64
    int(token, 16)

    response = await client.get(f"{AUTH_URL}?action=verify", headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice.id

    response = await client.post(f"{AUTH_URL}?action=logout", headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["success"] is True

    response = await client.get(f"{AUTH_URL}?action=verify", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["error"] == "SESSION_EXPIRED"


@pytest.mark.asyncio
async def test_each_login_issues_a_fresh_token(client, db_session, seeded):
    await make_user(db_session, "alice", AdminRole.VIEWER, password="secret123")
    credentials = {"username": "alice", "password": "secret123"}

    first = await client.post(f"{AUTH_URL}?action=login", json=credentials)
    second = await client.post(f"{AUTH_URL}?action=login", json=credentials)

    assert first.json()["sessionToken"] != second.json()["sessionToken"]


@pytest.mark.asyncio
async def test_action_in_body_is_accepted(client, db_session, seeded):
    await make_user(db_session, "alice", AdminRole.VIEWER, password="secret123")

    response = await client.post(
        AUTH_URL,
        json={"action": "login", "username": "alice", "password": "secret123"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_sets_expiry_and_last_login(client, db_session, session_maker, seeded):
    user = await make_user(db_session, "alice", AdminRole.VIEWER, password="secret123")

    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "alice", "password": "secret123"},
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "browser/1.0"},
    )
    token = response.json()["sessionToken"]

    async with session_maker() as fresh:
        session = (await fresh.execute(
            select(AdminSession).where(AdminSession.session_token == token)
        )).scalar_one()
        stored_user = (await fresh.execute(
            select(AdminUser).where(AdminUser.id == user.id)
        )).scalar_one()

    assert session.ip_address == "203.0.113.7"
    assert session.user_agent == "browser/1.0"
    assert session.expires_at > datetime.utcnow() + timedelta(minutes=55)
    assert session.expires_at <= datetime.utcnow() + timedelta(minutes=61)
    assert stored_user.last_login is not None


@pytest.mark.asyncio
async def test_login_wrong_password(client, db_session, seeded):
    await make_user(db_session, "alice", AdminRole.VIEWER, password="secret123")

    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "alice", "password": "nope"},
    )
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


@pytest.mark.asyncio
async def test_login_unknown_user(client, seeded):
    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "ghost", "password": "secret123"},
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_inactive_user(client, db_session, seeded):
    await make_user(db_session, "alice", AdminRole.VIEWER, password="secret123", is_active=False)

    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "alice", "password": "secret123"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_missing_fields(client, seeded):
    response = await client.post(f"{AUTH_URL}?action=login", json={"username": "alice"})

    assert response.status_code == 400
    assert response.json()["message"] == "Username and password are required"


@pytest.mark.asyncio
async def test_legacy_hash_migrates_on_login(client, db_session, session_maker, seeded):
    """One successful login replaces the SHA-256 digest with bcrypt for good."""
    legacy = hashlib.sha256(b"oldpassword").hexdigest()
    user = await make_user(db_session, "legacy_user", AdminRole.VIEWER, password_hash=legacy)

    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "legacy_user", "password": "oldpassword"},
    )
    assert response.status_code == 200

    async with session_maker() as fresh:
        stored = (await fresh.execute(
            select(AdminUser.password_hash).where(AdminUser.id == user.id)
        )).scalar_one()
    assert stored.startswith("$2")
    assert stored != legacy

    # Migrated account keeps working with the same password
    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "legacy_user", "password": "oldpassword"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_legacy_hash_untouched_on_failed_login(client, db_session, session_maker, seeded):
    legacy = hashlib.sha256(b"oldpassword").hexdigest()
    user = await make_user(db_session, "legacy_user", AdminRole.VIEWER, password_hash=legacy)

    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "legacy_user", "password": "guess"},
    )
    assert response.status_code == 401

    async with session_maker() as fresh:
        stored = (await fresh.execute(
            select(AdminUser.password_hash).where(AdminUser.id == user.id)
        )).scalar_one()
    assert stored == legacy


@pytest.mark.asyncio
async def test_verify_unknown_token(client, seeded):
    response = await client.get(f"{AUTH_URL}?action=verify", headers=bearer("f" * 64))

    assert response.status_code == 401
    assert response.json()["error"] == "SESSION_EXPIRED"


@pytest.mark.asyncio
async def test_verify_without_token(client, seeded):
    response = await client.get(f"{AUTH_URL}?action=verify")

    assert response.status_code == 401
    assert response.json()["error"] == "SESSION_EXPIRED"


@pytest.mark.asyncio
async def test_expired_session_is_rejected(client, db_session, viewer_user, viewer_token):
    session = (await db_session.execute(
        select(AdminSession).where(AdminSession.session_token == viewer_token)
    )).scalar_one()
    session.expires_at = datetime.utcnow() - timedelta(seconds=1)
    await db_session.commit()

    response = await client.get(f"{AUTH_URL}?action=verify", headers=bearer(viewer_token))
    assert response.status_code == 401
    assert response.json()["error"] == "SESSION_EXPIRED"

    # Gated endpoints agree
    response = await client.get("/api/service-requests", headers=bearer(viewer_token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_session_without_expiry_never_expires(client, db_session, viewer_user, viewer_token):
    session = (await db_session.execute(
        select(AdminSession).where(AdminSession.session_token == viewer_token)
    )).scalar_one()
    session.expires_at = None
    await db_session.commit()

    response = await client.get(f"{AUTH_URL}?action=verify", headers=bearer(viewer_token))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_verify_does_not_extend_expiry(client, db_session, session_maker, viewer_user, viewer_token):
    async with session_maker() as fresh:
        before = (await fresh.execute(
            select(AdminSession.expires_at).where(AdminSession.session_token == viewer_token)
        )).scalar_one()

    await client.get(f"{AUTH_URL}?action=verify", headers=bearer(viewer_token))

    async with session_maker() as fresh:
        after = (await fresh.execute(
            select(AdminSession.expires_at).where(AdminSession.session_token == viewer_token)
        )).scalar_one()
    assert after == before


@pytest.mark.asyncio
async def test_deactivated_user_session_fails(client, db_session, viewer_user, viewer_token):
    viewer_user.is_active = False
    await db_session.commit()

    response = await client.get(f"{AUTH_URL}?action=verify", headers=bearer(viewer_token))
    assert response.status_code == 401
    assert response.json()["error"] == "USER_INACTIVE"


@pytest.mark.asyncio
async def test_logout_without_token(client, seeded):
    response = await client.post(f"{AUTH_URL}?action=logout")

    assert response.status_code == 400
    assert response.json()["message"] == "Session token required"


@pytest.mark.asyncio
async def test_login_and_logout_are_audited(client, db_session, session_maker, seeded):
    user = await make_user(db_session, "alice", AdminRole.VIEWER, password="secret123")

    response = await client.post(
        f"{AUTH_URL}?action=login",
        json={"username": "alice", "password": "secret123"},
    )
    token = response.json()["sessionToken"]
    await client.post(f"{AUTH_URL}?action=logout", headers=bearer(token))

    async with session_maker() as fresh:
        actions = (await fresh.execute(
            select(AuditLogEntry.action)
            .where(AuditLogEntry.admin_user_id == user.id)
            .order_by(AuditLogEntry.id)
        )).scalars().all()
    assert actions == ["login", "logout"]


@pytest.mark.asyncio
async def test_get_permissions_action(client, viewer_token, super_admin_token):
    response = await client.post(f"{AUTH_URL}?action=get_permissions", headers=bearer(viewer_token))
    assert response.status_code == 200
    assert response.json()["permissions"] == ["view_feedback", "view_overview", "view_requests"]

    response = await client.post(f"{AUTH_URL}?action=get_permissions", headers=bearer(super_admin_token))
    assert response.json()["permissions"] == ["*"]


@pytest.mark.asyncio
async def test_get_audit_log_requires_view_audit(client, viewer_token, admin_token):
    response = await client.post(
        f"{AUTH_URL}?action=get_audit_log", headers=bearer(viewer_token), json={"limit": 10}
    )
    assert response.status_code == 403
    assert "view_audit" in response.json()["message"]

    response = await client.post(
        f"{AUTH_URL}?action=get_audit_log", headers=bearer(admin_token), json={"limit": 10}
    )
    assert response.status_code == 200
    assert response.json()["auditLogs"] == []


@pytest.mark.asyncio
async def test_create_user_action_is_super_admin_only(client, admin_token, super_admin_token):
    payload = {
        "username": "new_staff",
        "email": "new_staff@example.org",
        "password": "secret1",
        "role": "viewer",
    }

    response = await client.post(f"{AUTH_URL}?action=create-user", headers=bearer(admin_token), json=payload)
    assert response.status_code == 403

    response = await client.post(f"{AUTH_URL}?action=create-user", headers=bearer(super_admin_token), json=payload)
    assert response.status_code == 201
    assert response.json()["user"]["username"] == "new_staff"


@pytest.mark.asyncio
async def test_unknown_action_is_not_allowed(client, seeded):
    response = await client.post(f"{AUTH_URL}?action=reset-everything", json={})
    assert response.status_code == 405
    assert response.json() == {"success": False, "message": "Method not allowed"}

    response = await client.get(AUTH_URL)
    assert response.status_code == 405

    response = await client.delete(AUTH_URL)
    assert response.status_code == 405


@pytest.mark.asyncio
async def test_options_short_circuits(client):
    response = await client.options(AUTH_URL)

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "Authorization" in response.headers["access-control-allow-headers"]


