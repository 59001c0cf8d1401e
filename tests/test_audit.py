"""Tests for the best-effort audit log."""
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cnc_admin.api.deps import get_audit_logger
from cnc_admin.main import app
from cnc_admin.models.admin_user import AdminUser
from cnc_admin.models.audit import AuditAction, AuditLogEntry
from cnc_admin.services.audit import AuditLogger

from conftest import bearer


@pytest_asyncio.fixture
async def broken_session_maker(tmp_path):
    """Sessions whose database can never be opened."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'audit.db'}")
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
async def test_write_and_list(session_maker, db_session, admin_user, viewer_user):
    audit = AuditLogger(session_maker)

    assert await audit.write(
        admin_user.id,
        AuditAction.UPDATE_USER,
        target_user_id=viewer_user.id,
        details={"changes": {"full_name": "Renamed"}},
        ip_address="203.0.113.7",
    )
    assert await audit.write(admin_user.id, AuditAction.LOGOUT)

    entries = await AuditLogger.list_entries(db_session)
    assert [e["action"] for e in entries] == ["logout", "update_user"]

    update = entries[1]
    assert update["admin_user"]["username"] == "office_admin"
    assert update["target_user"]["username"] == "read_only"
    assert update["ip_address"] == "203.0.113.7"
    assert update["details"]["changes"] == {"full_name": "Renamed"}
    assert "timestamp" in update["details"]
    assert entries[0]["ip_address"] == "unknown"


@pytest.mark.asyncio
async def test_list_filters_and_limits(session_maker, db_session, admin_user):
    audit = AuditLogger(session_maker)
    for action in (AuditAction.LOGIN, AuditAction.LOGOUT, AuditAction.LOGIN):
        await audit.write(admin_user.id, action)

    logins = await AuditLogger.list_entries(db_session, action="login")
    assert len(logins) == 2

    everything = await AuditLogger.list_entries(db_session, action="all", limit=2)
    assert len(everything) == 2


@pytest.mark.asyncio
async def test_entries_outlive_deleted_users(session_maker, db_session, admin_user, viewer_user):
    audit = AuditLogger(session_maker)
    await audit.write(admin_user.id, AuditAction.DELETE_USER, target_user_id=viewer_user.id)

    await db_session.delete(viewer_user)
    await db_session.commit()

    entries = await AuditLogger.list_entries(db_session)
    assert entries[0]["target_user_id"] == viewer_user.id
    assert entries[0]["target_user"] is None


@pytest.mark.asyncio
async def test_failed_write_returns_false(broken_session_maker):
    audit = AuditLogger(broken_session_maker)

    assert await audit.write("someone", AuditAction.LOGIN) is False


@pytest.mark.asyncio
async def test_failed_write_leaves_response_unchanged(
    client, session_maker, broken_session_maker, viewer_user, admin_token
):
    """The user is updated and the caller sees success with the audit store down."""
    app.dependency_overrides[get_audit_logger] = lambda: AuditLogger(broken_session_maker)

    response = await client.put(
        "/api/admin-users",
        headers=bearer(admin_token),
        json={"userId": viewer_user.id, "full_name": "Renamed"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "User updated successfully"

    async with session_maker() as fresh:
        stored = (await fresh.execute(
            select(AdminUser.full_name).where(AdminUser.id == viewer_user.id)
        )).scalar_one()
        entries = (await fresh.execute(select(AuditLogEntry))).scalars().all()
    assert stored == "Renamed"
    assert entries == []


@pytest.mark.asyncio
async def test_login_survives_audit_outage(client, broken_session_maker, viewer_user):
    app.dependency_overrides[get_audit_logger] = lambda: AuditLogger(broken_session_maker)

    response = await client.post(
        "/api/admin-auth?action=login",
        json={"username": viewer_user.username, "password": "password123"},
    )

    assert response.status_code == 200
    assert response.json()["sessionToken"]
