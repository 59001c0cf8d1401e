"""Tests for signup submission and review."""
import pytest
from sqlalchemy import func, select

from cnc_admin.models.admin_user import AdminRole, AdminUser
from cnc_admin.models.permission import PermissionName
from cnc_admin.models.signup_request import SignupRequest, SignupStatus
from cnc_admin.services.exceptions import InvalidTransition
from cnc_admin.services.permissions import PermissionService
from cnc_admin.services.signup import SignupService

from conftest import bearer, make_user

SIGNUP_URL = "/api/signup-request"

APPLICATION = {
    "username": "volunteer_1",
    "email": "volunteer@example.org",
    "full_name": "Eager Volunteer",
    "password": "longenough",
    "reason": "Help with requests",
    "organization": "Local chapter",
}


async def submit(client, **overrides) -> dict:
    response = await client.post(SIGNUP_URL, json={**APPLICATION, **overrides})
    assert response.status_code == 201
    return response.json()["request"]


async def count_users(session_maker, username: str) -> int:
    async with session_maker() as fresh:
        return (await fresh.execute(
            select(func.count(AdminUser.id)).where(AdminUser.username == username)
        )).scalar_one()


async def count_signup_requests(session_maker) -> int:
    async with session_maker() as fresh:
        return (await fresh.execute(select(func.count(SignupRequest.id)))).scalar_one()


@pytest.mark.asyncio
async def test_submit_stores_hash_not_password(client, session_maker, seeded):
    response = await client.post(SIGNUP_URL, json=APPLICATION)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert "administrator will review" in body["message"]
    assert "password" not in body["request"]
    assert "password_hash" not in body["request"]

    async with session_maker() as fresh:
        stored = (await fresh.execute(select(SignupRequest))).scalar_one()
    assert stored.status == SignupStatus.PENDING
    assert stored.password_hash.startswith("$2")
    assert "longenough" not in stored.password_hash


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value,fragment", [
    ("username", "no spaces allowed", "Username must be 3-20 characters"),
    ("email", "not-an-email", "email"),
    ("password", "short", "at least 8 characters"),
    ("full_name", "   ", "full_name is required"),
])
async def test_submit_validation(client, seeded, field, value, fragment):
    response = await client.post(SIGNUP_URL, json={**APPLICATION, field: value})

    assert response.status_code == 400
    assert fragment in response.json()["message"]


@pytest.mark.asyncio
async def test_submit_missing_field(client, seeded):
    payload = dict(APPLICATION)
    del payload["email"]

    response = await client.post(SIGNUP_URL, json=payload)

    assert response.status_code == 400
    assert response.json()["message"] == "email is required"


@pytest.mark.asyncio
@pytest.mark.parametrize("taken", ["username", "email"])
async def test_submit_for_existing_account(client, session_maker, viewer_user, taken):
    users_before = await count_users(session_maker, viewer_user.username)

    response = await client.post(SIGNUP_URL, json={**APPLICATION, taken: getattr(viewer_user, taken)})

    assert response.status_code == 400
    assert response.json()["message"] == "Username or email already exists"
    assert await count_signup_requests(session_maker) == 0
    assert await count_users(session_maker, viewer_user.username) == users_before == 1
    assert await count_users(session_maker, APPLICATION["username"]) == 0


@pytest.mark.asyncio
async def test_submit_duplicate_pending(client, seeded):
    await submit(client)

    response = await client.post(SIGNUP_URL, json={**APPLICATION, "username": "other_name"})

    assert response.status_code == 400
    assert "already pending approval" in response.json()["message"]


@pytest.mark.asyncio
async def test_resubmit_after_rejection(client, super_admin_token):
    request = await submit(client)
    await client.request(
        "DELETE", SIGNUP_URL, headers=bearer(super_admin_token), json={"requestId": request["id"]}
    )

    response = await client.post(SIGNUP_URL, json=APPLICATION)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_list_requires_super_admin(client, admin_token):
    response = await client.get(SIGNUP_URL, headers=bearer(admin_token))

    assert response.status_code == 403
    assert response.json()["message"] == "Super admin access required"


@pytest.mark.asyncio
async def test_list_with_statistics(client, super_admin_token):
    first = await submit(client)
    await submit(client, username="volunteer_2", email="v2@example.org")
    await client.request(
        "DELETE", SIGNUP_URL, headers=bearer(super_admin_token), json={"requestId": first["id"]}
    )

    response = await client.get(SIGNUP_URL, headers=bearer(super_admin_token))
    assert response.status_code == 200
    body = response.json()
    assert [r["username"] for r in body["requests"]] == ["volunteer_2", "volunteer_1"]
    assert body["statistics"] == {
        "total_requests": 2,
        "pending_requests": 1,
        "approved_requests": 0,
        "rejected_requests": 1,
    }
    rejected = body["requests"][1]
    assert rejected["reviewed_by_user"]["username"] == "root_admin"

    response = await client.get(SIGNUP_URL, params={"status": "pending"}, headers=bearer(super_admin_token))
    assert [r["username"] for r in response.json()["requests"]] == ["volunteer_2"]

    response = await client.get(SIGNUP_URL, params={"status": "bogus"}, headers=bearer(super_admin_token))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_approve_creates_exactly_one_user(client, session_maker, super_admin_token):
    request = await submit(client)

    response = await client.put(
        SIGNUP_URL,
        headers=bearer(super_admin_token),
        json={"requestId": request["id"], "role": "manager"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Signup request approved successfully"
    assert await count_users(session_maker, "volunteer_1") == 1

    async with session_maker() as fresh:
        stored = (await fresh.execute(select(SignupRequest))).scalar_one()
        user = (await fresh.execute(
            select(AdminUser).where(AdminUser.id == body["userId"])
        )).scalar_one()
    assert stored.status == SignupStatus.APPROVED
    assert stored.approved_role == "manager"
    assert stored.created_user_id == user.id
    assert stored.reviewed_at is not None
    assert user.role == AdminRole.MANAGER

    # The applicant's own password works
    response = await client.post(
        "/api/admin-auth?action=login",
        json={"username": "volunteer_1", "password": "longenough"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_second_approval_fails(client, session_maker, super_admin_token):
    request = await submit(client)
    payload = {"requestId": request["id"], "role": "viewer"}

    first = await client.put(SIGNUP_URL, headers=bearer(super_admin_token), json=payload)
    second = await client.put(SIGNUP_URL, headers=bearer(super_admin_token), json=payload)

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["message"] == "Signup request has already been approved"
    assert await count_users(session_maker, "volunteer_1") == 1


@pytest.mark.asyncio
async def test_approve_with_custom_permissions(client, super_admin_token):
    request = await submit(client)

    response = await client.put(
        SIGNUP_URL,
        headers=bearer(super_admin_token),
        json={"requestId": request["id"], "role": "viewer", "customPermissions": ["add_comments"]},
    )
    assert response.status_code == 200

    login = await client.post(
        "/api/admin-auth?action=login",
        json={"username": "volunteer_1", "password": "longenough"},
    )
    token = login.json()["sessionToken"]
    response = await client.post("/api/admin-auth?action=get_permissions", headers=bearer(token))
    assert "add_comments" in response.json()["permissions"]


@pytest.mark.asyncio
async def test_approve_conflict_leaves_request_pending(client, db_session, session_maker, super_admin_token):
    """Someone took the username after the request was filed."""
    request = await submit(client)
    await make_user(db_session, "volunteer_1", AdminRole.VIEWER)

    response = await client.put(
        SIGNUP_URL,
        headers=bearer(super_admin_token),
        json={"requestId": request["id"], "role": "viewer"},
    )

    assert response.status_code == 400
    async with session_maker() as fresh:
        stored = (await fresh.execute(select(SignupRequest))).scalar_one()
    assert stored.status == SignupStatus.PENDING
    assert await count_users(session_maker, "volunteer_1") == 1


@pytest.mark.asyncio
async def test_approve_unknown_request(client, super_admin_token):
    response = await client.put(
        SIGNUP_URL,
        headers=bearer(super_admin_token),
        json={"requestId": "missing", "role": "viewer"},
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Signup request not found"


@pytest.mark.asyncio
async def test_admin_cannot_approve(client, session_maker, admin_token):
    request = await submit(client)

    response = await client.put(
        SIGNUP_URL,
        headers=bearer(admin_token),
        json={"requestId": request["id"], "role": "viewer"},
    )

    assert response.status_code == 403
    assert await count_users(session_maker, "volunteer_1") == 0


@pytest.mark.asyncio
async def test_reject_keeps_reason_and_creates_nobody(client, session_maker, super_admin_token):
    request = await submit(client)

    response = await client.request(
        "DELETE",
        SIGNUP_URL,
        headers=bearer(super_admin_token),
        json={"requestId": request["id"], "reason": "Not a member"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Signup request rejected"
    async with session_maker() as fresh:
        stored = (await fresh.execute(select(SignupRequest))).scalar_one()
    assert stored.status == SignupStatus.REJECTED
    assert stored.rejection_reason == "Not a member"
    assert await count_users(session_maker, "volunteer_1") == 0


@pytest.mark.asyncio
async def test_reject_default_reason_and_no_approval_after(client, session_maker, super_admin_token):
    request = await submit(client)

    await client.request(
        "DELETE", SIGNUP_URL, headers=bearer(super_admin_token), json={"requestId": request["id"]}
    )
    response = await client.put(
        SIGNUP_URL,
        headers=bearer(super_admin_token),
        json={"requestId": request["id"], "role": "viewer"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Signup request has already been rejected"
    async with session_maker() as fresh:
        stored = (await fresh.execute(select(SignupRequest))).scalar_one()
    assert stored.rejection_reason == "No reason provided"


@pytest.mark.asyncio
async def test_service_rolls_back_on_failed_grant(db_session, super_admin, monkeypatch):
    """A failing override write leaves neither account nor approval behind."""
    service = SignupService(db_session)
    request = await service.submit(
        username="volunteer_1",
        email="volunteer@example.org",
        full_name="Eager Volunteer",
        password="longenough",
    )
    await db_session.commit()
    request_id = request.id

    class BrokenPermissions(PermissionService):
        async def replace_overrides(self, user_id, overrides):
            raise RuntimeError("override table locked")

    monkeypatch.setattr("cnc_admin.services.signup.PermissionService", BrokenPermissions)
    with pytest.raises(RuntimeError):
        await service.approve(
            super_admin, request_id, AdminRole.VIEWER,
            custom_permissions=[PermissionName.ADD_COMMENTS],
        )
    await db_session.rollback()
    monkeypatch.undo()

    await db_session.refresh(super_admin)
    stored = await service.get_request(request_id)
    assert stored.status == SignupStatus.PENDING
    assert not await service.users.is_taken(username="volunteer_1")

    await service.approve(super_admin, request_id, AdminRole.VIEWER)
    await db_session.commit()
    with pytest.raises(InvalidTransition):
        await service.approve(super_admin, request_id, AdminRole.VIEWER)
