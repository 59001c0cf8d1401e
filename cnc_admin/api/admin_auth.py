"""Authentication API: login, logout, verify and a few session-scoped actions.

The browser client selects the action with ``?action=`` or an ``action`` key
in the JSON body, so a single path serves every operation.
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.api.deps import (
    ensure_permission,
    get_audit_logger,
    get_auth_service,
    get_client_ip,
    get_current_user,
    get_permission_service,
    get_session_token,
    get_user_agent,
    read_json_body,
)
from cnc_admin.api.errors import BadRequest, Forbidden, MethodNotAllowed, to_http_error
from cnc_admin.config import get_settings
from cnc_admin.database import get_db
from cnc_admin.models.audit import AuditAction
from cnc_admin.models.permission import PermissionName
from cnc_admin.schemas.admin_user import AdminUserCreate, AdminUserResponse, UserResponse
from cnc_admin.schemas.audit import AuditLogResponse
from cnc_admin.schemas.auth import (
    AuditLogRequest,
    LoginRequest,
    LoginResponse,
    PermissionsResponse,
    SessionUser,
    VerifyResponse,
)
from cnc_admin.schemas.common import ApiResponse
from cnc_admin.services.audit import AuditLogger
from cnc_admin.services.auth import AuthService
from cnc_admin.services.exceptions import AdminError, InvalidCredentials
from cnc_admin.services.permissions import PermissionService
from cnc_admin.services.users import UserService

router = APIRouter(prefix="/api/admin-auth", tags=["Authentication"])

logger = logging.getLogger(__name__)
settings = get_settings()


def parse_body(schema, body: dict) -> BaseModel:
    """Validate a dispatched body with the same 400 reporting as typed endpoints."""
    try:
        return schema.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


@router.post("")
async def admin_auth_post(
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    action: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    permissions: PermissionService = Depends(get_permission_service),
    audit: AuditLogger = Depends(get_audit_logger),
    token: Optional[str] = Depends(get_session_token),
    ip_address: str = Depends(get_client_ip),
    user_agent: str = Depends(get_user_agent),
):
    """Dispatch login, logout, create-user, get_permissions and get_audit_log."""
    body = await read_json_body(request)
    action = action or body.pop("action", None)

    if action == "login":
        data = parse_body(LoginRequest, body)
        if not data.username or not data.password:
            raise BadRequest("Username and password are required")

        try:
            user = await auth.authenticate(data.username, data.password)
        except InvalidCredentials as e:
            logger.warning(f"Failed login attempt for {data.username} from {ip_address}")
            raise to_http_error(e)

        session = await auth.create_session(user, ip_address, user_agent)
        await db.commit()

        audit.record(
            background_tasks,
            actor_id=user.id,
            action=AuditAction.LOGIN,
            details={"username": user.username},
            ip_address=ip_address,
        )
        logger.info(f"User {user.username} logged in from {ip_address}")
        return LoginResponse(
            message="Login successful",
            session_token=session.session_token,
            user=SessionUser.model_validate(user),
        )

    if action == "logout":
        if not token:
            raise BadRequest("Session token required")

        user_id = await auth.logout(token)
        await db.commit()

        if user_id:
            audit.record(
                background_tasks,
                actor_id=user_id,
                action=AuditAction.LOGOUT,
                ip_address=ip_address,
            )
        return ApiResponse(message="Logged out successfully")

    if action == "create-user":
        current_user = await get_current_user(token, auth)
        if not current_user.is_super_admin:
            raise Forbidden("Only super admins can create users")

        data = parse_body(AdminUserCreate, body)
        try:
            user = await UserService(db).create_user(
                actor=current_user,
                username=data.username,
                email=data.email,
                password=data.password,
                full_name=data.full_name,
                role=data.role,
            )
        except AdminError as e:
            raise to_http_error(e)
        await db.commit()

        audit.record(
            background_tasks,
            actor_id=current_user.id,
            action=AuditAction.CREATE_USER,
            target_user_id=user.id,
            details={"username": user.username, "role": user.role.value},
            ip_address=ip_address,
        )
        response.status_code = status.HTTP_201_CREATED
        return UserResponse(
            message="User created successfully",
            user=AdminUserResponse.model_validate(user),
        )

    if action == "get_permissions":
        current_user = await get_current_user(token, auth)
        effective = await permissions.resolve(current_user)
        return PermissionsResponse(permissions=effective.as_list())

    if action == "get_audit_log":
        current_user = await get_current_user(token, auth)
        await ensure_permission(permissions, current_user, PermissionName.VIEW_AUDIT)

        data = parse_body(AuditLogRequest, body)
        entries = await AuditLogger.list_entries(
            db,
            action=data.action,
            limit=data.limit or settings.audit_log_default_limit,
        )
        return AuditLogResponse(audit_logs=entries)

    raise MethodNotAllowed()


@router.get("")
async def admin_auth_get(
    action: Optional[str] = Query(None),
    auth: AuthService = Depends(get_auth_service),
    token: Optional[str] = Depends(get_session_token),
):
    """Verify the bearer session (``?action=verify``)."""
    if action != "verify":
        raise MethodNotAllowed()

    user = await get_current_user(token, auth)
    return VerifyResponse(user=SessionUser.model_validate(user))
