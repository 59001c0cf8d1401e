"""API dependencies for dependency injection."""
import json
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cnc_admin.api.errors import BadRequest, Forbidden, to_http_error
from cnc_admin.database import get_db, get_session_maker
from cnc_admin.models.admin_user import AdminUser
from cnc_admin.models.permission import PermissionName
from cnc_admin.services.audit import AuditLogger
from cnc_admin.services.auth import AuthService
from cnc_admin.services.exceptions import AdminError
from cnc_admin.services.feedback import FeedbackService
from cnc_admin.services.permissions import PermissionService
from cnc_admin.services.service_requests import ServiceRequestService
from cnc_admin.services.signup import SignupService
from cnc_admin.services.users import UserService

# Missing or malformed headers are reported by get_current_user, not here
security = HTTPBearer(auto_error=False)


def get_session_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Bearer token from the Authorization header, if any."""
    if credentials is None:
        return None
    return credentials.credentials


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def get_user_agent(
    user_agent: Optional[str] = Header(None, alias="User-Agent"),
) -> str:
    return user_agent or "unknown"


async def read_json_body(request: Request) -> dict:
    """JSON object body for endpoints that dispatch on its contents."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise BadRequest("Invalid JSON body")
    if not isinstance(body, dict):
        raise BadRequest("Request body must be a JSON object")
    return body


# Service dependencies

def get_audit_logger(
    session_maker: async_sessionmaker = Depends(get_session_maker),
) -> AuditLogger:
    """Audit logger writing through its own sessions."""
    return AuditLogger(session_maker)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """Get auth service instance."""
    return AuthService(db)


async def get_permission_service(db: AsyncSession = Depends(get_db)) -> PermissionService:
    """Get permission service instance."""
    return PermissionService(db)


async def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    """Get user service instance."""
    return UserService(db)


async def get_signup_service(db: AsyncSession = Depends(get_db)) -> SignupService:
    """Get signup service instance."""
    return SignupService(db)


async def get_service_request_service(
    db: AsyncSession = Depends(get_db),
) -> ServiceRequestService:
    """Get service request service instance."""
    return ServiceRequestService(db)


async def get_feedback_service(db: AsyncSession = Depends(get_db)) -> FeedbackService:
    """Get feedback service instance."""
    return FeedbackService(db)


# Authentication dependencies

async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
) -> AdminUser:
    """Resolve the bearer session to an active user, or 401."""
    try:
        return await auth.verify_session(token)
    except AdminError as e:
        raise to_http_error(e)


async def ensure_permission(
    permissions: PermissionService,
    user: AdminUser,
    permission: PermissionName,
) -> None:
    """403 naming the capability unless the user holds it."""
    if not await permissions.has_permission(user, permission):
        raise Forbidden(f"Permission required: {permission.value}")


def require_permission(permission: PermissionName):
    """Dependency factory to require a single capability."""
    async def permission_checker(
        user: AdminUser = Depends(get_current_user),
        permissions: PermissionService = Depends(get_permission_service),
    ) -> AdminUser:
        await ensure_permission(permissions, user, permission)
        return user
    return permission_checker


async def require_super_admin(user: AdminUser = Depends(get_current_user)) -> AdminUser:
    """Require user to be a super admin."""
    if not user.is_super_admin:
        raise Forbidden("Super admin access required")
    return user
