"""Database models package."""
from cnc_admin.models.admin_user import AdminUser, AdminRole, AdminSession
from cnc_admin.models.permission import (
    Permission,
    PermissionName,
    RolePermission,
    UserPermission,
    ALL_PERMISSIONS,
    PERMISSION_CATALOGUE,
    ROLE_DEFAULT_PERMISSIONS,
)
from cnc_admin.models.signup_request import SignupRequest, SignupStatus
from cnc_admin.models.service_request import ServiceRequest, RequestStatus, RequestPriority
from cnc_admin.models.feedback import Feedback
from cnc_admin.models.audit import AuditLogEntry, AuditAction

__all__ = [
    "AdminUser",
    "AdminRole",
    "AdminSession",
    "Permission",
    "PermissionName",
    "RolePermission",
    "UserPermission",
    "ALL_PERMISSIONS",
    "PERMISSION_CATALOGUE",
    "ROLE_DEFAULT_PERMISSIONS",
    "SignupRequest",
    "SignupStatus",
    "ServiceRequest",
    "RequestStatus",
    "RequestPriority",
    "Feedback",
    "AuditLogEntry",
    "AuditAction",
]
