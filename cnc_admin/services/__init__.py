"""Business logic services."""
from cnc_admin.services.audit import AuditLogger
from cnc_admin.services.auth import AuthService
from cnc_admin.services.feedback import FeedbackService
from cnc_admin.services.permissions import PermissionService, EffectivePermissions
from cnc_admin.services.service_requests import ServiceRequestService
from cnc_admin.services.signup import SignupService
from cnc_admin.services.users import UserService

__all__ = [
    "AuditLogger",
    "AuthService",
    "FeedbackService",
    "PermissionService",
    "EffectivePermissions",
    "ServiceRequestService",
    "SignupService",
    "UserService",
]
