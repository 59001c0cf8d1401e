"""Pydantic schemas for API validation."""
from cnc_admin.schemas.common import ApiResponse, ErrorResponse
from cnc_admin.schemas.auth import (
    LoginRequest,
    LoginResponse,
    SessionUser,
    VerifyResponse,
    PermissionsResponse,
)
from cnc_admin.schemas.admin_user import (
    AdminUserCreate,
    AdminUserUpdate,
    AdminUserResponse,
    AdminUserDetail,
    PermissionsUpdate,
    UserListResponse,
    UserDetailResponse,
    UserResponse,
)
from cnc_admin.schemas.signup import (
    SignupSubmit,
    SignupApprove,
    SignupReject,
    SignupRequestResponse,
    SignupListResponse,
)
from cnc_admin.schemas.service_request import (
    ServiceRequestCreate,
    ServiceRequestPatch,
    ServiceRequestPut,
    ServiceRequestResponse,
    ServiceRequestList,
)
from cnc_admin.schemas.feedback import (
    FeedbackCreate,
    FeedbackResponse,
    FeedbackAnalyticsResponse,
)
from cnc_admin.schemas.audit import AuditLogEntryResponse, AuditLogResponse

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "LoginRequest",
    "LoginResponse",
    "SessionUser",
    "VerifyResponse",
    "PermissionsResponse",
    "AdminUserCreate",
    "AdminUserUpdate",
    "AdminUserResponse",
    "AdminUserDetail",
    "PermissionsUpdate",
    "UserListResponse",
    "UserDetailResponse",
    "UserResponse",
    "SignupSubmit",
    "SignupApprove",
    "SignupReject",
    "SignupRequestResponse",
    "SignupListResponse",
    "ServiceRequestCreate",
    "ServiceRequestPatch",
    "ServiceRequestPut",
    "ServiceRequestResponse",
    "ServiceRequestList",
    "FeedbackCreate",
    "FeedbackResponse",
    "FeedbackAnalyticsResponse",
    "AuditLogEntryResponse",
    "AuditLogResponse",
]
