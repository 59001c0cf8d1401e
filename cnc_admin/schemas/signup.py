"""Signup request schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from cnc_admin.config import get_settings
from cnc_admin.models.admin_user import AdminRole
from cnc_admin.models.permission import PermissionName
from cnc_admin.models.signup_request import SignupRequest, SignupStatus
from cnc_admin.schemas.common import (
    ApiResponse,
    check_username,
    check_password,
    check_not_blank,
)


class SignupSubmit(BaseModel):
    """Public application for an account."""
    username: str
    email: EmailStr
    full_name: str
    password: str
    reason: Optional[str] = None
    organization: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        return check_not_blank(v, "full_name")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password(v, get_settings().signup_password_min_length)


class SignupApprove(BaseModel):
    request_id: str = Field(..., alias="requestId")
    role: AdminRole
    custom_permissions: List[PermissionName] = Field(default_factory=list, alias="customPermissions")

    class Config:
        populate_by_name = True


class SignupReject(BaseModel):
    request_id: str = Field(..., alias="requestId")
    reason: Optional[str] = None

    class Config:
        populate_by_name = True


class SubmittedRequest(BaseModel):
    """What the applicant gets back. No hash, no review fields."""
    id: str
    username: str
    email: str
    full_name: str
    requested_at: datetime

    class Config:
        from_attributes = True


class ReviewerSummary(BaseModel):
    id: str
    username: str
    full_name: Optional[str] = None

    class Config:
        from_attributes = True


class SignupRequestResponse(BaseModel):
    id: str
    username: str
    email: str
    full_name: str
    reason: Optional[str] = None
    organization: Optional[str] = None
    status: SignupStatus
    requested_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    reviewed_by_user: Optional[ReviewerSummary] = None
    rejection_reason: Optional[str] = None
    approved_role: Optional[str] = None
    created_user_id: Optional[str] = None
    ip_address: Optional[str] = None

    @classmethod
    def from_model(cls, request: SignupRequest) -> "SignupRequestResponse":
        reviewer = request.reviewer
        return cls(
            id=request.id,
            username=request.username,
            email=request.email,
            full_name=request.full_name,
            reason=request.reason,
            organization=request.organization,
            status=request.status,
            requested_at=request.requested_at,
            reviewed_at=request.reviewed_at,
            reviewed_by=request.reviewed_by,
            reviewed_by_user=ReviewerSummary.model_validate(reviewer) if reviewer else None,
            rejection_reason=request.rejection_reason,
            approved_role=request.approved_role,
            created_user_id=request.created_user_id,
            ip_address=request.ip_address,
        )


class SignupStatistics(BaseModel):
    total_requests: int = 0
    pending_requests: int = 0
    approved_requests: int = 0
    rejected_requests: int = 0


class SignupSubmitResponse(ApiResponse):
    request: SubmittedRequest


class SignupListResponse(ApiResponse):
    requests: List[SignupRequestResponse]
    statistics: SignupStatistics


class SignupApproveResponse(ApiResponse):
    user_id: str = Field(..., alias="userId")
