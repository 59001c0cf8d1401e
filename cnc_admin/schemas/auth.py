"""Authentication schemas."""
from typing import List, Optional

from pydantic import BaseModel, Field

from cnc_admin.models.admin_user import AdminRole
from cnc_admin.schemas.common import ApiResponse


class LoginRequest(BaseModel):
    """Schema for login. Blank values are rejected in the handler with one message."""
    username: Optional[str] = None
    password: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "username": "alice",
                "password": "secret123"
            }
        }


class SessionUser(BaseModel):
    """User as echoed to the browser after login or verify."""
    id: str
    username: str
    email: str
    full_name: Optional[str] = None
    role: AdminRole

    class Config:
        from_attributes = True


class LoginResponse(ApiResponse):
    session_token: str = Field(..., alias="sessionToken")
    user: SessionUser


class VerifyResponse(ApiResponse):
    user: SessionUser


class PermissionsResponse(ApiResponse):
    permissions: List[str]


class AuditLogRequest(BaseModel):
    limit: Optional[int] = Field(None, ge=1, le=1000)
    action: Optional[str] = None
