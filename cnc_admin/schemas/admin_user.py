"""Admin user management schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from cnc_admin.config import get_settings
from cnc_admin.models.admin_user import AdminRole
from cnc_admin.models.permission import PermissionName
from cnc_admin.schemas.common import ApiResponse, check_username, check_password


class AdminUserCreate(BaseModel):
    """Schema for creating an account from the back office."""
    username: str
    email: EmailStr
    password: str
    full_name: Optional[str] = None
    role: AdminRole = AdminRole.ADMIN

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password(v, get_settings().admin_password_min_length)

    class Config:
        json_schema_extra = {
            "example": {
                "username": "field_manager",
                "email": "manager@example.org",
                "password": "changeme",
                "full_name": "Field Manager",
                "role": "manager"
            }
        }


class AdminUserUpdate(BaseModel):
    """Partial update; omitted fields are left alone."""
    user_id: str = Field(..., alias="userId")
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    role: Optional[AdminRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        return check_username(v) if v is not None else v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return check_password(v, get_settings().admin_password_min_length)

    class Config:
        populate_by_name = True


class PermissionOverride(BaseModel):
    """One override, named either by permission or by catalogue id."""
    permission: Optional[PermissionName] = None
    permission_id: Optional[int] = None
    granted: bool = True

    @model_validator(mode="after")
    def require_permission(self) -> "PermissionOverride":
        if self.permission is None and self.permission_id is None:
            raise ValueError("permission or permission_id is required")
        return self


class PermissionsUpdate(BaseModel):
    """Full replacement of a user's override set."""
    user_id: str = Field(..., alias="userId")
    permissions: List[PermissionOverride]

    class Config:
        populate_by_name = True


class AdminUserResponse(BaseModel):
    """Account as listed in the back office. Never carries the hash."""
    id: str
    username: str
    email: str
    full_name: Optional[str] = None
    role: AdminRole
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminUserDetail(AdminUserResponse):
    permissions: List[str] = []


class PermissionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str

    class Config:
        from_attributes = True


class RolePermissionResponse(BaseModel):
    role: AdminRole
    permission_id: int
    permission_name: Optional[str] = None


class UserListResponse(ApiResponse):
    users: List[AdminUserResponse]
    permissions: List[PermissionResponse]
    role_permissions: List[RolePermissionResponse] = Field(..., alias="rolePermissions")


class UserDetailResponse(ApiResponse):
    user: AdminUserDetail


class UserResponse(ApiResponse):
    user: AdminUserResponse
