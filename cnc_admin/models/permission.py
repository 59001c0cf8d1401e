"""RBAC models: permission catalogue, role defaults and per-user overrides."""
import enum
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Tuple

from sqlalchemy import String, Enum, DateTime, Boolean, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cnc_admin.database import Base
from cnc_admin.models.admin_user import AdminRole, enum_values


class PermissionName(str, enum.Enum):
    """Closed set of back-office capabilities."""
    VIEW_OVERVIEW = "view_overview"
    VIEW_REQUESTS = "view_requests"
    UPDATE_REQUESTS = "update_requests"
    ADD_COMMENTS = "add_comments"
    VIEW_FEEDBACK = "view_feedback"
    VIEW_USERS = "view_users"
    CREATE_USERS = "create_users"
    UPDATE_USERS = "update_users"
    DELETE_USERS = "delete_users"
    MANAGE_PERMISSIONS = "manage_permissions"
    VIEW_AUDIT = "view_audit"


# Returned in place of a permission list for roles that hold everything
ALL_PERMISSIONS = "*"


# name -> (description, category)
PERMISSION_CATALOGUE: Dict[PermissionName, Tuple[str, str]] = {
    PermissionName.VIEW_OVERVIEW: ("View the dashboard overview", "dashboard"),
    PermissionName.VIEW_REQUESTS: ("View service requests", "requests"),
    PermissionName.UPDATE_REQUESTS: ("Change status, priority and notes of service requests", "requests"),
    PermissionName.ADD_COMMENTS: ("Comment on service requests", "requests"),
    PermissionName.VIEW_FEEDBACK: ("View visitor feedback and analytics", "feedback"),
    PermissionName.VIEW_USERS: ("View admin users", "users"),
    PermissionName.CREATE_USERS: ("Create admin users", "users"),
    PermissionName.UPDATE_USERS: ("Edit admin users", "users"),
    PermissionName.DELETE_USERS: ("Delete admin users", "users"),
    PermissionName.MANAGE_PERMISSIONS: ("Grant or revoke individual permissions", "users"),
    PermissionName.VIEW_AUDIT: ("View the audit log", "audit"),
}

_VIEWER = frozenset({
    PermissionName.VIEW_OVERVIEW,
    PermissionName.VIEW_REQUESTS,
    PermissionName.VIEW_FEEDBACK,
})
_MANAGER = _VIEWER | {
    PermissionName.UPDATE_REQUESTS,
    PermissionName.ADD_COMMENTS,
    PermissionName.VIEW_USERS,
}
_ADMIN = _MANAGER | {
    PermissionName.CREATE_USERS,
    PermissionName.UPDATE_USERS,
    PermissionName.DELETE_USERS,
    PermissionName.MANAGE_PERMISSIONS,
    PermissionName.VIEW_AUDIT,
}

# Seed data for role_permissions. super_admin is universal and never consults the table.
ROLE_DEFAULT_PERMISSIONS: Dict[AdminRole, FrozenSet[PermissionName]] = {
    AdminRole.VIEWER: _VIEWER,
    AdminRole.MANAGER: frozenset(_MANAGER),
    AdminRole.ADMIN: frozenset(_ADMIN),
    AdminRole.SUPER_ADMIN: frozenset(PermissionName),
}


class Permission(Base):
    """Named capability, static reference data."""
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class RolePermission(Base):
    """Permission granted to every holder of a role."""
    __tablename__ = "role_permissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    role: Mapped[AdminRole] = mapped_column(
        Enum(AdminRole, name="adminrole", values_callable=enum_values), nullable=False, index=True
    )
    permission_id: Mapped[int] = mapped_column(
        ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False
    )

    permission: Mapped[Permission] = relationship("Permission", lazy="joined")

    __table_args__ = (
        UniqueConstraint("role", "permission_id", name="uq_role_permission"),
    )


class UserPermission(Base):
    """Per-user grant (granted=True) or revoke (granted=False) over role defaults."""
    __tablename__ = "user_permissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    admin_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    permission_id: Mapped[int] = mapped_column(
        ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False
    )
    granted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    permission: Mapped[Permission] = relationship("Permission", lazy="joined")

    __table_args__ = (
        UniqueConstraint("admin_user_id", "permission_id", name="uq_user_permission"),
    )
