"""Admin user management service."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.models.admin_user import AdminUser, AdminRole, AdminSession
from cnc_admin.models.permission import UserPermission
from cnc_admin.services.exceptions import (
    AlreadyExists,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from cnc_admin.services.passwords import hash_password


logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Username or email already exists"

# Fields an update may touch, besides the password
UPDATABLE_FIELDS = ("username", "email", "full_name", "role", "is_active")


def ensure_can_assign_role(actor: AdminUser, role: AdminRole) -> None:
    """Only a super_admin may hand out super_admin."""
    if role == AdminRole.SUPER_ADMIN and not actor.is_super_admin:
        raise PermissionDenied("Only super admins can assign the super_admin role")


class UserService:
    """Service for managing back-office accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self) -> List[AdminUser]:
        result = await self.db.execute(
            select(AdminUser).order_by(AdminUser.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_user(self, user_id: str) -> AdminUser:
        result = await self.db.execute(
            select(AdminUser).where(AdminUser.id == user_id)
        )
        user = result.scalar_one_or_none()
        if not user:
            raise NotFound("User not found")
        return user

    async def is_taken(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """Whether another account already uses the username or email."""
        conditions = []
        if username:
            conditions.append(AdminUser.username == username)
        if email:
            conditions.append(AdminUser.email == email)
        if not conditions:
            return False

        query = select(AdminUser.id).where(or_(*conditions))
        if exclude_id:
            query = query.where(AdminUser.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def _flush_unique(self) -> None:
        # Concurrent inserts can slip past is_taken; the unique indexes decide
        try:
            await self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Uniqueness violation on admin_users: {e.orig}")
            raise AlreadyExists(DUPLICATE_MESSAGE)

    async def create_user(
        self,
        actor: Optional[AdminUser],
        username: str,
        email: str,
        password: Optional[str] = None,
        full_name: Optional[str] = None,
        role: AdminRole = AdminRole.ADMIN,
        password_hash: Optional[str] = None,
    ) -> AdminUser:
        """Create an account. Pass password_hash to reuse an existing hash.

        actor is None only for system bootstrap. Caller commits.
        """
        if actor is not None:
            ensure_can_assign_role(actor, role)

        if await self.is_taken(username=username, email=email):
            raise AlreadyExists(DUPLICATE_MESSAGE)

        if password_hash is None:
            if not password:
                raise ValidationFailed("password is required")
            password_hash = hash_password(password)

        user = AdminUser(
            username=username,
            email=email,
            password_hash=password_hash,
            full_name=full_name or username,
            role=role,
            is_active=True,
        )
        self.db.add(user)
        await self._flush_unique()

        logger.info(f"Created admin user {username} with role {role.value}")
        return user

    async def update_user(
        self,
        actor: AdminUser,
        user_id: str,
        changes: Dict[str, Any],
        password: Optional[str] = None,
    ) -> Tuple[AdminUser, Dict[str, Any]]:
        """Apply field changes. Returns the user and the audit-safe change set."""
        user = await self.get_user(user_id)

        if user.is_super_admin and not actor.is_super_admin:
            raise PermissionDenied("Only super admins can modify super admin accounts")

        role = changes.get("role")
        if role is not None:
            ensure_can_assign_role(actor, AdminRole(role))

        username = changes.get("username")
        email = changes.get("email")
        if (username or email) and await self.is_taken(username, email, exclude_id=user.id):
            raise AlreadyExists(DUPLICATE_MESSAGE)

        applied: Dict[str, Any] = {}
        for field_name in UPDATABLE_FIELDS:
            if field_name in changes and changes[field_name] is not None:
                value = changes[field_name]
                if field_name == "role":
                    value = AdminRole(value)
                setattr(user, field_name, value)
                applied[field_name] = value.value if isinstance(value, AdminRole) else value

        if password:
            user.password_hash = hash_password(password)
            applied["password"] = "[REDACTED]"

        if not applied:
            raise ValidationFailed("No changes provided")

        await self._flush_unique()
        return user, applied

    async def delete_user(self, actor: AdminUser, user_id: str) -> AdminUser:
        """Delete an account with its sessions and permission overrides."""
        if actor.id == user_id:
            raise ValidationFailed("You cannot delete your own account")

        user = await self.get_user(user_id)
        if user.is_super_admin and not actor.is_super_admin:
            raise PermissionDenied("Only super admins can delete super admin accounts")

        await self.db.execute(
            delete(AdminSession).where(AdminSession.admin_user_id == user_id)
        )
        await self.db.execute(
            delete(UserPermission).where(UserPermission.admin_user_id == user_id)
        )
        await self.db.delete(user)
        await self.db.flush()

        logger.info(f"Deleted admin user {user.username} by {actor.username}")
        return user
