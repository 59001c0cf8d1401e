"""Permission resolution for back-office users.

Effective permissions for every role except super_admin are::

    role defaults  +  overrides with granted=True  -  overrides with granted=False

super_admin always holds the universal set; its override rows are never read.
The RBAC tables are optional at deploy time, so a database error while reading
them degrades to "whatever could be read" rather than failing the request.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, delete
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.models.admin_user import AdminUser, AdminRole
from cnc_admin.models.permission import (
    Permission,
    PermissionName,
    RolePermission,
    UserPermission,
    ALL_PERMISSIONS,
)
from cnc_admin.services.exceptions import ValidationFailed


logger = logging.getLogger(__name__)

_CATALOGUE_NAMES = frozenset(p.value for p in PermissionName)


@dataclass(frozen=True)
class EffectivePermissions:
    """Resolved capability set for one user."""
    universal: bool = False
    granted: FrozenSet[PermissionName] = field(default_factory=frozenset)

    def allows(self, name: PermissionName) -> bool:
        return self.universal or name in self.granted

    def as_list(self) -> List[str]:
        if self.universal:
            return [ALL_PERMISSIONS]
        return sorted(p.value for p in self.granted)


class PermissionService:
    """Resolves and manages user permissions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, user: AdminUser) -> EffectivePermissions:
        """Compute the effective permission set for a user."""
        if user.role == AdminRole.SUPER_ADMIN:
            return EffectivePermissions(universal=True, granted=frozenset(PermissionName))

        role_defaults = await self._role_defaults(user.role)
        if role_defaults is None:
            return EffectivePermissions()

        overrides = await self._overrides(user.id)
        if overrides is None:
            return EffectivePermissions(granted=role_defaults)

        granted = {name for name, is_granted in overrides.items() if is_granted}
        revoked = {name for name, is_granted in overrides.items() if not is_granted}
        return EffectivePermissions(granted=frozenset((role_defaults | granted) - revoked))

    async def has_permission(self, user: AdminUser, name: PermissionName) -> bool:
        """Authorization gate check."""
        permissions = await self.resolve(user)
        return permissions.allows(name)

    async def _read(self, statement, table: str):
        """Run a read inside a savepoint; None when the table is unavailable.

        The savepoint keeps the surrounding transaction usable on PostgreSQL
        after a failed statement.
        """
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(statement)
                return result.all()
        except DBAPIError as e:
            logger.warning(f"RBAC table {table} unavailable, falling back: {e.orig}")
            return None

    async def _role_defaults(self, role: AdminRole) -> Optional[FrozenSet[PermissionName]]:
        rows = await self._read(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role == role),
            "role_permissions",
        )
        if rows is None:
            return None
        return frozenset(PermissionName(name) for (name,) in rows if name in _CATALOGUE_NAMES)

    async def _overrides(self, user_id: str) -> Optional[Dict[PermissionName, bool]]:
        rows = await self._read(
            select(Permission.name, UserPermission.granted)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .where(UserPermission.admin_user_id == user_id),
            "user_permissions",
        )
        if rows is None:
            return None
        return {PermissionName(name): granted for name, granted in rows if name in _CATALOGUE_NAMES}

    async def list_catalogue(self) -> List[Permission]:
        """All permissions ordered by category. Empty when the table is missing."""
        rows = await self._read(
            select(Permission).order_by(Permission.category, Permission.name),
            "permissions",
        )
        return [row[0] for row in rows or []]

    async def list_role_permissions(self) -> List[RolePermission]:
        rows = await self._read(
            select(RolePermission).order_by(RolePermission.role, RolePermission.permission_id),
            "role_permissions",
        )
        return [row[0] for row in rows or []]

    async def names_for_ids(self, ids: Iterable[int]) -> Dict[int, PermissionName]:
        """Map catalogue ids to permission names; unknown ids are rejected."""
        ids = set(ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(Permission.id, Permission.name).where(Permission.id.in_(ids))
        )
        by_id = {
            permission_id: PermissionName(name)
            for permission_id, name in result.all()
            if name in _CATALOGUE_NAMES
        }
        missing = ids - set(by_id)
        if missing:
            raise ValidationFailed(
                f"Unknown permissions: {', '.join(str(i) for i in sorted(missing))}"
            )
        return by_id

    async def replace_overrides(
        self,
        user_id: str,
        overrides: Sequence[Tuple[PermissionName, bool]],
    ) -> None:
        """Replace a user's override rows with (PermissionName, granted) pairs.

        Flushes but does not commit; the caller owns the transaction.
        """
        # Last entry wins when a permission is listed twice
        final = {name: granted for name, granted in overrides}

        names = {name.value for name in final}
        result = await self.db.execute(select(Permission).where(Permission.name.in_(names)))
        by_name = {p.name: p for p in result.scalars().all()}
        missing = names - set(by_name)
        if missing:
            raise ValidationFailed(f"Unknown permissions: {', '.join(sorted(missing))}")

        await self.db.execute(
            delete(UserPermission).where(UserPermission.admin_user_id == user_id)
        )
        for name, granted in final.items():
            self.db.add(UserPermission(
                admin_user_id=user_id,
                permission_id=by_name[name.value].id,
                granted=granted,
            ))
        await self.db.flush()
