"""Seed data for the permission catalogue, role defaults and first account."""
import asyncio
import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.config import get_settings
from cnc_admin.models.admin_user import AdminUser, AdminRole
from cnc_admin.models.permission import (
    Permission,
    PermissionName,
    RolePermission,
    PERMISSION_CATALOGUE,
    ROLE_DEFAULT_PERMISSIONS,
)
from cnc_admin.services.users import UserService


logger = logging.getLogger(__name__)


async def seed_permissions(db: AsyncSession) -> Dict[PermissionName, Permission]:
    """Insert missing catalogue entries. Existing rows are left untouched."""
    result = await db.execute(select(Permission))
    existing = {p.name: p for p in result.scalars().all()}

    permissions: Dict[PermissionName, Permission] = {}
    created = 0
    for name, (description, category) in PERMISSION_CATALOGUE.items():
        permission = existing.get(name.value)
        if permission is None:
            permission = Permission(name=name.value, description=description, category=category)
            db.add(permission)
            created += 1
        permissions[name] = permission
    await db.flush()

    logger.info(f"Permission catalogue seeded ({created} new)")
    return permissions


async def seed_role_permissions(
    db: AsyncSession,
    permissions: Dict[PermissionName, Permission],
) -> int:
    """Insert missing role default rows. super_admin gets none; it is universal."""
    result = await db.execute(select(RolePermission.role, RolePermission.permission_id))
    existing = {(role, permission_id) for role, permission_id in result.all()}

    created = 0
    for role, names in ROLE_DEFAULT_PERMISSIONS.items():
        if role == AdminRole.SUPER_ADMIN:
            continue
        for name in names:
            permission_id = permissions[name].id
            if (role, permission_id) in existing:
                continue
            db.add(RolePermission(role=role, permission_id=permission_id))
            created += 1
    await db.flush()

    logger.info(f"Role defaults seeded ({created} new)")
    return created


async def seed_bootstrap_admin(
    db: AsyncSession,
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> Optional[AdminUser]:
    """Create the first super_admin when configured and not yet present."""
    if not (username and email and password):
        return None

    result = await db.execute(select(AdminUser).where(AdminUser.username == username))
    existing = result.scalar_one_or_none()
    if existing:
        logger.info(f"Bootstrap admin {username} already exists")
        return existing

    user = await UserService(db).create_user(
        actor=None,
        username=username,
        email=email,
        password=password,
        full_name="Super Administrator",
        role=AdminRole.SUPER_ADMIN,
    )
    logger.info(f"Created bootstrap super admin: {username}")
    return user


async def seed_all(db: AsyncSession) -> None:
    """
    Run all seed operations.

    This is idempotent - safe to run multiple times.
    """
    settings = get_settings()

    logger.info("Starting seed process...")
    permissions = await seed_permissions(db)
    await seed_role_permissions(db, permissions)
    await seed_bootstrap_admin(
        db,
        settings.bootstrap_admin_username,
        settings.bootstrap_admin_email,
        settings.bootstrap_admin_password,
    )
    await db.commit()
    logger.info("Seed process completed")


async def run_seeds():
    """Entry point for running seeds from command line."""
    from cnc_admin.database import async_session_maker

    async with async_session_maker() as db:
        await seed_all(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_seeds())
