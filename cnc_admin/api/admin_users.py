"""Admin user management API endpoints."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.api.deps import (
    ensure_permission,
    get_audit_logger,
    get_client_ip,
    get_current_user,
    get_permission_service,
    get_user_service,
    require_permission,
)
from cnc_admin.api.errors import to_http_error
from cnc_admin.config import get_settings
from cnc_admin.database import get_db
from cnc_admin.models.admin_user import AdminUser
from cnc_admin.models.audit import AuditAction
from cnc_admin.models.permission import PermissionName
from cnc_admin.schemas.admin_user import (
    AdminUserCreate,
    AdminUserDetail,
    AdminUserResponse,
    AdminUserUpdate,
    PermissionResponse,
    PermissionsUpdate,
    RolePermissionResponse,
    UserDetailResponse,
    UserListResponse,
    UserResponse,
)
from cnc_admin.schemas.audit import AuditLogResponse
from cnc_admin.schemas.auth import PermissionsResponse
from cnc_admin.schemas.common import ApiResponse
from cnc_admin.services.audit import AuditLogger
from cnc_admin.services.exceptions import AdminError, PermissionDenied
from cnc_admin.services.permissions import PermissionService
from cnc_admin.services.users import UserService

router = APIRouter(prefix="/api/admin-users", tags=["Admin Users"])

settings = get_settings()


@router.get("")
async def get_admin_users(
    user_id: Optional[str] = Query(None, alias="userId"),
    audit_view: bool = Query(False, alias="audit"),
    action: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    users: UserService = Depends(get_user_service),
    permissions: PermissionService = Depends(get_permission_service),
    current_user: AdminUser = Depends(get_current_user),
):
    """
    List users, show one user, or read the audit log.

    - no parameters: users, the permission catalogue and role defaults
    - ``userId``: one user with effective permissions
    - ``audit=true``: audit entries, optionally filtered by ``action``
    """
    if audit_view:
        await ensure_permission(permissions, current_user, PermissionName.VIEW_AUDIT)
        entries = await AuditLogger.list_entries(
            db,
            action=action,
            limit=limit or settings.audit_log_default_limit,
        )
        return AuditLogResponse(audit_logs=entries)

    await ensure_permission(permissions, current_user, PermissionName.VIEW_USERS)

    if user_id:
        try:
            user = await users.get_user(user_id)
        except AdminError as e:
            raise to_http_error(e)
        effective = await permissions.resolve(user)
        detail = AdminUserDetail.model_validate(user)
        detail.permissions = effective.as_list()
        return UserDetailResponse(user=detail)

    all_users = await users.list_users()
    catalogue = await permissions.list_catalogue()
    role_permissions = await permissions.list_role_permissions()
    return UserListResponse(
        users=[AdminUserResponse.model_validate(u) for u in all_users],
        permissions=[PermissionResponse.model_validate(p) for p in catalogue],
        role_permissions=[
            RolePermissionResponse(
                role=rp.role,
                permission_id=rp.permission_id,
                permission_name=rp.permission.name if rp.permission else None,
            )
            for rp in role_permissions
        ],
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_user(
    data: AdminUserCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    users: UserService = Depends(get_user_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(require_permission(PermissionName.CREATE_USERS)),
):
    """Create a back-office account. Only super admins may create super admins."""
    try:
        user = await users.create_user(
            actor=current_user,
            username=data.username,
            email=data.email,
            password=data.password,
            full_name=data.full_name,
            role=data.role,
        )
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    audit.record(
        background_tasks,
        actor_id=current_user.id,
        action=AuditAction.CREATE_USER,
        target_user_id=user.id,
        details={"username": user.username, "role": user.role.value},
        ip_address=ip_address,
    )
    return UserResponse(
        message="User created successfully",
        user=AdminUserResponse.model_validate(user),
    )


@router.put("", response_model=UserResponse)
async def update_admin_user(
    data: AdminUserUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    users: UserService = Depends(get_user_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(require_permission(PermissionName.UPDATE_USERS)),
):
    """Update profile fields, role, active flag or password."""
    changes = data.model_dump(exclude_unset=True, exclude={"user_id", "password"})
    try:
        user, applied = await users.update_user(
            current_user, data.user_id, changes, password=data.password
        )
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    audit.record(
        background_tasks,
        actor_id=current_user.id,
        action=AuditAction.UPDATE_USER,
        target_user_id=user.id,
        details={"username": user.username, "changes": applied},
        ip_address=ip_address,
    )
    return UserResponse(
        message="User updated successfully",
        user=AdminUserResponse.model_validate(user),
    )


@router.patch("", response_model=PermissionsResponse)
async def update_user_permissions(
    data: PermissionsUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    users: UserService = Depends(get_user_service),
    permissions: PermissionService = Depends(get_permission_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(require_permission(PermissionName.MANAGE_PERMISSIONS)),
):
    """Replace a user's permission overrides."""
    try:
        user = await users.get_user(data.user_id)
        if user.is_super_admin and not current_user.is_super_admin:
            raise PermissionDenied("Only super admins can modify super admin accounts")
        by_id = await permissions.names_for_ids(
            o.permission_id for o in data.permissions if o.permission is None
        )
        overrides = [
            (o.permission or by_id[o.permission_id], o.granted) for o in data.permissions
        ]
        await permissions.replace_overrides(user.id, overrides)
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    audit.record(
        background_tasks,
        actor_id=current_user.id,
        action=AuditAction.UPDATE_PERMISSIONS,
        target_user_id=user.id,
        details={
            "username": user.username,
            "permissions": [
                {"permission": name.value, "granted": granted}
                for name, granted in overrides
            ],
        },
        ip_address=ip_address,
    )
    effective = await permissions.resolve(user)
    return PermissionsResponse(
        message="Permissions updated successfully",
        permissions=effective.as_list(),
    )


@router.delete("", response_model=ApiResponse)
async def delete_admin_user(
    background_tasks: BackgroundTasks,
    user_id: str = Query(..., alias="userId"),
    db: AsyncSession = Depends(get_db),
    users: UserService = Depends(get_user_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(require_permission(PermissionName.DELETE_USERS)),
):
    """Delete an account together with its sessions and overrides."""
    try:
        user = await users.delete_user(current_user, user_id)
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    audit.record(
        background_tasks,
        actor_id=current_user.id,
        action=AuditAction.DELETE_USER,
        target_user_id=user_id,
        details={"username": user.username, "email": user.email},
        ip_address=ip_address,
    )
    return ApiResponse(message="User deleted successfully")
