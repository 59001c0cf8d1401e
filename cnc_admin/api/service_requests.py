"""Service request API endpoints."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.api.deps import (
    ensure_permission,
    get_audit_logger,
    get_client_ip,
    get_current_user,
    get_permission_service,
    get_service_request_service,
    require_permission,
)
from cnc_admin.api.errors import BadRequest, to_http_error
from cnc_admin.database import get_db
from cnc_admin.models.admin_user import AdminUser
from cnc_admin.models.audit import AuditAction
from cnc_admin.models.permission import PermissionName
from cnc_admin.schemas.service_request import (
    Pagination,
    RequestStatistics,
    ServiceRequestCreate,
    ServiceRequestCreated,
    ServiceRequestList,
    ServiceRequestPatch,
    ServiceRequestPut,
    ServiceRequestResponse,
    ServiceRequestUpdated,
)
from cnc_admin.services.audit import AuditLogger
from cnc_admin.services.exceptions import AdminError
from cnc_admin.services.permissions import PermissionService
from cnc_admin.services.service_requests import ServiceRequestService

router = APIRouter(prefix="/api/service-requests", tags=["Service Requests"])


@router.post("", response_model=ServiceRequestCreated)
async def create_service_request(
    data: ServiceRequestCreate,
    db: AsyncSession = Depends(get_db),
    requests: ServiceRequestService = Depends(get_service_request_service),
):
    """Public: submit a request from an offering page."""
    request = await requests.create(
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        customer_phone=data.customer_phone,
        customer_address=data.customer_address,
        offering_category=data.offering_category,
        offering_name=data.offering_name,
        request_details=data.request_details,
        page_url=data.page_url,
    )
    await db.commit()

    return ServiceRequestCreated(
        message="Request received successfully",
        request_id=request.id,
        data=ServiceRequestResponse.model_validate(request),
    )


@router.get("", response_model=ServiceRequestList)
async def list_service_requests(
    status: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    requests: ServiceRequestService = Depends(get_service_request_service),
    current_user: AdminUser = Depends(require_permission(PermissionName.VIEW_REQUESTS)),
):
    """Filtered, sorted page of requests with status statistics."""
    try:
        page, total = await requests.list_requests(
            status=status,
            category=category,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    except AdminError as e:
        raise to_http_error(e)
    statistics = await requests.status_counts(total)

    return ServiceRequestList(
        data=[ServiceRequestResponse.model_validate(r) for r in page],
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        ),
        statistics=RequestStatistics(**statistics),
    )


@router.patch("", response_model=ServiceRequestUpdated)
async def update_service_request(
    data: ServiceRequestPatch,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    requests: ServiceRequestService = Depends(get_service_request_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(require_permission(PermissionName.UPDATE_REQUESTS)),
):
    """Change status, priority or notes."""
    try:
        request, changes = await requests.update(
            data.id,
            status=data.status,
            priority=data.priority,
            notes=data.notes,
        )
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    audit.record(
        background_tasks,
        actor_id=current_user.id,
        action=AuditAction.UPDATE_REQUEST,
        details={"request_id": request.id, "changes": changes},
        ip_address=ip_address,
    )
    return ServiceRequestUpdated(
        message="Request updated successfully",
        data=ServiceRequestResponse.model_validate(request),
    )


@router.put("", response_model=ServiceRequestUpdated)
async def update_status_or_comment(
    data: ServiceRequestPut,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    requests: ServiceRequestService = Depends(get_service_request_service),
    permissions: PermissionService = Depends(get_permission_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(get_current_user),
):
    """Set the status and/or append a comment.

    Status changes need update_requests, comments need add_comments.
    """
    if data.status is None and not data.comment:
        raise BadRequest("status or comment is required")

    if data.status is not None:
        await ensure_permission(permissions, current_user, PermissionName.UPDATE_REQUESTS)
    if data.comment:
        await ensure_permission(permissions, current_user, PermissionName.ADD_COMMENTS)

    try:
        request = await requests.get(data.id)
        if data.status is not None:
            request, _ = await requests.update(data.id, status=data.status)
        if data.comment:
            request = await requests.add_comment(
                data.id,
                author=current_user.full_name or current_user.username,
                content=data.comment,
            )
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    if data.status is not None:
        audit.record(
            background_tasks,
            actor_id=current_user.id,
            action=AuditAction.UPDATE_REQUEST,
            details={"request_id": request.id, "changes": {"status": data.status.value}},
            ip_address=ip_address,
        )
    if data.comment:
        audit.record(
            background_tasks,
            actor_id=current_user.id,
            action=AuditAction.ADD_COMMENT,
            details={"request_id": request.id, "comment": data.comment},
            ip_address=ip_address,
        )
    return ServiceRequestUpdated(
        message="Request updated successfully",
        data=ServiceRequestResponse.model_validate(request),
    )
