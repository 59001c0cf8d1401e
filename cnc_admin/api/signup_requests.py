"""Signup request API endpoints."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.api.deps import (
    get_audit_logger,
    get_client_ip,
    get_signup_service,
    get_user_agent,
    require_super_admin,
)
from cnc_admin.api.errors import to_http_error
from cnc_admin.database import get_db
from cnc_admin.models.admin_user import AdminUser
from cnc_admin.models.audit import AuditAction
from cnc_admin.schemas.common import ApiResponse
from cnc_admin.schemas.signup import (
    SignupApprove,
    SignupApproveResponse,
    SignupListResponse,
    SignupReject,
    SignupRequestResponse,
    SignupStatistics,
    SignupSubmit,
    SignupSubmitResponse,
    SubmittedRequest,
)
from cnc_admin.services.audit import AuditLogger
from cnc_admin.services.exceptions import AdminError
from cnc_admin.services.signup import SignupService

router = APIRouter(prefix="/api/signup-request", tags=["Signup Requests"])


@router.post("", response_model=SignupSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_signup_request(
    data: SignupSubmit,
    db: AsyncSession = Depends(get_db),
    signups: SignupService = Depends(get_signup_service),
    ip_address: str = Depends(get_client_ip),
    user_agent: str = Depends(get_user_agent),
):
    """Public: apply for a back-office account."""
    try:
        request = await signups.submit(
            username=data.username,
            email=data.email,
            full_name=data.full_name,
            password=data.password,
            reason=data.reason,
            organization=data.organization,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    return SignupSubmitResponse(
        message="Signup request submitted successfully. An administrator will review your request.",
        request=SubmittedRequest.model_validate(request),
    )


@router.get("", response_model=SignupListResponse)
async def list_signup_requests(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    signups: SignupService = Depends(get_signup_service),
    current_user: AdminUser = Depends(require_super_admin),
):
    """List requests newest first with per-status statistics."""
    try:
        requests = await signups.list_requests(status=status_filter, limit=limit)
    except AdminError as e:
        raise to_http_error(e)
    statistics = await signups.statistics()

    return SignupListResponse(
        requests=[SignupRequestResponse.from_model(r) for r in requests],
        statistics=SignupStatistics(**statistics),
    )


@router.put("", response_model=SignupApproveResponse)
async def approve_signup_request(
    data: SignupApprove,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    signups: SignupService = Depends(get_signup_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(require_super_admin),
):
    """Approve a pending request, creating the account in the same transaction."""
    try:
        user = await signups.approve(
            current_user,
            data.request_id,
            data.role,
            custom_permissions=data.custom_permissions,
        )
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    audit.record(
        background_tasks,
        actor_id=current_user.id,
        action=AuditAction.APPROVE_SIGNUP,
        target_user_id=user.id,
        details={
            "request_id": data.request_id,
            "username": user.username,
            "role": data.role.value,
            "custom_permissions": [p.value for p in data.custom_permissions],
        },
        ip_address=ip_address,
    )
    return SignupApproveResponse(
        message="Signup request approved successfully",
        user_id=user.id,
    )


@router.delete("", response_model=ApiResponse)
async def reject_signup_request(
    data: SignupReject,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    signups: SignupService = Depends(get_signup_service),
    audit: AuditLogger = Depends(get_audit_logger),
    ip_address: str = Depends(get_client_ip),
    current_user: AdminUser = Depends(require_super_admin),
):
    """Reject a pending request."""
    try:
        request = await signups.reject(current_user, data.request_id, data.reason)
    except AdminError as e:
        raise to_http_error(e)
    await db.commit()

    audit.record(
        background_tasks,
        actor_id=current_user.id,
        action=AuditAction.REJECT_SIGNUP,
        details={
            "request_id": request.id,
            "username": request.username,
            "reason": request.rejection_reason,
        },
        ip_address=ip_address,
    )
    return ApiResponse(message="Signup request rejected")
