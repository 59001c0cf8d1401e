"""Feedback API endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.api.deps import (
    get_client_ip,
    get_feedback_service,
    require_permission,
)
from cnc_admin.database import get_db
from cnc_admin.models.admin_user import AdminUser
from cnc_admin.models.permission import PermissionName
from cnc_admin.schemas.feedback import (
    FeedbackAnalyticsResponse,
    FeedbackCreate,
    FeedbackCreated,
    FeedbackResponse,
)
from cnc_admin.services.feedback import FeedbackService

router = APIRouter(prefix="/api/feedback-supabase", tags=["Feedback"])


@router.post("", response_model=FeedbackCreated)
async def submit_feedback(
    data: FeedbackCreate,
    db: AsyncSession = Depends(get_db),
    feedback: FeedbackService = Depends(get_feedback_service),
    ip_address: str = Depends(get_client_ip),
):
    """Public: leave a rating and/or a comment about a page."""
    entry = await feedback.submit(
        rating=data.rating,
        feedback=data.feedback,
        page=data.page,
        user_agent=data.user_agent,
        ip_address=ip_address,
    )
    await db.commit()

    return FeedbackCreated(
        message="Feedback received successfully",
        id=entry.id,
        data=FeedbackResponse.model_validate(entry),
    )


@router.get("", response_model=FeedbackAnalyticsResponse)
async def get_feedback_analytics(
    feedback: FeedbackService = Depends(get_feedback_service),
    current_user: AdminUser = Depends(require_permission(PermissionName.VIEW_FEEDBACK)),
):
    """Aggregate ratings overall and per page."""
    analytics = await feedback.analytics()
    return FeedbackAnalyticsResponse(analytics=analytics)
