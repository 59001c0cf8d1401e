"""Visitor feedback storage and analytics."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.models.feedback import Feedback


logger = logging.getLogger(__name__)

RECENT_FEEDBACK_LIMIT = 50


def serialize_feedback(entry: Feedback) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "rating": entry.rating,
        "feedback": entry.feedback,
        "page": entry.page,
        "user_agent": entry.user_agent,
        "ip_address": entry.ip_address,
        "created_at": entry.created_at,
    }


def build_analytics(entries: List[Feedback]) -> Dict[str, Any]:
    """Aggregate feedback ordered newest first.

    Entries without a rating count towards totals but not averages.
    """
    ratings = [e.rating for e in entries if e.rating]
    distribution = {str(star): 0 for star in range(1, 6)}
    for rating in ratings:
        if 1 <= rating <= 5:
            distribution[str(rating)] += 1

    pages: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        page = pages.setdefault(entry.page or "unknown", {"count": 0, "totalRating": 0, "ratings": 0})
        page["count"] += 1
        if entry.rating:
            page["totalRating"] += entry.rating
            page["ratings"] += 1
    for page in pages.values():
        page["averageRating"] = page["totalRating"] / page["ratings"] if page["ratings"] else 0

    average = sum(ratings) / len(ratings) if ratings else 0
    return {
        "totalFeedback": len(entries),
        "totalRatings": len(ratings),
        "averageRating": round(average, 2),
        "ratingDistribution": distribution,
        "pageFeedbackAnalytics": pages,
        "recentFeedback": [serialize_feedback(e) for e in entries[:RECENT_FEEDBACK_LIMIT]],
        "lastUpdated": datetime.utcnow().isoformat(),
    }


class FeedbackService:
    """Service for storing feedback and summarising it."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit(
        self,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
        page: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Feedback:
        entry = Feedback(
            rating=rating,
            feedback=feedback or "",
            page=page or "unknown",
            user_agent=user_agent or "unknown",
            ip_address=ip_address or "unknown",
        )
        self.db.add(entry)
        await self.db.flush()

        logger.info(f"Feedback {entry.id} stored for page {entry.page}")
        return entry

    async def analytics(self) -> Dict[str, Any]:
        result = await self.db.execute(
            select(Feedback).order_by(desc(Feedback.created_at), desc(Feedback.id))
        )
        return build_analytics(list(result.scalars().all()))
