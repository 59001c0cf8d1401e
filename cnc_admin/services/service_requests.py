"""Service request intake and triage."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, or_, asc, desc
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.models.service_request import ServiceRequest, RequestStatus, RequestPriority
from cnc_admin.services.exceptions import NotFound, ValidationFailed


logger = logging.getLogger(__name__)

# Columns a listing may be ordered by
SORTABLE_COLUMNS = {
    "created_at": ServiceRequest.created_at,
    "updated_at": ServiceRequest.updated_at,
    "status": ServiceRequest.status,
    "priority": ServiceRequest.priority,
    "customer_name": ServiceRequest.customer_name,
    "offering_category": ServiceRequest.offering_category,
    "offering_name": ServiceRequest.offering_name,
}

# status value -> statistics key
_STATISTIC_KEYS = {
    RequestStatus.PENDING.value: "pending",
    RequestStatus.IN_PROGRESS.value: "inProgress",
    RequestStatus.COMPLETED.value: "completed",
    RequestStatus.CANCELLED.value: "cancelled",
}


class ServiceRequestService:
    """Service for creating, listing and updating service requests."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        customer_name: str,
        customer_email: str,
        customer_phone: str,
        customer_address: str,
        offering_category: Optional[str] = None,
        offering_name: Optional[str] = None,
        request_details: Optional[dict] = None,
        page_url: Optional[str] = None,
    ) -> ServiceRequest:
        details = dict(request_details or {})
        if page_url:
            details["page_url"] = page_url

        request = ServiceRequest(
            offering_category=offering_category or "unknown",
            offering_name=offering_name or "unknown",
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            customer_address=customer_address,
            request_details=details,
            status=RequestStatus.PENDING.value,
            priority=RequestPriority.NORMAL.value,
            comments=[],
        )
        self.db.add(request)
        await self.db.flush()

        logger.info(f"Service request {request.id} stored for {offering_category or 'unknown'}")
        return request

    async def get(self, request_id: str) -> ServiceRequest:
        result = await self.db.execute(
            select(ServiceRequest).where(ServiceRequest.id == request_id)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFound("Request not found")
        return request

    async def list_requests(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[ServiceRequest], int]:
        """One page of requests and the total matching the filters."""
        if sort_by not in SORTABLE_COLUMNS:
            raise ValidationFailed(
                f"sortBy must be one of: {', '.join(sorted(SORTABLE_COLUMNS))}"
            )

        query = select(ServiceRequest)
        if status and status != "all":
            query = query.where(ServiceRequest.status == status)
        if category and category != "all":
            query = query.where(ServiceRequest.offering_category == category)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                func.lower(ServiceRequest.customer_name).like(pattern),
                func.lower(ServiceRequest.customer_email).like(pattern),
                func.lower(ServiceRequest.customer_phone).like(pattern),
            ))

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        direction = asc if sort_order == "asc" else desc
        result = await self.db.execute(
            query.order_by(direction(SORTABLE_COLUMNS[sort_by]), direction(ServiceRequest.id))
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def status_counts(self, total: int) -> Dict[str, int]:
        """Per-status counts over every request; total is the filtered count."""
        result = await self.db.execute(
            select(ServiceRequest.status, func.count(ServiceRequest.id))
            .group_by(ServiceRequest.status)
        )
        stats = {"total": total, "pending": 0, "inProgress": 0, "completed": 0, "cancelled": 0}
        for status, count in result.all():
            key = _STATISTIC_KEYS.get(status)
            if key:
                stats[key] = count
        return stats

    async def update(
        self,
        request_id: str,
        status: Optional[RequestStatus] = None,
        priority: Optional[RequestPriority] = None,
        notes: Optional[str] = None,
    ) -> Tuple[ServiceRequest, Dict[str, Any]]:
        """Triage fields. Returns the request and the applied changes."""
        request = await self.get(request_id)

        changes: Dict[str, Any] = {}
        if status is not None:
            request.status = status.value
            changes["status"] = status.value
        if priority is not None:
            request.priority = priority.value
            changes["priority"] = priority.value
        if notes is not None:
            request.notes = notes
            changes["notes"] = notes

        request.updated_at = datetime.utcnow()
        await self.db.flush()
        return request, changes

    async def add_comment(
        self,
        request_id: str,
        author: str,
        content: str,
    ) -> ServiceRequest:
        """Append a comment. Existing comments are never rewritten."""
        request = await self.get(request_id)

        comment = {
            "author": author,
            "content": content,
            "timestamp": datetime.utcnow().isoformat(),
        }
        # Assign a new list so the JSON column is flagged dirty
        request.comments = list(request.comments or []) + [comment]
        request.updated_at = datetime.utcnow()
        await self.db.flush()
        return request
