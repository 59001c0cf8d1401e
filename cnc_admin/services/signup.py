"""Public signup requests and their review workflow.

A request moves pending -> approved or pending -> rejected exactly once.
Approval creates the account, applies any custom grants and marks the
request in a single transaction, so a failure at any step leaves no
account and a still-pending request behind.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from cnc_admin.models.admin_user import AdminUser, AdminRole
from cnc_admin.models.permission import PermissionName
from cnc_admin.models.signup_request import SignupRequest, SignupStatus
from cnc_admin.services.exceptions import (
    AlreadyExists,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from cnc_admin.services.passwords import hash_password
from cnc_admin.services.permissions import PermissionService
from cnc_admin.services.users import UserService, DUPLICATE_MESSAGE


logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"


class SignupService:
    """Service for submitting and reviewing signup requests."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserService(db)

    async def submit(
        self,
        username: str,
        email: str,
        full_name: str,
        password: str,
        reason: Optional[str] = None,
        organization: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignupRequest:
        """Store a pending request. The password is hashed before it is kept."""
        if await self.users.is_taken(username=username, email=email):
            raise AlreadyExists(DUPLICATE_MESSAGE)

        result = await self.db.execute(
            select(SignupRequest.id)
            .where(SignupRequest.status == SignupStatus.PENDING)
            .where(or_(SignupRequest.username == username, SignupRequest.email == email))
            .limit(1)
        )
        if result.scalar_one_or_none():
            raise AlreadyExists(
                "A signup request with this username or email is already pending approval"
            )

        request = SignupRequest(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            reason=reason,
            organization=organization,
            status=SignupStatus.PENDING,
            ip_address=ip_address or "unknown",
            user_agent=user_agent or "unknown",
        )
        self.db.add(request)
        await self.db.flush()

        logger.info(f"Signup request {request.id} submitted for {username}")
        return request

    async def get_request(self, request_id: str) -> SignupRequest:
        result = await self.db.execute(
            select(SignupRequest).where(SignupRequest.id == request_id)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFound("Signup request not found")
        return request

    async def list_requests(
        self,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> List[SignupRequest]:
        """Newest first; status "all" or None means no filter."""
        query = select(SignupRequest).order_by(SignupRequest.requested_at.desc()).limit(limit)
        if status and status != "all":
            try:
                query = query.where(SignupRequest.status == SignupStatus(status))
            except ValueError:
                raise ValidationFailed(f"Invalid status: {status}")
        result = await self.db.execute(query)
        return list(result.scalars().unique().all())

    async def statistics(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(SignupRequest.status, func.count(SignupRequest.id))
            .group_by(SignupRequest.status)
        )
        counts = {status: count for status, count in result.all()}
        return {
            "total_requests": sum(counts.values()),
            "pending_requests": counts.get(SignupStatus.PENDING, 0),
            "approved_requests": counts.get(SignupStatus.APPROVED, 0),
            "rejected_requests": counts.get(SignupStatus.REJECTED, 0),
        }

    def _ensure_pending(self, request: SignupRequest, target: SignupStatus) -> None:
        if not request.can_transition_to(target):
            raise InvalidTransition(
                f"Signup request has already been {request.status.value}"
            )

    async def approve(
        self,
        reviewer: AdminUser,
        request_id: str,
        role: AdminRole,
        custom_permissions: Sequence[PermissionName] = (),
    ) -> AdminUser:
        """Create the account from a pending request. Caller commits."""
        request = await self.get_request(request_id)
        self._ensure_pending(request, SignupStatus.APPROVED)

        user = await self.users.create_user(
            actor=reviewer,
            username=request.username,
            email=request.email,
            full_name=request.full_name,
            role=role,
            password_hash=request.password_hash,
        )

        if custom_permissions:
            await PermissionService(self.db).replace_overrides(
                user.id, [(name, True) for name in custom_permissions]
            )

        request.status = SignupStatus.APPROVED
        request.reviewed_by = reviewer.id
        request.reviewed_at = datetime.utcnow()
        request.approved_role = role.value
        request.created_user_id = user.id
        await self.db.flush()

        logger.info(f"Signup request {request.id} approved by {reviewer.username} as {role.value}")
        return user

    async def reject(
        self,
        reviewer: AdminUser,
        request_id: str,
        reason: Optional[str] = None,
    ) -> SignupRequest:
        """Mark a pending request rejected. Caller commits."""
        request = await self.get_request(request_id)
        self._ensure_pending(request, SignupStatus.REJECTED)

        request.status = SignupStatus.REJECTED
        request.reviewed_by = reviewer.id
        request.reviewed_at = datetime.utcnow()
        request.rejection_reason = reason or DEFAULT_REJECTION_REASON
        await self.db.flush()

        logger.info(f"Signup request {request.id} rejected by {reviewer.username}")
        return request
