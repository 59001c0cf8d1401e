"""Signup request model and approval state machine."""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Enum, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cnc_admin.database import Base
from cnc_admin.models.admin_user import AdminUser, generate_uuid_string, enum_values


class SignupStatus(str, enum.Enum):
    """Signup request status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


VALID_TRANSITIONS = {
    SignupStatus.PENDING: [SignupStatus.APPROVED, SignupStatus.REJECTED],
    SignupStatus.APPROVED: [],  # Terminal state
    SignupStatus.REJECTED: [],  # Terminal state
}


class SignupRequest(Base):
    """Pending application for a back-office account."""
    __tablename__ = "admin_signup_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid_string)
    username: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    organization: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[SignupStatus] = mapped_column(
        Enum(SignupStatus, name="signupstatus", values_callable=enum_values),
        default=SignupStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Review
    reviewed_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Client metadata
    ip_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reviewer: Mapped[Optional[AdminUser]] = relationship("AdminUser", lazy="joined")

    __table_args__ = (
        Index("ix_signup_requests_status_requested", "status", "requested_at"),
    )

    def can_transition_to(self, new_status: SignupStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, [])
