"""Customer service request model."""
import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, DateTime, Text, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from cnc_admin.database import Base
from cnc_admin.models.admin_user import generate_uuid_string


class RequestStatus(str, enum.Enum):
    """Service request status. Any status may follow any other."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ServiceRequest(Base):
    """Work item submitted from a public offering page."""
    __tablename__ = "service_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid_string)

    # Offering
    offering_category: Mapped[str] = mapped_column(String(100), nullable=False, default="unknown", index=True)
    offering_name: Mapped[str] = mapped_column(String(255), nullable=False, default="unknown")

    # Customer
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False)

    # Free-form answers from the request form
    request_details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Stored as plain strings so statuses written by older forms still load
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=RequestPriority.NORMAL.value)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Append-only list of {author, content, timestamp}
    comments: Mapped[List[dict]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_service_requests_status_created", "status", "created_at"),
    )
