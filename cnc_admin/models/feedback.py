"""Anonymous visitor feedback model."""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Text, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cnc_admin.database import Base
from cnc_admin.models.admin_user import generate_uuid_string


class Feedback(Base):
    """Append-only feedback entry. A null rating means text only."""
    __tablename__ = "feedback"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid_string)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    page: Mapped[str] = mapped_column(String(500), nullable=False, default="unknown", index=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_feedback_rating"),
    )
