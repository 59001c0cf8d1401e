"""Administrative audit log model."""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from cnc_admin.database import Base


class AuditAction(str, enum.Enum):
    """Auditable administrative actions."""
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    UPDATE_PERMISSIONS = "update_permissions"
    APPROVE_SIGNUP = "approve_signup"
    REJECT_SIGNUP = "reject_signup"
    UPDATE_REQUEST = "update_request"
    ADD_COMMENT = "add_comment"


class AuditLogEntry(Base):
    """Append-only record of who did what to whom.

    Actor and target ids are not foreign keys so entries outlive deleted users.
    """
    __tablename__ = "admin_audit_log"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    admin_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    target_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("ix_admin_audit_log_action_created", "action", "created_at"),
    )
