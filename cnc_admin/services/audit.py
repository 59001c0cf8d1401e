"""Best-effort administrative audit log."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import BackgroundTasks
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from cnc_admin.models.admin_user import AdminUser
from cnc_admin.models.audit import AuditLogEntry, AuditAction


logger = logging.getLogger(__name__)


def _user_summary(user: Optional[AdminUser]) -> Optional[dict]:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
    }


class AuditLogger:
    """Writes audit entries in their own session, off the request path.

    A failed write is logged and dropped. It never reaches the caller, so
    the business operation it describes keeps its response.
    """

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    def record(
        self,
        background_tasks: BackgroundTasks,
        actor_id: Optional[str],
        action: AuditAction,
        target_user_id: Optional[str] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """Schedule an entry to be written after the response is sent."""
        background_tasks.add_task(
            self.write,
            actor_id=actor_id,
            action=action,
            target_user_id=target_user_id,
            details=details,
            ip_address=ip_address,
        )

    async def write(
        self,
        actor_id: Optional[str],
        action: AuditAction,
        target_user_id: Optional[str] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ) -> bool:
        """Insert one entry. Returns False instead of raising on failure."""
        timestamp = datetime.utcnow()
        payload = dict(details or {})
        payload.setdefault("timestamp", timestamp.isoformat())
        try:
            async with self.session_maker() as session:
                session.add(AuditLogEntry(
                    admin_user_id=actor_id,
                    action=action.value,
                    target_user_id=target_user_id,
                    details=payload,
                    ip_address=ip_address or "unknown",
                    created_at=timestamp,
                ))
                await session.commit()
        except Exception:
            logger.exception(f"Failed to write audit entry {action.value} by {actor_id}")
            return False

        logger.info(f"Audit logged: {action.value} by user {actor_id}")
        return True

    @staticmethod
    async def list_entries(
        db: AsyncSession,
        action: Optional[str] = None,
        limit: int = 100,
    ) -> List[dict]:
        """Newest entries first, with actor and target user summaries."""
        actor = aliased(AdminUser)
        target = aliased(AdminUser)
        query = (
            select(AuditLogEntry, actor, target)
            .outerjoin(actor, AuditLogEntry.admin_user_id == actor.id)
            .outerjoin(target, AuditLogEntry.target_user_id == target.id)
            .order_by(desc(AuditLogEntry.created_at), desc(AuditLogEntry.id))
            .limit(limit)
        )
        if action and action != "all":
            query = query.where(AuditLogEntry.action == action)

        result = await db.execute(query)
        entries = []
        for entry, actor_user, target_user in result.all():
            entries.append({
                "id": entry.id,
                "admin_user_id": entry.admin_user_id,
                "action": entry.action,
                "target_user_id": entry.target_user_id,
                "details": entry.details or {},
                "ip_address": entry.ip_address,
                "created_at": entry.created_at,
                "admin_user": _user_summary(actor_user),
                "target_user": _user_summary(target_user),
            })
        return entries
