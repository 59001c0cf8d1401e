"""Audit log schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from cnc_admin.schemas.common import ApiResponse


class AuditUserSummary(BaseModel):
    id: str
    username: str
    email: str
    full_name: Optional[str] = None


class AuditLogEntryResponse(BaseModel):
    """Audit entry with the acting and targeted users resolved."""
    id: int
    admin_user_id: Optional[str] = None
    action: str
    target_user_id: Optional[str] = None
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    created_at: datetime
    admin_user: Optional[AuditUserSummary] = None
    target_user: Optional[AuditUserSummary] = None


class AuditLogResponse(ApiResponse):
    audit_logs: List[AuditLogEntryResponse] = Field(..., alias="auditLogs")
