"""Service request schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from cnc_admin.models.service_request import RequestStatus, RequestPriority
from cnc_admin.schemas.common import ApiResponse, check_not_blank


class ServiceRequestCreate(BaseModel):
    """Submission from a public offering page."""
    offering_category: Optional[str] = None
    offering_name: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    request_details: Optional[Dict[str, Any]] = None
    page_url: Optional[str] = None

    @field_validator("customer_name", "customer_email", "customer_phone", "customer_address")
    @classmethod
    def validate_required(cls, v: str, info) -> str:
        return check_not_blank(v, info.field_name)

    class Config:
        json_schema_extra = {
            "example": {
                "offering_category": "health",
                "offering_name": "Eye camp registration",
                "customer_name": "Asha Devi",
                "customer_email": "asha@example.org",
                "customer_phone": "+91 98765 43210",
                "customer_address": "Guwahati, Assam",
                "request_details": {"preferred_date": "2024-03-01"},
                "page_url": "/offerings/health/eye-camp.html"
            }
        }


class ServiceRequestPatch(BaseModel):
    """Triage update."""
    id: str
    status: Optional[RequestStatus] = None
    priority: Optional[RequestPriority] = None
    notes: Optional[str] = None


class ServiceRequestPut(BaseModel):
    """Status change and/or a new comment."""
    id: str
    status: Optional[RequestStatus] = None
    comment: Optional[str] = None

    @field_validator("comment", mode="before")
    @classmethod
    def extract_comment_text(cls, v):
        # Older dashboards post the whole comment object
        if isinstance(v, dict):
            return v.get("content") or v.get("text")
        return v


class ServiceRequestResponse(BaseModel):
    id: str
    offering_category: str
    offering_name: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    request_details: Dict[str, Any] = {}
    status: str
    priority: str
    notes: Optional[str] = None
    comments: List[Dict[str, Any]] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool = Field(..., alias="hasMore")

    class Config:
        populate_by_name = True


class RequestStatistics(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = Field(0, alias="inProgress")
    completed: int = 0
    cancelled: int = 0

    class Config:
        populate_by_name = True


class ServiceRequestCreated(ApiResponse):
    request_id: str = Field(..., alias="requestId")
    data: ServiceRequestResponse


class ServiceRequestUpdated(ApiResponse):
    data: ServiceRequestResponse


class ServiceRequestList(ApiResponse):
    data: List[ServiceRequestResponse]
    pagination: Pagination
    statistics: RequestStatistics
