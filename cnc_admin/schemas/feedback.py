"""Feedback schemas."""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from cnc_admin.schemas.common import ApiResponse


class FeedbackCreate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    feedback: Optional[str] = None
    page: Optional[str] = None
    user_agent: Optional[str] = Field(None, alias="userAgent")

    @field_validator("rating", mode="before")
    @classmethod
    def zero_means_unrated(cls, v):
        if isinstance(v, bool):
            raise ValueError("rating must be a number from 1 to 5")
        if v in (0, "0", ""):
            return None
        return v

    class Config:
        populate_by_name = True


class FeedbackResponse(BaseModel):
    id: str
    rating: Optional[int] = None
    feedback: str
    page: str
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FeedbackCreated(ApiResponse):
    id: str
    data: FeedbackResponse


class FeedbackAnalyticsResponse(ApiResponse):
    analytics: Dict[str, Any]
