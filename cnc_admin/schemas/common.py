"""Common schema definitions."""
import re
from typing import Optional

from pydantic import BaseModel

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")


class ApiResponse(BaseModel):
    """Uniform envelope; resource keys are added by subclasses."""
    success: bool = True
    message: Optional[str] = None

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    message: str
    error: Optional[str] = None


def check_username(value: str) -> str:
    if not USERNAME_PATTERN.match(value):
        raise ValueError(
            "Username must be 3-20 characters and contain only letters, numbers, and underscores"
        )
    return value


def check_password(value: str, min_length: int) -> str:
    if len(value) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters long")
    return value


def check_not_blank(value: Optional[str], field_name: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value.strip()
