"""Service-layer exceptions.

Routers translate these into HTTP responses; services never build responses.
"""

from __future__ import annotations

from typing import Any


class AdminError(Exception):
    """Base exception for back-office operations."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationFailed(AdminError):
    """Malformed or missing input (400)."""

    pass


class AlreadyExists(AdminError):
    """Uniqueness violation on username or email (400)."""

    pass


class NotFound(AdminError):
    """Referenced resource does not exist (404)."""

    pass


class PermissionDenied(AdminError):
    """Authenticated, but not allowed (403)."""

    pass


class InvalidTransition(AdminError):
    """State machine refused the change, e.g. re-approving a signup (400)."""

    pass


class InvalidCredentials(AdminError):
    """Unknown user, inactive user or wrong password at login (401)."""

    pass


class SessionInvalid(AdminError):
    """Bearer token unknown or past expiry (401, SESSION_EXPIRED)."""

    error_code = "SESSION_EXPIRED"


class UserInactive(AdminError):
    """Session belongs to a deactivated account (401)."""

    error_code = "USER_INACTIVE"
