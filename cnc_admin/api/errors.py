"""HTTP errors raised by the routers."""
from typing import Dict, Optional, Type

from fastapi import HTTPException, status

from cnc_admin.services.exceptions import (
    AdminError,
    AlreadyExists,
    InvalidCredentials,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    SessionInvalid,
    UserInactive,
    ValidationFailed,
)


class ApiError(HTTPException):
    """HTTPException with an optional machine-readable error code."""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.error_code = error_code


class Unauthorized(ApiError):
    def __init__(self, message: str = "Authentication required", error_code: Optional[str] = None):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            message,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(ApiError):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(status.HTTP_403_FORBIDDEN, message)


class BadRequest(ApiError):
    def __init__(self, message: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, message)


class MethodNotAllowed(ApiError):
    def __init__(self, message: str = "Method not allowed"):
        super().__init__(status.HTTP_405_METHOD_NOT_ALLOWED, message)


_STATUS_CODES: Dict[Type[AdminError], int] = {
    ValidationFailed: status.HTTP_400_BAD_REQUEST,
    AlreadyExists: status.HTTP_400_BAD_REQUEST,
    InvalidTransition: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
}


def to_http_error(exc: AdminError) -> ApiError:
    """Translate a service exception into the matching HTTP error."""
    if isinstance(exc, (SessionInvalid, UserInactive)):
        return Unauthorized(exc.message, error_code=exc.error_code)
    if isinstance(exc, InvalidCredentials):
        return Unauthorized(exc.message)

    for exc_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return ApiError(status_code, exc.message)
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)
