"""
Application exception hierarchy.

Every error the API reports on purpose is an ``AppError``. The handlers in
``app.main`` render them as ``{"success": false, "error": ..., "details": ...}``.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    """Base class for all reportable application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"
    # 5xx errors never leak their message to the caller
    expose_message: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.__class__.__name__
        self.details = details
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message if self.expose_message else AppError.default_message


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"
    expose_message = True


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"
    expose_message = True


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"
    expose_message = True


class InvalidCursor(ValidationError):
    default_message = "Invalid cursor"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"
    expose_message = True


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"
    expose_message = True


class IllegalTransition(Conflict):
    default_message = "Illegal status transition"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change booking status from '{current}' to '{target}'",
            details={"current": current, "requested": target},
        )


class UpstreamFailure(AppError):
    """A store or storage call failed or timed out."""


class Internal(AppError):
    pass
