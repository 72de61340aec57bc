"""
Application error taxonomy.

Services raise these; the handlers registered in ``main.py`` turn each one
into an HTTP status and a ``{"error", "code"}`` JSON body.
"""

from __future__ import annotations

from fastapi import status


class AppError(Exception):
    """Base class for errors that map 1:1 to an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, code: str | None = None) -> None:
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource already exists"


class Expired(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "EXPIRED"
    default_message = "Invitation has expired"


class AlreadyProcessed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ALREADY_PROCESSED"
    default_message = "Invitation has already been processed"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Missing or invalid fields"


class InternalError(AppError):
    pass


class EmailDeliveryError(Exception):
    """Raised by the email sender when a message could not be delivered."""
