"""
Service-level error taxonomy.

Every failure raised by the inbox and ticket services is one of these.
They are terminal for the call and carry a machine-readable code plus the
HTTP status the API layer should answer with.
"""

from typing import Optional
from fastapi import status


class ServiceError(Exception):
    """Base class for failures surfaced to the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "SERVICE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NotFound(ServiceError):
    """Referenced application, ticket, message, company or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class Forbidden(ServiceError):
    """Caller is authenticated but not a party to the target conversation."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class RateLimited(ServiceError):
    """Ticket quota exceeded."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = "RATE_LIMITED"


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"
