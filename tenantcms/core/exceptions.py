"""
Custom exception hierarchy for the application.
"""

from typing import Any

from fastapi import HTTPException, status


class CMSException(Exception):
    """Base exception for all application exceptions."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(CMSException):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(CMSException):
    """Raised when user lacks permissions."""
    status_code = status.HTTP_403_FORBIDDEN


class TenantAccessError(AuthorizationError):
    """Raised when user tries to write into another tenant's data."""
    pass


class ResourceNotFoundError(CMSException):
    """Raised when a requested resource doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND


class QuotaExceededError(AuthorizationError):
    """Raised when a guest writer exceeds their post quota."""
    pass


class ValidationError(CMSException):
    """Raised when input validation fails."""
    pass


class InvariantViolationError(CMSException):
    """Raised when a mutation would break a hierarchy invariant."""
    pass


class LastSuperAdminError(InvariantViolationError):
    """Raised when deleting the last remaining super-admin."""

    def __init__(self, user_id: Any):
        super().__init__(
            "Cannot delete the last super-admin.",
            details={"user_id": user_id},
        )


# HTTP Exception helpers
def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    """Return 401 Unauthorized exception."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def not_found(detail: str = "Resource not found") -> HTTPException:
    """Return 404 Not Found exception."""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def bad_request(detail: str = "Bad request") -> HTTPException:
    """Return 400 Bad Request exception."""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )
