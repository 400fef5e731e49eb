"""
Base exception classes for application-wide error handling.

Every error that can cross a public service boundary is a subclass of
BaseApplicationError. Each carries a stable, machine-readable ``error_code``
(the error kind reported to clients) and the HTTP status the API layer
answers with.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed or missing input (400)
    ├── AuthenticationRequiredError - No authenticated actor (401)
    ├── PermissionDeniedError - Actor may not act on the resource (403)
    ├── NotFoundError - Resource not found (404)
    ├── ConflictError - Resource state does not allow the action (409)
    ├── ExternalServiceError - Third-party service failures (502)
    └── UnexpectedError - Anything else (500)

Usage:
    from core.exceptions import NotFoundError, ValidationError

    raise ValidationError("photo_count must be positive")

    raise NotFoundError(
        "Booking not found",
        details={"booking_id": str(booking_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, identifiers)
        http_status: Status code used when the error reaches the API layer
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Escrow payment not found",
                "error_code": "NOT_FOUND",
                "details": {"booking_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for service-layer validation. DRF serializers still validate the
    request shape before a service is called.

    Example:
        raise ValidationError(
            "Invalid delivery data",
            details={"photo_count": ["Must be positive"]},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class AuthenticationRequiredError(BaseApplicationError):
    """Raised when an operation needs an authenticated actor and has none."""

    default_error_code: str = "AUTHENTICATION_REQUIRED"
    http_status: int = 401


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the actor may not act on the resource.

    Example:
        if booking.photographer_id != actor.pk:
            raise PermissionDeniedError("Only the booking's photographer can deliver")
    """

    default_error_code: str = "AUTHORIZATION_DENIED"
    http_status: int = 403


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource is not found."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Duplicate entries
    - Concurrent modification conflicts
    - Actions attempted from a state that does not allow them

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502


class UnexpectedError(BaseApplicationError):
    """Catch-all for failures with no more specific error kind."""

    default_error_code: str = "UNEXPECTED_ERROR"
    http_status: int = 500


__all__ = [
    "BaseApplicationError",
    "ValidationError",
    "AuthenticationRequiredError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",
    "UnexpectedError",
]
