"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Services raise core.exceptions internally and convert them into a
ServiceResult at their public boundary, so views and tasks never have to
catch domain exceptions themselves.

Usage:
    from core.services import BaseService, ServiceResult

    class DeliveryTracker(BaseService):
        @classmethod
        def get_delivery(cls, booking_id) -> ServiceResult[PhotoDelivery]:
            try:
                delivery = cls._load(booking_id)
            except Exception as exc:
                return cls.handle_exception(exc, "get_delivery")
            return ServiceResult.success(delivery)

    # In view
    result = DeliveryTracker.get_delivery(booking_id)
    if result.success:
        return Response(PhotoDeliverySerializer(result.data).data)
    return Response(result.to_response(), status=result.http_status)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError, UnexpectedError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error kind for client handling
        errors: Field-level errors for validation failures
        http_status: Status the API layer should answer a failure with

    Usage:
        return ServiceResult.success(escrow)

        return ServiceResult.failure("Escrow not found", "NOT_FOUND", http_status=404)

        result = EscrowService.get_status(booking_id)
        if result:
            escrow = result.data.escrow
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    http_status: int = 200

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        http_status: int = 400,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
            http_status: HTTP status for the API layer
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
            http_status=http_status,
        )

    @classmethod
    def from_exception(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """
        Create a failed result from an application error.

        Field errors are taken from ``exc.details["errors"]`` when present.
        """
        errors = exc.details.get("errors") if exc.details else None
        return cls.failure(
            exc.message,
            error_code=exc.error_code,
            errors=errors,
            http_status=exc.http_status,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            {"success": True, "data": ...} or
            {"success": False, "error": ..., "error_code": ..., "errors": ...}
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def map(self, func) -> ServiceResult:
        """
        Transform the data if successful.

        Example:
            result = EscrowService.get_status(booking_id)
            serialized = result.map(lambda s: EscrowStatusSerializer(s).data)
        """
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data))
        return self  # type: ignore

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides:
    - Logging setup per service
    - Database transaction management
    - Conversion of exceptions into ServiceResult failures

    Design Notes:
        - Use @classmethod (no instance state)
        - Raise core.exceptions inside, return ServiceResult at the boundary
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get a logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        operation: str,
        **context: Any,
    ) -> ServiceResult:
        """
        Convert an exception to a ServiceResult failure with logging.

        Application errors are expected outcomes and logged at WARNING.
        Anything else is logged with its traceback and reported as
        UNEXPECTED_ERROR, without leaking the internal message.

        Args:
            exc: The caught exception
            operation: Name of the public operation that failed
            **context: Identifiers to include in the log record
        """
        logger = cls.get_logger()
        log_context = {"operation": operation, **context}

        if isinstance(exc, BaseApplicationError):
            logger.warning(
                f"{operation} failed: {exc}",
                extra={**log_context, "error_code": exc.error_code},
            )
            return ServiceResult.from_exception(exc)

        logger.error(
            f"{operation} failed unexpectedly: {exc}",
            extra={**log_context, "error_type": type(exc).__name__},
            exc_info=True,
        )
        return ServiceResult.from_exception(
            UnexpectedError("An unexpected error occurred")
        )


__all__ = ["ServiceResult", "BaseService"]
