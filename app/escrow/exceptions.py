"""
Escrow-specific exceptions.

Every exception carries one of the stable error kinds reported to clients
as ``error_code``. Subclasses add detail for logging and retry decisions
without changing the kind a client sees.

Exception Hierarchy:
    EscrowNotFoundError (NotFoundError) - NOT_FOUND
    AlreadyProcessedError (ConflictError) - ALREADY_PROCESSED
    NotDeliverableError (ConflictError) - NOT_DELIVERABLE
    NotEligibleError (ConflictError) - NOT_ELIGIBLE
    AlreadyConfirmedError (ConflictError) - ALREADY_CONFIRMED
    LockAcquisitionError (ConflictError) - another process is settling the escrow
    GatewayError (ExternalServiceError) - GATEWAY_ERROR
    └── StripeError - Base for all Stripe errors
        ├── StripeCardDeclinedError - Card declined (permanent)
        ├── StripeInsufficientFundsError - Insufficient funds (permanent)
        ├── StripeInvalidRequestError - Invalid request params (permanent)
        ├── StripeRateLimitError - Rate limited (transient, retry)
        └── StripeAPIUnavailableError - API unavailable (transient, retry)

Usage:
    from escrow.exceptions import NotDeliverableError

    if not escrow.is_settleable:
        raise NotDeliverableError(
            "Photos have not been delivered yet",
            details={"booking_id": str(booking_id)},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ConflictError, ExternalServiceError, NotFoundError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# State Exceptions
# =============================================================================


class EscrowNotFoundError(NotFoundError):
    """Raised when a booking, escrow, delivery or dispute is absent."""

    default_error_code: str = "NOT_FOUND"


class AlreadyProcessedError(ConflictError):
    """
    Raised for a duplicate action against a state that no longer allows it.

    Example:
        raise AlreadyProcessedError(
            "An escrow payment already exists for this booking",
            details={"booking_id": str(booking.id), "escrow_status": escrow.escrow_status},
        )
    """

    default_error_code: str = "ALREADY_PROCESSED"


class NotDeliverableError(ConflictError):
    """
    Raised when receipt is confirmed for an escrow that is not both
    ESCROWED and DELIVERED.
    """

    default_error_code: str = "NOT_DELIVERABLE"


class NotEligibleError(ConflictError):
    """
    Raised when the escrow state does not allow the action, e.g. delivering
    photos before the guest's authorization was confirmed.
    """

    default_error_code: str = "NOT_ELIGIBLE"


class AlreadyConfirmedError(ConflictError):
    """Raised when photos are re-delivered after the guest confirmed receipt."""

    default_error_code: str = "ALREADY_CONFIRMED"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Another process holds the lock for the same escrow. Settlement callers
    treat this as "already being processed" rather than a failure.
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(ExternalServiceError):
    """
    Raised when the payment gateway fails to authorize, capture or cancel.

    A GatewayError never comes with a recorded state transition: the escrow
    is left as it was so the operation can be retried.

    Use is_retryable to decide whether the same call may succeed later.
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False


class StripeError(GatewayError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    The decline_code attribute contains the specific reason
    (generic_decline, expired_card, incorrect_cvc, ...).
    """


class StripeInsufficientFundsError(StripeError):
    """Insufficient funds on the payment method."""


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Also raised when a hold can no longer be captured (expired or
    cancelled authorization) and for invalid webhook signatures.
    """


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by the Stripe API."""

    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable (network failure or 5xx).

    The operation may have succeeded on Stripe's side. Retrying with the
    same idempotency key returns the original result.
    """

    is_retryable: bool = True


__all__ = [
    "EscrowNotFoundError",
    "AlreadyProcessedError",
    "NotDeliverableError",
    "NotEligibleError",
    "AlreadyConfirmedError",
    "LockAcquisitionError",
    "GatewayError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
]
