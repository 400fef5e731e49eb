"""
Stripe implementation of the payment gateway contract.

Holds are Stripe PaymentIntents created with ``capture_method="manual"``:
the guest confirms the PaymentIntent on the client with the returned
client secret, Stripe reports ``payment_intent.amount_capturable_updated``,
and the funds are captured once the escrow settles.

Features:
- Automatic error translation to escrow.exceptions
- Structured logging with timing metrics
- Idempotency keys on every mutating call

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: timeout of each request attempt
- STRIPE_MAX_NETWORK_RETRIES: SDK-level retries on network failures

Usage:
    from escrow.adapters import AuthorizeParams, StripeAdapter

    result = StripeAdapter.authorize(
        AuthorizeParams(
            amount=10000,
            currency="jpy",
            idempotency_key="authorize:booking_123:1:abcd1234",
            metadata={"booking_id": "booking_123"},
        )
    )

    StripeAdapter.capture(result.hold_ref, idempotency_key="capture:pi_123:1:ef567890")
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import stripe
from django.conf import settings

from escrow.adapters.base import (
    AuthorizationResult,
    AuthorizeParams,
    CancelResult,
    CaptureResult,
)
from escrow.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidRequestError,
    StripeRateLimitError,
)

if TYPE_CHECKING:
    from typing import Any


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained, so the
    class itself is passed wherever a PaymentGateway is expected.

    Usage:
        result = StripeAdapter.authorize(params)
        StripeAdapter.capture(result.hold_ref, idempotency_key)
        StripeAdapter.cancel(result.hold_ref, idempotency_key)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = settings.STRIPE_MAX_NETWORK_RETRIES
        stripe.default_http_client = stripe.http_client.RequestsClient(
            timeout=settings.STRIPE_API_TIMEOUT_SECONDS
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Gateway Operations
    # =========================================================================

    @classmethod
    def authorize(cls, params: AuthorizeParams) -> AuthorizationResult:
        """
        Create a manual-capture PaymentIntent holding ``params.amount``.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "authorize",
            "amount": params.amount,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "booking_id": params.metadata.get("booking_id"),
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.create(
                amount=params.amount,
                currency=params.currency,
                capture_method="manual",
                payment_method_types=["card"],
                metadata=params.metadata,
                idempotency_key=params.idempotency_key,
            )
        except Exception as e:
            cls._handle_stripe_error(e, log_context, start_time)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "payment_intent_id": intent.id,
                "status": intent.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )

        return AuthorizationResult(
            hold_ref=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            raw_response=intent.to_dict(),
        )

    @classmethod
    def capture(cls, hold_ref: str, idempotency_key: str) -> CaptureResult:
        """
        Capture the full amount of a held PaymentIntent.

        Raises:
            StripeInvalidRequestError: PaymentIntent not capturable
            StripeAPIUnavailableError: Stripe service unavailable
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "capture",
            "payment_intent_id": hold_ref,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.capture(
                hold_ref,
                idempotency_key=idempotency_key,
            )
        except Exception as e:
            cls._handle_stripe_error(e, log_context, start_time)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "status": intent.status,
                "amount_captured": intent.amount_received,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )

        return CaptureResult(
            hold_ref=intent.id,
            amount_captured=intent.amount_received,
            status=intent.status,
            raw_response=intent.to_dict(),
        )

    @classmethod
    def cancel(cls, hold_ref: str, idempotency_key: str) -> CancelResult:
        """Release a hold without capturing it."""
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "cancel",
            "payment_intent_id": hold_ref,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.cancel(
                hold_ref,
                idempotency_key=idempotency_key,
            )
        except Exception as e:
            cls._handle_stripe_error(e, log_context, start_time)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "status": intent.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )

        return CancelResult(
            hold_ref=intent.id,
            status=intent.status,
            raw_response=intent.to_dict(),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Raises:
            StripeInvalidRequestError: Invalid signature or payload
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            )
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            )
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        start_time: float,
    ) -> None:
        """
        Translate Stripe exceptions to escrow exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds
            StripeInvalidRequestError: Invalid request or authentication failure
            StripeRateLimitError: Rate limited
            StripeAPIUnavailableError: API unavailable or unknown failure
        """
        logger = cls.get_logger()
        log_context = {
            **log_context,
            "duration_ms": (time.time() - start_time) * 1000,
        }

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )

            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                    decline_code=decline_code,
                ) from error

            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        ) from error


__all__ = ["StripeAdapter"]
