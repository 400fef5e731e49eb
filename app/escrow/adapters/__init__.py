"""
Payment gateway adapters for the escrow app.

This package provides the gateway contract the escrow services depend on
and its Stripe implementation.

Usage:
    from escrow.adapters import AuthorizeParams, StripeAdapter

    result = StripeAdapter.authorize(
        AuthorizeParams(amount=10000, currency="jpy", idempotency_key="...")
    )
"""

from escrow.adapters.base import (
    AuthorizationResult,
    AuthorizeParams,
    CancelResult,
    CaptureResult,
    IdempotencyKeyGenerator,
    PaymentGateway,
)
from escrow.adapters.stripe_adapter import StripeAdapter

__all__ = [
    "AuthorizeParams",
    "AuthorizationResult",
    "CaptureResult",
    "CancelResult",
    "PaymentGateway",
    "IdempotencyKeyGenerator",
    "StripeAdapter",
]
