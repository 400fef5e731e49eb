"""
Payment gateway contract consumed by the escrow services.

The services only ever talk to the gateway through this contract, so the
gateway can be swapped (StripeAdapter in production, MockGateway in tests)
by passing a different implementation:

    EscrowService.confirm_receipt(booking_id, satisfied=True, gateway=MockGateway)

Implementations raise escrow.exceptions.GatewayError (or a subclass) on
failure and return the result dataclasses below on success.
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from django.conf import settings

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class AuthorizeParams:
    """
    Parameters for authorizing a manual-capture hold.

    Attributes:
        amount: Amount to hold, in minor currency units
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs attached to the hold
    """

    amount: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.currency:
            raise ValueError("currency is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class AuthorizationResult:
    """
    Attributes:
        hold_ref: Gateway handle of the hold (PaymentIntent ID)
        client_secret: Secret the guest's client confirms the hold with
        status: Gateway status of the hold
    """

    hold_ref: str
    client_secret: str | None
    status: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class CaptureResult:
    hold_ref: str
    amount_captured: int
    status: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class CancelResult:
    hold_ref: str
    status: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Contract
# =============================================================================


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Manual-capture payment gateway.

    authorize() places a hold without moving money; capture() moves the
    held funds and must be called at most once per hold; cancel() releases
    the hold without capturing.
    """

    def authorize(self, params: AuthorizeParams) -> AuthorizationResult: ...

    def capture(self, hold_ref: str, idempotency_key: str) -> CaptureResult: ...

    def cancel(self, hold_ref: str, idempotency_key: str) -> CancelResult: ...


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for gateway calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same operation on the same entity always
    yields the same key, so a retried capture of a hold is recognised by
    the gateway as the original request.

    Example:
        key = IdempotencyKeyGenerator.generate("capture", escrow.gateway_hold_ref)
        # "capture:pi_123:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


__all__ = [
    "AuthorizeParams",
    "AuthorizationResult",
    "CaptureResult",
    "CancelResult",
    "PaymentGateway",
    "IdempotencyKeyGenerator",
]
