"""
Webhook event handlers for Stripe events.

Only two PaymentIntent events matter to an escrow:
- payment_intent.amount_capturable_updated: the guest authorized the hold
- payment_intent.canceled: the hold was released without capture

Usage:
    from escrow.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("payment_intent.payment_failed")
    def handle_payment_failed(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.services import ServiceResult

from escrow.models import WebhookEvent
from escrow.services import EscrowService

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.canceled")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Unknown event types succeed without doing anything so Stripe stops
    retrying them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra=webhook_event.log_context(),
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra=webhook_event.log_context(),
    )
    return handler(webhook_event)


def _missing_hold_ref(webhook_event: WebhookEvent) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: event carries no hold reference",
        extra=webhook_event.log_context(),
    )
    return ServiceResult.failure(
        "Webhook event carries no PaymentIntent id",
        error_code="VALIDATION_ERROR",
    )


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.amount_capturable_updated")
def handle_amount_capturable_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """The guest authorized the hold: PENDING -> ESCROWED."""
    hold_ref = webhook_event.get_hold_ref()
    if not hold_ref:
        return _missing_hold_ref(webhook_event)

    return EscrowService.confirm_authorization(hold_ref)


@register_handler("payment_intent.canceled")
def handle_payment_intent_canceled(webhook_event: WebhookEvent) -> ServiceResult:
    """The hold was released at Stripe: PENDING/ESCROWED -> REFUNDED."""
    hold_ref = webhook_event.get_hold_ref()
    if not hold_ref:
        return _missing_hold_ref(webhook_event)

    return EscrowService.refund_hold(gateway_ref=hold_ref)


__all__ = ["WEBHOOK_HANDLERS", "register_handler", "dispatch_webhook"]
