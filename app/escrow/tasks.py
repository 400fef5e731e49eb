"""
Celery tasks for the escrow app.

Tasks:
- process_webhook_event: handle one stored Stripe webhook event
- process_auto_confirmations: auto-confirmation sweep (celery-beat)

Usage:
    from escrow.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task

from escrow.models import WebhookEvent
from escrow.workers import process_auto_confirmations  # noqa: F401

logger = logging.getLogger(__name__)

MAX_WEBHOOK_RETRIES = 5


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a stored Stripe webhook event.

    Handler failures (e.g. an unknown hold) mark the event FAILED and are
    not retried; unexpected exceptions are re-raised so Celery retries.

    Returns:
        Dict with the processing status
    """
    from escrow.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.is_processed:
        return {"status": "already_processed", "webhook_event_id": str(webhook_event_id)}

    webhook_event.mark_processing()
    webhook_event.save()

    log_context = {"webhook_event_id": str(webhook_event_id), **webhook_event.log_context()}

    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save()
        logger.exception("Webhook processing failed with exception", extra=log_context)
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save()
        logger.info("Webhook processed successfully", extra=log_context)
        return {"status": "processed", "webhook_event_id": str(webhook_event_id)}

    error_msg = result.error or "Handler returned failure"
    webhook_event.mark_failed(error_msg)
    webhook_event.save()
    logger.warning(
        f"Webhook handler failed: {error_msg}",
        extra={**log_context, "error_code": result.error_code},
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": error_msg,
    }


__all__ = ["process_webhook_event", "process_auto_confirmations"]
