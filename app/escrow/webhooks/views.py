"""
Stripe webhook endpoint for escrow holds.

Stripe calls this endpoint when a hold's PaymentIntent changes: the guest
authorized it (the escrow becomes ESCROWED) or it was cancelled (the escrow
is refunded). The view never touches an escrow itself. It verifies the
signature, records the event once per Stripe event id and hands it to the
process_webhook_event task, answering 200 so Stripe stops redelivering.
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from escrow.adapters import StripeAdapter
from escrow.exceptions import StripeInvalidRequestError
from escrow.models import WebhookEvent
from escrow.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Record a hold event and queue it for settlement processing.

    Returns:
        HttpResponse with status:
        - 200: Event recorded (new, redelivered or already applied to the escrow)
        - 400: Missing or invalid signature, or an event without id or type
    """
    signature = request.headers.get("Stripe-Signature", "")
    if not signature:
        logger.warning("Escrow webhook received without Stripe-Signature header")
        return HttpResponse("Missing signature", status=400)

    try:
        event_data = StripeAdapter.verify_webhook_signature(request.body, signature)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Escrow webhook signature verification failed",
            extra={"error": str(e)},
        )
        return HttpResponse("Invalid signature", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")
    if not stripe_event_id or not event_type:
        logger.warning("Escrow webhook missing event id or type")
        return HttpResponse("Invalid event", status=400)

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )
    log_context = webhook_event.log_context()

    if not created and webhook_event.is_processed:
        logger.info(
            "Hold event already applied to its escrow, skipping",
            extra=log_context,
        )
        return HttpResponse("Already processed", status=200)

    logger.info(
        f"Received hold event {event_type}",
        extra={**log_context, "redelivery": not created},
    )

    try:
        from escrow.tasks import process_webhook_event

        process_webhook_event.delay(str(webhook_event.id))
    except Exception as e:
        # Stripe redelivers; the recorded event is replayed then.
        logger.error(
            f"Failed to queue hold event: {type(e).__name__}",
            extra=log_context,
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
