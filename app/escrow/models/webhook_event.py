"""
WebhookEvent model: Stripe callbacks about escrow holds.

An escrow hold is a manual-capture PaymentIntent, and Stripe reports on it
through webhooks: the guest authorizing the hold moves the escrow from
PENDING to ESCROWED, a cancellation at Stripe refunds it. Each callback is
stored under its Stripe event id before it touches an escrow, so a
redelivered event never settles or refunds twice and a failed one can be
replayed from the stored payload.

The PaymentIntent id in the payload is the escrow's gateway_hold_ref, and
create_hold puts the booking id in the PaymentIntent metadata; both are
read back here for lookups and log context.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from escrow.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    A Stripe event about an escrow hold.

    Lifecycle:
        PENDING -> PROCESSING -> PROCESSED
                              -> FAILED (replayable; retry_count grows)
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx)",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g. 'payment_intent.canceled')",
    )

    payload = models.JSONField(
        help_text="Verified event payload; data.object is the hold's PaymentIntent",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Why the last processing attempt failed",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Escrow Webhook Event"
        verbose_name_plural = "Escrow Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="escrow_webhook_status_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type}, {self.get_hold_ref()})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    # Helpers below do not save; the caller saves.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def _payment_intent(self) -> dict:
        try:
            intent = self.payload.get("data", {}).get("object", {})
        except (AttributeError, TypeError):
            return {}
        return intent if isinstance(intent, dict) else {}

    def get_hold_ref(self) -> str | None:
        """PaymentIntent id, matched against EscrowPayment.gateway_hold_ref."""
        return self._payment_intent().get("id")

    def get_booking_id(self) -> str | None:
        metadata = self._payment_intent().get("metadata")
        if not isinstance(metadata, dict):
            return None
        return metadata.get("booking_id")

    def log_context(self) -> dict:
        return {
            "stripe_event_id": self.stripe_event_id,
            "event_type": self.event_type,
            "hold_ref": self.get_hold_ref(),
            "booking_id": self.get_booking_id(),
        }
