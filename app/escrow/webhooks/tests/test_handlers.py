"""
Tests for Stripe webhook handlers.
"""

import pytest

from core.services import ServiceResult
from escrow.repositories import EscrowPaymentRepository
from escrow.state_machines import EscrowStatus
from escrow.tests.factories import EscrowPaymentFactory, WebhookEventFactory
from escrow.webhooks.handlers import WEBHOOK_HANDLERS, dispatch_webhook, register_handler


def event_for(event_type: str, payment_intent_id: str | None):
    data = {"object": {"id": payment_intent_id, "object": "payment_intent"}}
    return WebhookEventFactory(
        event_type=event_type,
        payload={"id": "evt_handler", "type": event_type, "data": data},
    )


class TestRegistry:
    def test_escrow_events_are_registered(self):
        assert "payment_intent.amount_capturable_updated" in WEBHOOK_HANDLERS
        assert "payment_intent.canceled" in WEBHOOK_HANDLERS

    def test_unknown_event_type_succeeds(self, db):
        event = WebhookEventFactory(event_type="charge.refunded")

        result = dispatch_webhook(event)

        assert result.success is True
        assert result.data is None

    def test_register_handler(self, db, mocker):
        mocker.patch.dict(WEBHOOK_HANDLERS)
        calls = []

        @register_handler("payment_intent.processing")
        def handle(webhook_event):
            calls.append(webhook_event)
            return ServiceResult.success("handled")

        event = WebhookEventFactory(event_type="payment_intent.processing")

        assert dispatch_webhook(event).data == "handled"
        assert calls == [event]


class TestAmountCapturableUpdated:
    def test_escrows_pending_hold(self, pending_escrow):
        event = event_for(
            "payment_intent.amount_capturable_updated", pending_escrow.gateway_hold_ref
        )

        result = dispatch_webhook(event)

        assert result.success is True
        stored = EscrowPaymentRepository.get(pending_escrow.pk)
        assert stored.escrow_status == EscrowStatus.ESCROWED
        assert stored.auto_confirm_at is not None

    def test_redelivered_event_is_a_no_op(self, pending_escrow):
        event = event_for(
            "payment_intent.amount_capturable_updated", pending_escrow.gateway_hold_ref
        )

        dispatch_webhook(event)
        result = dispatch_webhook(event)

        assert result.success is True
        assert EscrowPaymentRepository.get(pending_escrow.pk).version == 2

    def test_unknown_hold(self, db):
        result = dispatch_webhook(
            event_for("payment_intent.amount_capturable_updated", "pi_unknown")
        )

        assert result.error_code == "NOT_FOUND"

    @pytest.mark.parametrize(
        "event_type",
        ["payment_intent.amount_capturable_updated", "payment_intent.canceled"],
    )
    def test_missing_hold_ref(self, db, event_type):
        event = WebhookEventFactory(event_type=event_type, payload={"data": {}})

        result = dispatch_webhook(event)

        assert result.error_code == "VALIDATION_ERROR"


class TestPaymentIntentCanceled:
    def test_refunds_escrow(self, escrowed_escrow):
        event = event_for("payment_intent.canceled", escrowed_escrow.gateway_hold_ref)

        result = dispatch_webhook(event)

        assert result.success is True
        assert EscrowPaymentRepository.get(escrowed_escrow.pk).escrow_status == (
            EscrowStatus.REFUNDED
        )

    def test_completed_escrow_is_not_refunded(self, db):
        escrow = EscrowPaymentFactory(escrow_status=EscrowStatus.COMPLETED)

        result = dispatch_webhook(
            event_for("payment_intent.canceled", escrow.gateway_hold_ref)
        )

        assert result.error_code == "NOT_ELIGIBLE"
