"""
Tests for the process_webhook_event Celery task.
"""

from uuid import uuid4

import pytest

from core.services import ServiceResult
from escrow.repositories import EscrowPaymentRepository
from escrow.state_machines import EscrowStatus, WebhookEventStatus
from escrow.tasks import process_webhook_event
from escrow.tests.factories import WebhookEventFactory


class TestProcessWebhookEvent:
    def test_processes_pending_event(self, db, mocker):
        event = WebhookEventFactory()
        mocker.patch(
            "escrow.webhooks.handlers.dispatch_webhook",
            return_value=ServiceResult.success(None),
        )

        result = process_webhook_event(str(event.id))

        assert result["status"] == "processed"
        event.refresh_from_db()
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.processed_at is not None
        assert event.retry_count == 1

    def test_escrows_hold_end_to_end(self, pending_escrow):
        event = WebhookEventFactory(
            payload={
                "data": {
                    "object": {
                        "id": pending_escrow.gateway_hold_ref,
                        "object": "payment_intent",
                    }
                }
            },
        )

        result = process_webhook_event(str(event.id))

        assert result["status"] == "processed"
        assert EscrowPaymentRepository.get(pending_escrow.pk).escrow_status == (
            EscrowStatus.ESCROWED
        )

    def test_skips_processed_event(self, db, mocker):
        event = WebhookEventFactory(status=WebhookEventStatus.PROCESSED)
        dispatch = mocker.patch("escrow.webhooks.handlers.dispatch_webhook")

        result = process_webhook_event(str(event.id))

        assert result["status"] == "already_processed"
        dispatch.assert_not_called()

    def test_missing_event(self, db):
        result = process_webhook_event(str(uuid4()))

        assert result["status"] == "not_found"

    def test_handler_failure_marks_event_failed(self, db):
        event = WebhookEventFactory(
            payload={"data": {"object": {"id": "pi_unknown"}}},
        )

        result = process_webhook_event(str(event.id))

        assert result["status"] == "handler_failed"
        event.refresh_from_db()
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "No escrow payment for this hold"

    def test_exception_marks_failed_and_reraises(self, db, mocker):
        event = WebhookEventFactory()
        mocker.patch(
            "escrow.webhooks.handlers.dispatch_webhook",
            side_effect=RuntimeError("database went away"),
        )

        with pytest.raises(RuntimeError):
            process_webhook_event(str(event.id))

        event.refresh_from_db()
        assert event.status == WebhookEventStatus.FAILED
        assert "RuntimeError" in event.error_message
