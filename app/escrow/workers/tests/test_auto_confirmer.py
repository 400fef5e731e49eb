"""
Tests for the auto-confirmation sweep.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone

from escrow.models import Review
from escrow.repositories import EscrowPaymentRepository
from escrow.services import EscrowService, SweepResult
from escrow.state_machines import DeliveryStatus, EscrowStatus
from escrow.tests.factories import EscrowPaymentFactory, PhotoDeliveryFactory
from escrow.workers import process_auto_confirmations, sweep


def make_due(hours_overdue: int = 1, **kwargs):
    now = timezone.now()
    escrow = EscrowPaymentFactory(
        delivered=True,
        escrowed_at=now - timedelta(hours=72 + hours_overdue),
        auto_confirm_at=now - timedelta(hours=hours_overdue),
        **kwargs,
    )
    PhotoDeliveryFactory(booking=escrow.booking)
    return escrow


class TestSweep:
    def test_completes_due_escrows(self, db, gateway):
        first = make_due(hours_overdue=2)
        second = make_due(hours_overdue=1)

        result = sweep(gateway=gateway)

        assert result.processed_count == 2
        assert result.failures == []
        assert [call[1] for call in gateway.capture_calls] == [
            first.gateway_hold_ref,
            second.gateway_hold_ref,
        ]
        for escrow in (first, second):
            stored = EscrowPaymentRepository.get(escrow.pk)
            assert stored.escrow_status == EscrowStatus.COMPLETED
            assert stored.delivery_status == DeliveryStatus.CONFIRMED
        assert not Review.objects.exists()

    def test_boundary(self, db, gateway):
        now = timezone.now()
        due = EscrowPaymentFactory(delivered=True, auto_confirm_at=now - timedelta(seconds=1))
        not_due = EscrowPaymentFactory(
            delivered=True, auto_confirm_at=now + timedelta(seconds=1)
        )

        result = sweep(now=now, gateway=gateway)

        assert result.processed_count == 1
        assert EscrowPaymentRepository.get(due.pk).escrow_status == EscrowStatus.COMPLETED
        assert EscrowPaymentRepository.get(not_due.pk).escrow_status == EscrowStatus.ESCROWED

    def test_skips_rows_not_escrowed_and_delivered(self, db, gateway):
        past = timezone.now() - timedelta(hours=1)
        EscrowPaymentFactory(escrowed=True, auto_confirm_at=past)
        EscrowPaymentFactory(
            escrow_status=EscrowStatus.DISPUTED,
            delivery_status=DeliveryStatus.DELIVERED,
            auto_confirm_at=past,
        )

        result = sweep(gateway=gateway)

        assert result.processed_count == 0
        assert gateway.capture_calls == []

    def test_gateway_failure_does_not_abort_batch(self, db, gateway):
        failing = make_due(hours_overdue=2)
        healthy = make_due(hours_overdue=1)

        def decline(hold_ref):
            raise RuntimeError("card_declined")

        gateway.on_capture = decline

        result = sweep(gateway=gateway)

        assert result.processed_count == 1
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.escrow_id == failing.pk
        assert failure.error_code == "GATEWAY_ERROR"

        assert EscrowPaymentRepository.get(failing.pk).escrow_status == EscrowStatus.ESCROWED
        assert EscrowPaymentRepository.get(healthy.pk).escrow_status == EscrowStatus.COMPLETED

    def test_failed_row_is_retried_next_run(self, db, gateway):
        escrow = make_due()
        gateway.capture_error = RuntimeError("timeout")
        sweep(gateway=gateway)

        gateway.capture_error = None
        result = sweep(gateway=gateway)

        assert result.processed_count == 1
        assert EscrowPaymentRepository.get(escrow.pk).escrow_status == EscrowStatus.COMPLETED
        first_key, second_key = (call[2] for call in gateway.capture_calls)
        assert first_key == second_key

    def test_unexpected_crash_is_isolated(self, db, gateway, mocker):
        crashing = make_due(hours_overdue=2)
        healthy = make_due(hours_overdue=1)
        real_settle = EscrowService.settle

        def settle(escrow_id, **kwargs):
            if escrow_id == crashing.pk:
                raise RuntimeError("boom")
            return real_settle(escrow_id, **kwargs)

        mocker.patch.object(EscrowService, "settle", side_effect=settle)

        result = sweep(gateway=gateway)

        assert result.processed_count == 1
        assert result.failures[0].error_code == "UNEXPECTED_ERROR"
        assert EscrowPaymentRepository.get(healthy.pk).escrow_status == EscrowStatus.COMPLETED

    def test_batch_size(self, db, gateway, settings):
        settings.ESCROW_SWEEP_BATCH_SIZE = 2
        for hours in (3, 2, 1):
            make_due(hours_overdue=hours)

        assert sweep(gateway=gateway).processed_count == 2
        assert sweep(gateway=gateway).processed_count == 1

    def test_disabled_auto_confirm(self, db, gateway):
        make_due(auto_confirm_enabled=False)

        result = sweep(gateway=gateway)

        assert result.processed_count == 0
        assert gateway.capture_calls == []


class TestProcessAutoConfirmationsTask:
    def test_registered_name(self):
        assert process_auto_confirmations.name == "escrow.process_auto_confirmations"

    def test_returns_summary(self, mocker):
        mocker.patch(
            "escrow.workers.auto_confirmer.sweep",
            return_value=SweepResult(processed_count=3, skipped_count=1),
        )

        assert process_auto_confirmations() == {
            "processed_count": 3,
            "skipped_count": 1,
            "failures": [],
        }

    @pytest.mark.django_db
    def test_nothing_due(self):
        assert process_auto_confirmations.apply().get() == {
            "processed_count": 0,
            "skipped_count": 0,
            "failures": [],
        }
