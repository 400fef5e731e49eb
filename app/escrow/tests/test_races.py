"""
Concurrency tests for settlement.

A guest confirmation and the auto-confirmation sweep may both try to
capture the same hold. These tests run the competing path from inside the
gateway capture call (MockGateway.on_capture), which is the widest window
a real race can hit, and check that the hold is captured at most once.
"""

from __future__ import annotations

import itertools
from datetime import timedelta

import pytest

from bookings.models import Booking
from bookings.states import BookingStatus
from escrow.models import EscrowPayment, Review
from escrow.repositories import EscrowPaymentRepository
from escrow.services import DisputeData, DisputeService, EscrowService, ReviewData
from escrow.state_machines import EscrowStatus, SettlementOutcome
from escrow.workers import sweep

pytestmark = pytest.mark.integration


@pytest.fixture
def due(delivered_escrow):
    """A moment after the escrow's auto-confirmation deadline."""
    return delivered_escrow.auto_confirm_at + timedelta(hours=1)


class TestConfirmAndSweep:
    def test_guest_confirmation_during_sweep_capture(
        self, delivered_escrow, guest, gateway, due
    ):
        inner = []
        gateway.on_capture = lambda hold_ref: inner.append(
            EscrowService.confirm_receipt(
                delivered_escrow.booking_id,
                satisfied=True,
                review=ReviewData(photographer_rating=5),
                actor=guest,
                gateway=gateway,
                now=due,
            )
        )

        result = sweep(now=due, gateway=gateway)

        assert result.processed_count == 1
        assert inner[0].data.outcome == SettlementOutcome.ALREADY_PROCESSED
        assert len(gateway.capture_calls) == 1
        assert not Review.objects.exists()

    def test_sweep_during_guest_capture(self, delivered_escrow, guest, gateway, due):
        inner = []
        gateway.on_capture = lambda hold_ref: inner.append(
            sweep(now=due, gateway=gateway)
        )

        result = EscrowService.confirm_receipt(
            delivered_escrow.booking_id,
            satisfied=True,
            review=ReviewData(photographer_rating=5),
            actor=guest,
            gateway=gateway,
            now=due,
        )

        assert result.data.outcome == SettlementOutcome.COMPLETED
        assert inner[0].processed_count == 0
        assert inner[0].skipped_count == 1
        assert inner[0].failures == []
        assert len(gateway.capture_calls) == 1
        assert Review.objects.count() == 1

    def test_repeated_sweeps(self, delivered_escrow, gateway, due):
        first = sweep(now=due, gateway=gateway)
        second = sweep(now=due, gateway=gateway)

        assert first.processed_count == 1
        assert second.processed_count == 0
        assert second.failures == []
        assert len(gateway.capture_calls) == 1

    def test_confirmation_after_sweep(self, delivered_escrow, guest, gateway, due):
        sweep(now=due, gateway=gateway)

        result = EscrowService.confirm_receipt(
            delivered_escrow.booking_id, satisfied=True, actor=guest, gateway=gateway
        )

        assert result.error_code == "NOT_DELIVERABLE"
        assert len(gateway.capture_calls) == 1


class TestDisputeAndCapture:
    def test_dispute_during_capture_is_rejected(self, delivered_escrow, guest, gateway):
        inner = []
        gateway.on_capture = lambda hold_ref: inner.append(
            DisputeService.create_dispute(
                delivered_escrow.booking_id,
                DisputeData(reason="quality_issue", description="Blurry"),
                actor=guest,
            )
        )

        result = EscrowService.confirm_receipt(
            delivered_escrow.booking_id, satisfied=True, actor=guest, gateway=gateway
        )

        assert result.data.outcome == SettlementOutcome.COMPLETED
        assert inner[0].error_code == "ALREADY_PROCESSED"
        stored = EscrowPaymentRepository.get(delivered_escrow.pk)
        assert stored.escrow_status == EscrowStatus.COMPLETED

    def test_unsatisfied_during_sweep_capture(self, delivered_escrow, guest, gateway, due):
        inner = []
        gateway.on_capture = lambda hold_ref: inner.append(
            EscrowService.confirm_receipt(
                delivered_escrow.booking_id,
                satisfied=False,
                issues=["Wrong location"],
                actor=guest,
                gateway=gateway,
            )
        )

        sweep(now=due, gateway=gateway)

        assert inner[0].data.outcome == SettlementOutcome.ALREADY_PROCESSED
        assert EscrowPaymentRepository.get(delivered_escrow.pk).escrow_status == (
            EscrowStatus.COMPLETED
        )


class TestLostConditionalUpdate:
    def test_row_changed_without_the_lock(self, delivered_escrow, booking, guest, gateway):
        # Another writer moves the row while the hold is being captured.
        gateway.on_capture = lambda hold_ref: EscrowPayment.objects.filter(
            pk=delivered_escrow.pk
        ).update(escrow_status=EscrowStatus.DISPUTED)

        result = EscrowService.confirm_receipt(
            booking.pk,
            satisfied=True,
            review=ReviewData(photographer_rating=5),
            actor=guest,
            gateway=gateway,
        )

        assert result.success is True
        assert result.data.outcome == SettlementOutcome.ALREADY_PROCESSED
        assert result.data.escrow.escrow_status == EscrowStatus.DISPUTED
        assert not Review.objects.exists()
        assert Booking.objects.get(pk=booking.pk).status != BookingStatus.COMPLETED
        assert len(gateway.capture_calls) == 1


OPERATIONS = ["confirm", "unsatisfied", "dispute", "sweep"]


class TestInterleavings:
    """Every ordering of the settlement paths captures at most once."""

    @pytest.mark.parametrize("order", list(itertools.permutations(OPERATIONS)))
    def test_capture_at_most_once(self, delivered_escrow, guest, gateway, due, order):
        booking_id = delivered_escrow.booking_id
        run = {
            "confirm": lambda: EscrowService.confirm_receipt(
                booking_id, satisfied=True, actor=guest, gateway=gateway, now=due
            ),
            "unsatisfied": lambda: EscrowService.confirm_receipt(
                booking_id, satisfied=False, actor=guest, gateway=gateway, now=due
            ),
            "dispute": lambda: DisputeService.create_dispute(
                booking_id,
                DisputeData(reason="other", description="Changed my mind"),
                actor=guest,
                now=due,
            ),
            "sweep": lambda: sweep(now=due, gateway=gateway),
        }

        for name in order:
            run[name]()

        stored = EscrowPaymentRepository.get(delivered_escrow.pk)
        assert len(gateway.capture_calls) <= 1
        if stored.escrow_status == EscrowStatus.COMPLETED:
            assert len(gateway.capture_calls) == 1
            assert order[0] in ("confirm", "sweep")
        else:
            assert stored.escrow_status == EscrowStatus.DISPUTED
            assert gateway.capture_calls == []
