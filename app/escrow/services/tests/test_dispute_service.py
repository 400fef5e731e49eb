"""
Tests for DisputeService.
"""

from __future__ import annotations

import pytest

from bookings.models import Booking
from bookings.states import BookingStatus
from escrow.locks import settlement_lock
from escrow.models import Dispute
from escrow.repositories import EscrowPaymentRepository
from escrow.services import BookingSynchronizer, DisputeData, DisputeService, EscrowService
from escrow.state_machines import (
    DeliveryStatus,
    DisputeStatus,
    EscrowStatus,
    RequestedResolution,
    SettlementTrigger,
)
from escrow.tests.factories import EscrowPaymentFactory


@pytest.fixture
def dispute_data():
    return DisputeData(
        reason="quality_issue",
        description="Most photos are out of focus",
        evidence_urls=["https://example.com/evidence/1.jpg"],
        requested_resolution=RequestedResolution.PARTIAL_REFUND,
    )


class TestCreateDispute:
    def test_freezes_escrow(self, delivered_escrow, booking, guest, gateway, dispute_data):
        BookingSynchronizer.on_authorized(booking)

        result = DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        assert result.success is True
        stored = EscrowPaymentRepository.get(delivered_escrow.pk)
        assert stored.escrow_status == EscrowStatus.DISPUTED
        assert stored.dispute_reason == "quality_issue: Most photos are out of focus"
        assert stored.dispute_created_at is not None
        assert gateway.calls == []
        assert Booking.objects.get(pk=booking.pk).status == BookingStatus.IN_PROGRESS

    def test_persists_dispute_record(self, delivered_escrow, booking, guest, dispute_data):
        result = DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        dispute = Dispute.objects.get(booking=booking)
        assert result.data == dispute
        assert dispute.escrow_payment_id == delivered_escrow.pk
        assert dispute.raised_by == guest
        assert dispute.reason == "quality_issue"
        assert dispute.evidence_urls == ["https://example.com/evidence/1.jpg"]
        assert dispute.requested_resolution == RequestedResolution.PARTIAL_REFUND
        assert dispute.status == DisputeStatus.PENDING

    def test_before_delivery(self, escrowed_escrow, booking, guest):
        result = DisputeService.create_dispute(
            booking.pk,
            DisputeData(reason="no_delivery", description="Nothing arrived"),
            actor=guest,
        )

        assert result.success is True
        stored = EscrowPaymentRepository.get(escrowed_escrow.pk)
        assert stored.escrow_status == EscrowStatus.DISPUTED
        assert stored.delivery_status == DeliveryStatus.WAITING

    def test_internal_caller_records_guest(self, delivered_escrow, booking, guest, dispute_data):
        result = DisputeService.create_dispute(booking.pk, dispute_data)

        assert result.data.raised_by == guest

    def test_second_dispute_is_already_processed(
        self, delivered_escrow, booking, guest, dispute_data
    ):
        DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        result = DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        assert result.error_code == "ALREADY_PROCESSED"
        assert Dispute.objects.count() == 1

    def test_attaches_to_unsatisfied_confirmation(
        self, delivered_escrow, booking, guest, gateway, dispute_data, mocker
    ):
        EscrowService.confirm_receipt(
            booking.pk,
            satisfied=False,
            issues=["Blurry"],
            actor=guest,
            gateway=gateway,
        )
        send = mocker.patch("escrow.services.dispute_service.send_state_changed")

        result = DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        assert result.success is True
        stored = EscrowPaymentRepository.get(delivered_escrow.pk)
        assert stored.escrow_status == EscrowStatus.DISPUTED
        assert stored.dispute_reason == "Blurry"
        send.assert_not_called()

    @pytest.mark.parametrize(
        "status", [EscrowStatus.PENDING, EscrowStatus.COMPLETED, EscrowStatus.REFUNDED]
    )
    def test_not_eligible(self, booking, guest, dispute_data, status):
        EscrowPaymentFactory(booking=booking, escrow_status=status)

        result = DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        assert result.error_code == "NOT_ELIGIBLE"
        assert not Dispute.objects.exists()

    def test_invalid_data(self, delivered_escrow, booking, guest):
        result = DisputeService.create_dispute(
            booking.pk, DisputeData(reason="bored", description=""), actor=guest
        )

        assert result.error_code == "VALIDATION_ERROR"
        assert set(result.errors) == {"reason", "description"}

    def test_photographer_cannot_dispute(
        self, delivered_escrow, booking, photographer, dispute_data
    ):
        result = DisputeService.create_dispute(
            booking.pk, dispute_data, actor=photographer
        )

        assert result.error_code == "AUTHORIZATION_DENIED"

    def test_settlement_in_progress(self, delivered_escrow, booking, guest, dispute_data):
        with settlement_lock(delivered_escrow.pk):
            result = DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        assert result.error_code == "ALREADY_PROCESSED"
        assert EscrowPaymentRepository.get(delivered_escrow.pk).escrow_status == (
            EscrowStatus.ESCROWED
        )

    def test_sends_state_changed(
        self, delivered_escrow, booking, guest, dispute_data, mocker
    ):
        send = mocker.patch("escrow.services.dispute_service.send_state_changed")

        DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        send.assert_called_once()
        assert send.call_args.kwargs["new_status"] == EscrowStatus.DISPUTED
        assert send.call_args.kwargs["trigger"] == SettlementTrigger.GUEST


class TestGetDispute:
    def test_photographer_can_read(
        self, delivered_escrow, booking, guest, photographer, dispute_data
    ):
        created = DisputeService.create_dispute(booking.pk, dispute_data, actor=guest)

        result = DisputeService.get_dispute(booking.pk, actor=photographer)

        assert result.data == created.data

    def test_no_dispute(self, delivered_escrow, booking, guest):
        result = DisputeService.get_dispute(booking.pk, actor=guest)

        assert result.error_code == "NOT_FOUND"

    def test_stranger_is_denied(self, delivered_escrow, booking, stranger):
        result = DisputeService.get_dispute(booking.pk, actor=stranger)

        assert result.error_code == "AUTHORIZATION_DENIED"
