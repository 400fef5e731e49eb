"""
Tests for escrow repositories.

The conditional update is what keeps two settlement paths from both
writing a transition, so it is exercised against stale instances here.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from escrow.exceptions import AlreadyProcessedError
from escrow.repositories import (
    DisputeRepository,
    EscrowPaymentRepository,
    PhotoDeliveryRepository,
)
from escrow.state_machines import DeliveryStatus, EscrowStatus
from escrow.tests.factories import (
    BookingFactory,
    DisputeFactory,
    EscrowPaymentFactory,
    PhotoDeliveryFactory,
)


class TestConditionalUpdate:
    def test_persists_transition_and_bumps_version(self, db):
        escrow = EscrowPaymentFactory(delivered=True)
        now = timezone.now()

        escrow.complete(now=now)
        won = EscrowPaymentRepository.conditional_update(
            escrow,
            expected_status=EscrowStatus.ESCROWED,
            fields=["confirmed_at", "completed_at"],
        )

        stored = EscrowPaymentRepository.get(escrow.pk)
        assert won is True
        assert stored.escrow_status == EscrowStatus.COMPLETED
        assert stored.delivery_status == DeliveryStatus.CONFIRMED
        assert stored.completed_at == now
        assert stored.version == 2

    def test_stale_instance_loses(self, db):
        escrow = EscrowPaymentFactory(delivered=True)
        stale = EscrowPaymentRepository.get(escrow.pk)

        escrow.dispute(reason="Blurry")
        assert EscrowPaymentRepository.conditional_update(
            escrow,
            expected_status=EscrowStatus.ESCROWED,
            fields=["dispute_reason", "dispute_created_at"],
        )

        stale.complete()
        won = EscrowPaymentRepository.conditional_update(
            stale,
            expected_status=EscrowStatus.ESCROWED,
            fields=["confirmed_at", "completed_at"],
        )

        stored = EscrowPaymentRepository.get(escrow.pk)
        assert won is False
        assert stored.escrow_status == EscrowStatus.DISPUTED
        assert stored.completed_at is None

    def test_expected_delivery_status_is_checked(self, db):
        escrow = EscrowPaymentFactory(escrowed=True)

        escrow.refund()
        won = EscrowPaymentRepository.conditional_update(
            escrow,
            expected_status=EscrowStatus.ESCROWED,
            fields=["refunded_at"],
            expected_delivery_status=DeliveryStatus.DELIVERED,
        )

        assert won is False
        assert EscrowPaymentRepository.get(escrow.pk).escrow_status == EscrowStatus.ESCROWED


class TestEscrowLookups:
    def test_create_duplicate_live_escrow(self, db):
        booking = BookingFactory()
        EscrowPaymentRepository.create(booking=booking, total_amount=10000)

        with pytest.raises(AlreadyProcessedError):
            EscrowPaymentRepository.create(booking=booking, total_amount=10000)

    def test_get_by_booking_id_prefers_live_escrow(self, db):
        booking = BookingFactory()
        EscrowPaymentFactory(booking=booking, escrow_status=EscrowStatus.REFUNDED)
        live = EscrowPaymentFactory(booking=booking)

        assert EscrowPaymentRepository.get_by_booking_id(booking.pk) == live
        assert EscrowPaymentRepository.count_by_booking_id(booking.pk) == 2

    def test_get_by_booking_id_falls_back_to_refunded(self, db):
        booking = BookingFactory()
        refunded = EscrowPaymentFactory(booking=booking, escrow_status=EscrowStatus.REFUNDED)

        assert EscrowPaymentRepository.get_by_booking_id(booking.pk) == refunded
        assert EscrowPaymentRepository.get_live_by_booking_id(booking.pk) is None

    def test_get_by_hold_ref(self, db):
        escrow = EscrowPaymentFactory(gateway_hold_ref="pi_lookup")

        assert EscrowPaymentRepository.get_by_hold_ref("pi_lookup") == escrow
        assert EscrowPaymentRepository.get_by_hold_ref("pi_missing") is None


class TestQueryEligibleForSweep:
    def test_deadline_boundary(self, db):
        now = timezone.now()
        due = EscrowPaymentFactory(delivered=True, auto_confirm_at=now - timedelta(seconds=1))
        exactly_due = EscrowPaymentFactory(delivered=True, auto_confirm_at=now)
        not_due = EscrowPaymentFactory(delivered=True, auto_confirm_at=now + timedelta(seconds=1))

        ids = EscrowPaymentRepository.query_eligible_for_sweep(now)

        assert due.pk in ids
        assert exactly_due.pk in ids
        assert not_due.pk not in ids

    def test_excludes_ineligible_rows(self, db):
        past = timezone.now() - timedelta(hours=1)
        EscrowPaymentFactory(escrowed=True, auto_confirm_at=past)
        EscrowPaymentFactory(delivered=True, auto_confirm_at=past, auto_confirm_enabled=False)
        EscrowPaymentFactory(
            escrow_status=EscrowStatus.DISPUTED,
            delivery_status=DeliveryStatus.DELIVERED,
            auto_confirm_at=past,
        )
        EscrowPaymentFactory(
            escrow_status=EscrowStatus.COMPLETED,
            delivery_status=DeliveryStatus.CONFIRMED,
            auto_confirm_at=past,
        )

        assert EscrowPaymentRepository.query_eligible_for_sweep(timezone.now()) == []

    def test_oldest_deadline_first_and_limit(self, db):
        now = timezone.now()
        newest = EscrowPaymentFactory(delivered=True, auto_confirm_at=now - timedelta(hours=1))
        oldest = EscrowPaymentFactory(delivered=True, auto_confirm_at=now - timedelta(hours=3))
        EscrowPaymentFactory(delivered=True, auto_confirm_at=now - timedelta(hours=2))

        ids = EscrowPaymentRepository.query_eligible_for_sweep(now, limit=2)

        assert len(ids) == 2
        assert ids[0] == oldest.pk
        assert newest.pk not in ids


class TestPhotoDeliveryRepository:
    def test_upsert_overwrites_existing(self, db):
        delivery = PhotoDeliveryFactory(photo_count=10, download_count=3)

        updated = PhotoDeliveryRepository.upsert(
            delivery.booking, {"photo_count": 25, "download_count": 0}
        )

        assert updated.pk == delivery.pk
        assert updated.photo_count == 25
        assert updated.download_count == 0

    def test_mark_confirmed_sets_timestamp_once(self, db):
        delivery = PhotoDeliveryFactory()
        first = timezone.now()

        assert PhotoDeliveryRepository.mark_confirmed(delivery.booking_id, first) is True
        assert (
            PhotoDeliveryRepository.mark_confirmed(
                delivery.booking_id, first + timedelta(hours=1)
            )
            is False
        )

        delivery.refresh_from_db()
        assert delivery.confirmed_at == first

    def test_register_download_respects_limit(self, db):
        delivery = PhotoDeliveryFactory(download_count=1, max_downloads=2)
        now = timezone.now()

        assert PhotoDeliveryRepository.register_download(delivery.booking_id, now) is True
        assert PhotoDeliveryRepository.register_download(delivery.booking_id, now) is False

        delivery.refresh_from_db()
        assert delivery.download_count == 2

    def test_register_download_respects_window(self, db):
        delivery = PhotoDeliveryFactory()

        assert (
            PhotoDeliveryRepository.register_download(
                delivery.booking_id, delivery.download_expires_at
            )
            is False
        )


class TestDisputeRepository:
    def test_second_dispute_for_escrow_rejected(self, db):
        dispute = DisputeFactory()

        with pytest.raises(AlreadyProcessedError):
            DisputeRepository.create(
                booking=dispute.booking,
                escrow_payment=dispute.escrow_payment,
                reason=dispute.reason,
                description="Again",
                requested_resolution=dispute.requested_resolution,
            )

        assert DisputeRepository.exists_for_escrow(dispute.escrow_payment_id) is True
