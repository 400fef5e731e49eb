"""
Tests for DeliveryTracker.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest
from django.utils import timezone

from bookings.models import Booking
from bookings.states import BookingStatus, RequestStatus
from escrow.models import PhotoDelivery
from escrow.repositories import EscrowPaymentRepository
from escrow.services import BookingSynchronizer, DeliveryTracker, EscrowService
from escrow.state_machines import DeliveryMethod, DeliveryStatus, EscrowStatus
from escrow.tests.factories import EscrowPaymentFactory, PhotoDeliveryFactory


class TestRecordDelivery:
    def test_records_delivery(self, escrowed_escrow, booking, photographer, delivery_data):
        now = timezone.now()

        result = DeliveryTracker.record_delivery(
            booking.pk, delivery_data, actor=photographer, now=now
        )

        assert result.success is True
        delivery = result.data
        assert delivery.photo_count == 40
        assert delivery.formats == ["jpg", "raw"]
        assert delivery.external_service == "gigafile"
        assert delivery.external_password == "1234"
        assert delivery.delivered_at == now
        assert delivery.download_expires_at == now + timedelta(days=30)
        assert delivery.download_count == 0
        assert delivery.max_downloads == 10
        assert delivery.confirmed_at is None

    def test_escrow_becomes_delivered(self, escrowed_escrow, booking, delivery_data):
        now = timezone.now()

        DeliveryTracker.record_delivery(booking.pk, delivery_data, now=now)

        stored = EscrowPaymentRepository.get(escrowed_escrow.pk)
        assert stored.escrow_status == EscrowStatus.ESCROWED
        assert stored.delivery_status == DeliveryStatus.DELIVERED
        assert stored.delivered_at == now
        # The auto-confirmation deadline still counts from escrow.
        assert stored.auto_confirm_at == escrowed_escrow.auto_confirm_at

    def test_mirrors_booking_and_request(self, escrowed_escrow, booking, delivery_data):
        BookingSynchronizer.on_authorized(booking)

        DeliveryTracker.record_delivery(booking.pk, delivery_data)

        stored = Booking.objects.select_related("request").get(pk=booking.pk)
        assert stored.photos_delivered == 40
        assert stored.delivery_url == "https://46.gigafile.nu/0101-abcdef"
        assert stored.end_time is not None
        assert stored.status == BookingStatus.IN_PROGRESS
        assert stored.request.status == RequestStatus.DELIVERED

    def test_direct_upload(self, escrowed_escrow, booking, delivery_data):
        upload = replace(
            delivery_data,
            delivery_method=DeliveryMethod.DIRECT_UPLOAD,
            external_url=None,
            external_service=None,
            external_password=None,
            delivery_url="https://cdn.example.com/bookings/photos.zip",
        )

        result = DeliveryTracker.record_delivery(booking.pk, upload)

        assert result.data.download_url == "https://cdn.example.com/bookings/photos.zip"
        assert (
            Booking.objects.get(pk=booking.pk).delivery_url
            == "https://cdn.example.com/bookings/photos.zip"
        )

    def test_redelivery_replaces_and_resets_downloads(
        self, delivered_escrow, booking, delivery_data
    ):
        original = PhotoDelivery.objects.get(booking=booking)
        PhotoDelivery.objects.filter(pk=original.pk).update(download_count=4)
        later = timezone.now() + timedelta(hours=2)

        result = DeliveryTracker.record_delivery(
            booking.pk, replace(delivery_data, photo_count=45), now=later
        )

        assert result.data.pk == original.pk
        assert result.data.photo_count == 45
        assert result.data.download_count == 0
        assert result.data.download_expires_at == later + timedelta(days=30)
        assert PhotoDelivery.objects.filter(booking=booking).count() == 1

    def test_rejected_after_guest_confirmed(
        self, delivered_escrow, booking, guest, gateway, delivery_data
    ):
        EscrowService.confirm_receipt(
            booking.pk, satisfied=True, actor=guest, gateway=gateway
        )

        result = DeliveryTracker.record_delivery(
            booking.pk, replace(delivery_data, photo_count=1)
        )

        assert result.error_code == "ALREADY_CONFIRMED"
        assert result.http_status == 409
        assert PhotoDelivery.objects.get(booking=booking).photo_count == 40

    def test_confirmation_checked_before_escrow_state(
        self, delivered_escrow, booking, delivery_data
    ):
        PhotoDelivery.objects.filter(booking=booking).update(confirmed_at=timezone.now())

        result = DeliveryTracker.record_delivery(booking.pk, delivery_data)

        assert result.error_code == "ALREADY_CONFIRMED"

    def test_not_eligible_before_authorization(self, pending_escrow, booking, delivery_data):
        result = DeliveryTracker.record_delivery(booking.pk, delivery_data)

        assert result.error_code == "NOT_ELIGIBLE"
        assert not PhotoDelivery.objects.filter(booking=booking).exists()
        assert EscrowPaymentRepository.get(pending_escrow.pk).delivery_status == (
            DeliveryStatus.WAITING
        )

    @pytest.mark.parametrize(
        "status", [EscrowStatus.DISPUTED, EscrowStatus.REFUNDED]
    )
    def test_not_eligible_after_escrow(self, booking, delivery_data, status):
        EscrowPaymentFactory(booking=booking, escrow_status=status)

        result = DeliveryTracker.record_delivery(booking.pk, delivery_data)

        assert result.error_code == "NOT_ELIGIBLE"

    def test_invalid_delivery(self, escrowed_escrow, booking, delivery_data):
        result = DeliveryTracker.record_delivery(
            booking.pk, replace(delivery_data, photo_count=0, formats=[])
        )

        assert result.error_code == "VALIDATION_ERROR"
        assert set(result.errors) == {"photo_count", "formats"}
        assert not PhotoDelivery.objects.exists()

    def test_guest_cannot_deliver(self, escrowed_escrow, booking, guest, delivery_data):
        result = DeliveryTracker.record_delivery(booking.pk, delivery_data, actor=guest)

        assert result.error_code == "AUTHORIZATION_DENIED"

    def test_no_escrow(self, booking, delivery_data):
        result = DeliveryTracker.record_delivery(booking.pk, delivery_data)

        assert result.error_code == "NOT_FOUND"

    def test_sends_photos_delivered(self, escrowed_escrow, booking, delivery_data, mocker):
        send = mocker.patch("escrow.services.delivery_tracker.send_photos_delivered")

        result = DeliveryTracker.record_delivery(booking.pk, delivery_data)

        send.assert_called_once()
        assert send.call_args.kwargs["delivery"] == result.data
        assert send.call_args.kwargs["escrow"].delivery_status == DeliveryStatus.DELIVERED


class TestRegisterDownload:
    def test_counts_download(self, delivered_escrow, booking, guest):
        result = DeliveryTracker.register_download(booking.pk, actor=guest)

        assert result.success is True
        assert result.data.download_count == 1

    def test_limit_reached(self, db, guest):
        delivery = PhotoDeliveryFactory(
            booking__request__guest=guest, download_count=10, max_downloads=10
        )

        result = DeliveryTracker.register_download(delivery.booking_id, actor=guest)

        assert result.error_code == "NOT_ELIGIBLE"
        assert result.http_status == 409

    def test_window_closed(self, delivered_escrow, booking, guest):
        delivery = PhotoDelivery.objects.get(booking=booking)

        result = DeliveryTracker.register_download(
            booking.pk, actor=guest, now=delivery.download_expires_at + timedelta(seconds=1)
        )

        assert result.error_code == "NOT_ELIGIBLE"

    def test_photographer_cannot_download(self, delivered_escrow, booking, photographer):
        result = DeliveryTracker.register_download(booking.pk, actor=photographer)

        assert result.error_code == "AUTHORIZATION_DENIED"

    def test_nothing_delivered(self, escrowed_escrow, booking, guest):
        result = DeliveryTracker.register_download(booking.pk, actor=guest)

        assert result.error_code == "NOT_FOUND"


class TestGetDelivery:
    def test_party_can_read(self, delivered_escrow, booking, photographer):
        result = DeliveryTracker.get_delivery(booking.pk, actor=photographer)

        assert result.data.booking_id == booking.pk

    def test_stranger_is_denied(self, delivered_escrow, booking, stranger):
        result = DeliveryTracker.get_delivery(booking.pk, actor=stranger)

        assert result.error_code == "AUTHORIZATION_DENIED"
