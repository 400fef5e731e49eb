"""
Delivery tracker: photographers hand photos over, guests download them.

A booking has at most one PhotoDelivery. Re-delivering before the guest
confirmed receipt overwrites it and reopens the download window; once the
guest confirmed, the delivery is frozen.

Usage:
    from escrow.services import DeliveryData, DeliveryTracker

    result = DeliveryTracker.record_delivery(
        booking_id,
        DeliveryData(
            delivery_method="external_url",
            photo_count=40,
            resolution="high",
            formats=["jpg"],
            external_url="https://46.gigafile.nu/abc",
            external_service="gigafile",
        ),
        actor=request.user,
    )
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.exceptions import ValidationError
from core.services import BaseService, ServiceResult

from escrow.exceptions import (
    AlreadyConfirmedError,
    EscrowNotFoundError,
    NotEligibleError,
)
from escrow.repositories import EscrowPaymentRepository, PhotoDeliveryRepository
from escrow.services.access import (
    load_booking,
    require_guest,
    require_party,
    require_photographer,
)
from escrow.services.booking_sync import BookingSynchronizer
from escrow.signals import send_photos_delivered
from escrow.state_machines import EscrowStatus

if TYPE_CHECKING:
    from datetime import datetime

    from escrow.models import PhotoDelivery
    from escrow.services.types import DeliveryData


class DeliveryTracker(BaseService):
    """Records photo deliveries and guest downloads."""

    @classmethod
    def record_delivery(
        cls,
        booking_id,
        delivery: DeliveryData,
        actor=None,
        now: datetime | None = None,
    ) -> ServiceResult[PhotoDelivery]:
        """
        Record (or replace) the booking's delivery and mark the escrow DELIVERED.

        Checks, in order: booking exists, actor is the photographer, input is
        valid, escrow exists, receipt not yet confirmed (ALREADY_CONFIRMED),
        escrow is ESCROWED (NOT_ELIGIBLE).
        """
        now = now or timezone.now()
        try:
            booking = load_booking(booking_id)
            require_photographer(booking, actor)

            errors = delivery.validate()
            if errors:
                raise ValidationError("Invalid delivery data", details={"errors": errors})

            escrow = EscrowPaymentRepository.get_by_booking_id(booking.pk)
            if escrow is None:
                raise EscrowNotFoundError(
                    "No escrow payment for this booking",
                    details={"booking_id": str(booking.pk)},
                )

            with cls.atomic():
                existing = PhotoDeliveryRepository.get_for_update(booking.pk)
                if existing is not None and existing.is_confirmed:
                    raise AlreadyConfirmedError(
                        "The guest already confirmed receipt of these photos",
                        details={
                            "booking_id": str(booking.pk),
                            "confirmed_at": existing.confirmed_at.isoformat(),
                        },
                    )
                if escrow.escrow_status != EscrowStatus.ESCROWED:
                    raise NotEligibleError(
                        "Photos can only be delivered while the payment is escrowed",
                        details={
                            "booking_id": str(booking.pk),
                            "escrow_status": escrow.escrow_status,
                        },
                    )

                record = PhotoDeliveryRepository.upsert(
                    booking, cls._delivery_values(delivery, now)
                )

                escrow.mark_delivered(now=now)
                won = EscrowPaymentRepository.conditional_update(
                    escrow,
                    expected_status=EscrowStatus.ESCROWED,
                    fields=["delivered_at"],
                )
                if not won:
                    # Settled or disputed since we read it; the upsert rolls back.
                    raise NotEligibleError(
                        "The payment changed while photos were being delivered",
                        details={"booking_id": str(booking.pk)},
                    )

                BookingSynchronizer.on_delivered(booking, record, now=now)
        except Exception as exc:
            return cls.handle_exception(
                exc, "record_delivery", booking_id=str(booking_id)
            )

        cls.get_logger().info(
            "Photos delivered",
            extra={
                "booking_id": str(booking.pk),
                "escrow_id": str(escrow.pk),
                "photo_count": record.photo_count,
                "delivery_method": record.delivery_method,
                "redelivery": existing is not None,
            },
        )
        send_photos_delivered(
            cls,
            booking=booking,
            delivery=record,
            escrow=EscrowPaymentRepository.get(escrow.pk),
        )
        return ServiceResult.success(record)

    @staticmethod
    def _delivery_values(delivery: DeliveryData, now: datetime) -> dict:
        return {
            "delivery_method": delivery.delivery_method,
            "photo_count": delivery.photo_count,
            "total_size_mb": delivery.total_size_mb or 0,
            "resolution": delivery.resolution,
            "formats": list(delivery.formats),
            "photographer_message": delivery.photographer_message or "",
            "delivery_url": delivery.delivery_url or "",
            "thumbnail_url": delivery.thumbnail_url or "",
            "external_url": delivery.external_url or "",
            "external_service": delivery.external_service or "",
            "external_password": delivery.external_password or "",
            "external_expires_at": delivery.external_expires_at,
            "delivered_at": now,
            "download_expires_at": now
            + timedelta(days=settings.ESCROW_DOWNLOAD_WINDOW_DAYS),
            "download_count": 0,
            "max_downloads": settings.ESCROW_MAX_DOWNLOADS,
        }

    @classmethod
    def register_download(
        cls,
        booking_id,
        actor=None,
        now: datetime | None = None,
    ) -> ServiceResult[PhotoDelivery]:
        """Count one guest download; NOT_ELIGIBLE once the window or limit is used up."""
        now = now or timezone.now()
        try:
            booking = load_booking(booking_id)
            require_guest(booking, actor)
            delivery = cls._get_delivery(booking.pk)

            if not PhotoDeliveryRepository.register_download(booking.pk, now):
                raise NotEligibleError(
                    "The download window has closed or the download limit was reached",
                    details={
                        "booking_id": str(booking.pk),
                        "download_count": delivery.download_count,
                        "max_downloads": delivery.max_downloads,
                        "download_expires_at": delivery.download_expires_at.isoformat(),
                    },
                )
            delivery = PhotoDeliveryRepository.get_by_booking_id(booking.pk)
        except Exception as exc:
            return cls.handle_exception(
                exc, "register_download", booking_id=str(booking_id)
            )
        return ServiceResult.success(delivery)

    @classmethod
    def get_delivery(cls, booking_id, actor=None) -> ServiceResult[PhotoDelivery]:
        try:
            booking = load_booking(booking_id)
            require_party(booking, actor)
            delivery = cls._get_delivery(booking.pk)
        except Exception as exc:
            return cls.handle_exception(exc, "get_delivery", booking_id=str(booking_id))
        return ServiceResult.success(delivery)

    @staticmethod
    def _get_delivery(booking_id) -> PhotoDelivery:
        delivery = PhotoDeliveryRepository.get_by_booking_id(booking_id)
        if delivery is None:
            raise EscrowNotFoundError(
                "No photos have been delivered for this booking",
                details={"booking_id": str(booking_id)},
            )
        return delivery


__all__ = ["DeliveryTracker"]
