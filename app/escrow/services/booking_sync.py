"""
Mirror escrow progress onto the Booking and its PhotoRequest.

Bookings and requests are owned by the matching flow; the escrow app only
ever writes the handful of status and delivery fields listed here, always
with a queryset ``update()`` so unrelated columns are never overwritten
from a stale instance.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.utils import timezone

from bookings.models import Booking, PhotoRequest
from bookings.states import BookingStatus, PaymentStatus, RequestStatus

if TYPE_CHECKING:
    from datetime import datetime

    from escrow.models import PhotoDelivery
    from escrow.services.types import ReviewData

logger = logging.getLogger(__name__)


class BookingSynchronizer:
    """
    Usage:
        BookingSynchronizer.on_authorized(booking)
        BookingSynchronizer.on_delivered(booking, delivery, now=now)
        BookingSynchronizer.on_completed(booking, review=review_data, now=now)
        BookingSynchronizer.on_refunded(booking)
    """

    @staticmethod
    def _update(booking: Booking, booking_values: dict, request_values: dict) -> None:
        now = timezone.now()
        if booking_values:
            Booking.objects.filter(pk=booking.pk).update(**booking_values, updated_at=now)
        if request_values:
            PhotoRequest.objects.filter(pk=booking.request_id).update(
                **request_values, updated_at=now
            )
        logger.debug(
            "Booking mirrored",
            extra={
                "booking_id": str(booking.pk),
                "booking_fields": sorted(booking_values),
                "request_fields": sorted(request_values),
            },
        )

    @classmethod
    def on_authorized(cls, booking: Booking) -> None:
        """Hold confirmed: the session can start."""
        cls._update(
            booking,
            {
                "payment_status": PaymentStatus.PAID,
                "status": BookingStatus.IN_PROGRESS,
            },
            {"status": RequestStatus.IN_PROGRESS},
        )

    @classmethod
    def on_delivered(
        cls,
        booking: Booking,
        delivery: PhotoDelivery,
        now: datetime,
    ) -> None:
        # Booking status stays IN_PROGRESS until settlement.
        cls._update(
            booking,
            {
                "photos_delivered": delivery.photo_count,
                "delivery_url": delivery.download_url or "",
                "end_time": now,
            },
            {"status": RequestStatus.DELIVERED},
        )

    @classmethod
    def on_completed(
        cls,
        booking: Booking,
        review: ReviewData | None = None,
        now: datetime | None = None,
    ) -> None:
        now = now or timezone.now()
        booking_values = {
            "status": BookingStatus.COMPLETED,
            "payment_status": PaymentStatus.PAID,
        }
        if review is not None:
            booking_values["guest_rating"] = review.photographer_rating
            booking_values["guest_review"] = review.photographer_review
        cls._update(
            booking,
            booking_values,
            {"status": RequestStatus.COMPLETED, "completed_at": now},
        )

    @classmethod
    def on_refunded(cls, booking: Booking) -> None:
        cls._update(
            booking,
            {
                "payment_status": PaymentStatus.REFUNDED,
                "status": BookingStatus.CANCELLED,
            },
            {"status": RequestStatus.CANCELLED},
        )


__all__ = ["BookingSynchronizer"]
