"""
PhotoDelivery model: the photos a photographer handed over for a booking.

One row per booking. Re-delivery before the guest confirms receipt
overwrites the row; once `confirmed_at` is set the row is final.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from escrow.state_machines import DeliveryMethod, PhotoResolution


def default_max_downloads() -> int:
    return settings.ESCROW_MAX_DOWNLOADS


class PhotoDelivery(UUIDPrimaryKeyMixin, BaseModel):
    """
    Delivery metadata for a booking's photos.

    Fields:
        booking: Booking the photos belong to (unique)
        delivery_method: External file-sharing link or direct upload
        photo_count/total_size_mb/resolution/formats: What was delivered
        delivery_url/thumbnail_url: Direct upload locations
        external_*: Third-party file-sharing details
        download_*: Guest download window and usage
        confirmed_at: When the guest confirmed receipt
    """

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="photo_delivery",
        help_text="Booking the photos were taken for",
    )

    # ==========================================================================
    # What was delivered
    # ==========================================================================

    delivery_method = models.CharField(
        max_length=20,
        choices=DeliveryMethod.choices,
        help_text="How the photos are handed over",
    )

    photo_count = models.PositiveIntegerField(
        help_text="Number of photos delivered",
    )

    total_size_mb = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Total size of the delivery in megabytes",
    )

    resolution = models.CharField(
        max_length=10,
        choices=PhotoResolution.choices,
        default=PhotoResolution.HIGH,
        help_text="Resolution of the delivered photos",
    )

    formats = models.JSONField(
        default=list,
        blank=True,
        help_text="File formats included (e.g. ['jpg', 'raw'])",
    )

    photographer_message = models.TextField(
        blank=True,
        help_text="Message from the photographer to the guest",
    )

    # ==========================================================================
    # Direct upload
    # ==========================================================================

    delivery_url = models.URLField(
        max_length=2048,
        blank=True,
        help_text="Download location for direct uploads",
    )

    thumbnail_url = models.URLField(
        max_length=2048,
        blank=True,
        help_text="Preview image",
    )

    # ==========================================================================
    # External file-sharing service
    # ==========================================================================

    external_url = models.URLField(
        max_length=2048,
        blank=True,
        help_text="Share link on the external service",
    )

    external_service = models.CharField(
        max_length=50,
        blank=True,
        help_text="Directory id of the external service, or 'other'",
    )

    external_password = models.CharField(
        max_length=128,
        blank=True,
        help_text="Password protecting the share link",
    )

    external_expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the share link expires",
    )

    # ==========================================================================
    # Download window
    # ==========================================================================

    delivered_at = models.DateTimeField(
        help_text="When the photos were (last) delivered",
    )

    download_expires_at = models.DateTimeField(
        help_text="End of the guest's download window",
    )

    download_count = models.PositiveIntegerField(
        default=0,
        help_text="Downloads registered since the last delivery",
    )

    max_downloads = models.PositiveIntegerField(
        default=default_max_downloads,
        help_text="Downloads allowed per delivery",
    )

    confirmed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the guest confirmed receipt",
    )

    class Meta:
        ordering = ["-delivered_at"]
        verbose_name = "Photo Delivery"
        verbose_name_plural = "Photo Deliveries"
        constraints = [
            models.CheckConstraint(
                condition=Q(photo_count__gt=0),
                name="photo_delivery_count_positive",
            ),
            models.CheckConstraint(
                condition=Q(download_count__lte=F("max_downloads")),
                name="photo_delivery_downloads_within_limit",
            ),
        ]

    def __str__(self) -> str:
        return f"PhotoDelivery({self.booking_id}, {self.photo_count} photos)"

    @property
    def download_url(self) -> str:
        """Link the guest should open, preferring the external share link."""
        return self.external_url or self.delivery_url

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None

    def can_download(self, now=None) -> bool:
        now = now or timezone.now()
        return (
            now < self.download_expires_at
            and self.download_count < self.max_downloads
        )
