"""
Request and booking models.

PhotoRequest:
    What the guest asked for. A guest may book without an account, so the
    contact details are stored on the request and `guest` is optional.

Booking:
    The match between a request and a photographer, carrying the agreed
    price split. One booking has at most one live escrow payment
    (see escrow.models.EscrowPayment).

Only the settlement-related fields of both models are written by this
project; everything else is owned by the matching flow.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from bookings.states import BookingStatus, PaymentStatus, RequestStatus
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class PhotoRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    A guest's request for an on-demand photo session.
    """

    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="photo_requests",
        help_text="Guest account, when the guest booked while signed in",
    )
    guest_name = models.CharField(
        max_length=100,
        help_text="Name the photographer should ask for",
    )
    guest_phone = models.CharField(
        max_length=32,
        blank=True,
        help_text="Contact phone number",
    )
    guest_email = models.EmailField(
        blank=True,
        help_text="Contact email address",
    )
    location = models.CharField(
        max_length=255,
        blank=True,
        help_text="Where the session takes place",
    )
    duration_minutes = models.PositiveIntegerField(
        default=30,
        help_text="Requested session length",
    )
    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.PENDING,
        db_index=True,
        help_text="Request lifecycle status",
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the request was completed",
    )

    class Meta:
        verbose_name = "Photo Request"
        verbose_name_plural = "Photo Requests"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"PhotoRequest {self.id} ({self.status})"


class Booking(UUIDPrimaryKeyMixin, BaseModel):
    """
    A confirmed match between a guest's request and a photographer.

    Amounts are integer minor currency units.
    """

    request = models.OneToOneField(
        PhotoRequest,
        on_delete=models.PROTECT,
        related_name="booking",
        help_text="The request this booking fulfils",
    )
    photographer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="photo_bookings",
        help_text="Photographer who takes the photos",
    )

    # ==========================================================================
    # Price split
    # ==========================================================================

    total_amount = models.PositiveBigIntegerField(
        help_text="Amount charged to the guest, in minor units",
    )
    platform_fee = models.PositiveBigIntegerField(
        default=0,
        help_text="Platform fee kept on settlement, in minor units",
    )
    photographer_earnings = models.PositiveBigIntegerField(
        default=0,
        help_text="Amount owed to the photographer, in minor units",
    )

    # ==========================================================================
    # Status (mirrored from escrow)
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING_PAYMENT,
        db_index=True,
        help_text="Booking lifecycle status",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        help_text="Payment status shown to the parties",
    )

    # ==========================================================================
    # Session and delivery
    # ==========================================================================

    start_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the session started",
    )
    end_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the session ended (set on delivery)",
    )
    photos_delivered = models.PositiveIntegerField(
        default=0,
        help_text="Number of photos in the latest delivery",
    )
    delivery_url = models.URLField(
        max_length=2048,
        blank=True,
        help_text="Where the guest downloads the photos",
    )

    # ==========================================================================
    # Guest feedback
    # ==========================================================================

    guest_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Guest's overall rating of the photographer (1-5)",
    )
    guest_review = models.TextField(
        blank=True,
        help_text="Guest's review text",
    )

    class Meta:
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(platform_fee__lte=F("total_amount")),
                name="booking_fee_within_total",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking {self.id} ({self.status})"

    @property
    def guest(self):
        """Guest account of the underlying request (may be None)."""
        return self.request.guest

    @property
    def guest_contact(self) -> str:
        """Best available contact for the guest."""
        return self.request.guest_phone or self.request.guest_email
