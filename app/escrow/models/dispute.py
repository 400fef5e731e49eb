"""
Dispute and Review models.

Dispute:
    A guest's complaint about a booking. Opening one freezes the escrow;
    resolving it is an administrative workflow outside this service.

Review:
    The guest's ratings, written when the guest confirms receipt. Escrows
    completed by the auto-confirmation sweep have no review.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from escrow.state_machines import DisputeReason, DisputeStatus, RequestedResolution

RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class Dispute(UUIDPrimaryKeyMixin, BaseModel):
    """
    A guest-raised dispute for a booking.

    Fields:
        booking: Booking in dispute
        escrow_payment: Escrow frozen by the dispute (one dispute per escrow)
        raised_by: Guest account that opened it, when signed in
        reason/description/evidence_urls: What went wrong
        requested_resolution/resolution_detail: What the guest asks for
        status: Review progress (PENDING on creation)
    """

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="disputes",
        help_text="Booking in dispute",
    )

    escrow_payment = models.OneToOneField(
        "escrow.EscrowPayment",
        on_delete=models.PROTECT,
        related_name="dispute_record",
        help_text="Escrow frozen by this dispute",
    )

    raised_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="raised_disputes",
        help_text="Guest who opened the dispute",
    )

    reason = models.CharField(
        max_length=20,
        choices=DisputeReason.choices,
        help_text="Dispute category",
    )

    description = models.TextField(
        help_text="Guest's description of the problem",
    )

    evidence_urls = models.JSONField(
        default=list,
        blank=True,
        help_text="Links to screenshots or other evidence",
    )

    requested_resolution = models.CharField(
        max_length=20,
        choices=RequestedResolution.choices,
        help_text="Outcome the guest asks for",
    )

    resolution_detail = models.TextField(
        blank=True,
        help_text="Details of the requested outcome",
    )

    status = models.CharField(
        max_length=20,
        choices=DisputeStatus.choices,
        default=DisputeStatus.PENDING,
        db_index=True,
        help_text="Review progress of the dispute",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Dispute"
        verbose_name_plural = "Disputes"

    def __str__(self) -> str:
        return f"Dispute({self.booking_id}, {self.reason}, {self.status})"


class Review(UUIDPrimaryKeyMixin, BaseModel):
    """
    Guest review written on confirmation of receipt.
    """

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="reviews",
        help_text="Reviewed booking",
    )

    escrow_payment = models.OneToOneField(
        "escrow.EscrowPayment",
        on_delete=models.PROTECT,
        related_name="review",
        help_text="Escrow completed by this confirmation",
    )

    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="written_reviews",
        help_text="Guest who wrote the review",
    )

    # ==========================================================================
    # Ratings (1-5)
    # ==========================================================================

    photographer_rating = models.PositiveSmallIntegerField(
        validators=RATING_VALIDATORS,
        help_text="Overall rating of the photographer",
    )

    photo_quality_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=RATING_VALIDATORS,
        help_text="Rating of the photos",
    )

    service_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=RATING_VALIDATORS,
        help_text="Rating of the photographer's service",
    )

    # ==========================================================================
    # Free text
    # ==========================================================================

    photographer_review = models.TextField(blank=True)
    photo_quality_comment = models.TextField(blank=True)
    service_comment = models.TextField(blank=True)

    would_recommend = models.BooleanField(
        default=True,
        help_text="Whether the guest would recommend the photographer",
    )

    recommend_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Review"
        verbose_name_plural = "Reviews"
        constraints = [
            models.CheckConstraint(
                condition=Q(photographer_rating__gte=1, photographer_rating__lte=5),
                name="review_photographer_rating_range",
            ),
            models.CheckConstraint(
                condition=Q(photo_quality_rating__isnull=True)
                | Q(photo_quality_rating__gte=1, photo_quality_rating__lte=5),
                name="review_photo_quality_rating_range",
            ),
            models.CheckConstraint(
                condition=Q(service_rating__isnull=True)
                | Q(service_rating__gte=1, service_rating__lte=5),
                name="review_service_rating_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Review({self.booking_id}, {self.photographer_rating}/5)"
