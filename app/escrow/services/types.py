"""
Parameter and result types for the escrow services.

Input dataclasses only describe what a caller submitted; each has a
``validate()`` returning field errors so the service can answer with a
single VALIDATION_ERROR listing every problem.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator

from escrow.directory import OTHER_SERVICE_ID, get_service, is_known_service
from escrow.state_machines import (
    DeliveryMethod,
    DisputeReason,
    PhotoResolution,
    RequestedResolution,
    SettlementOutcome,
)

if TYPE_CHECKING:
    from datetime import datetime

    from escrow.models import Dispute, EscrowPayment, PhotoDelivery, Review

FieldErrors = dict[str, list[str]]

_validate_url = URLValidator(schemes=["http", "https"])


def _is_url(value: str | None) -> bool:
    if not value:
        return False
    try:
        _validate_url(value)
    except DjangoValidationError:
        return False
    return True


# =============================================================================
# Inputs
# =============================================================================


@dataclass
class DeliveryData:
    """
    Photos a photographer hands over for a booking.

    Attributes:
        delivery_method: external_url (share link) or direct_upload
        photo_count: Number of delivered photos
        resolution: high, medium or web
        formats: Distinct file formats, e.g. ["jpg", "raw"]
        total_size_mb: Total size of the delivery
        delivery_url: Download URL of a direct upload
        thumbnail_url: Preview image
        external_url: Share link on an external service
        external_service: Directory id of that service, or "other"
        external_password: Password protecting the share link
        external_expires_at: When the share link stops working
        photographer_message: Note shown to the guest
    """

    delivery_method: str
    photo_count: int
    resolution: str
    formats: list[str]
    total_size_mb: Decimal = Decimal("0")
    delivery_url: str | None = None
    thumbnail_url: str | None = None
    external_url: str | None = None
    external_service: str | None = None
    external_password: str | None = None
    external_expires_at: datetime | None = None
    photographer_message: str = ""

    @property
    def guest_facing_url(self) -> str | None:
        """The link mirrored onto the booking; share links win over uploads."""
        return self.external_url or self.delivery_url

    def validate(self) -> FieldErrors:
        errors: FieldErrors = {}

        def add(name: str, message: str) -> None:
            errors.setdefault(name, []).append(message)

        if self.photo_count is None or self.photo_count <= 0:
            add("photo_count", "Must be a positive number of photos.")

        if self.resolution not in PhotoResolution.values:
            add("resolution", f"Unknown resolution '{self.resolution}'.")

        if not self.formats:
            add("formats", "At least one format is required.")
        elif len(set(self.formats)) != len(self.formats):
            add("formats", "Formats must be distinct.")

        if self.total_size_mb is not None and self.total_size_mb < 0:
            add("total_size_mb", "Must not be negative.")

        if self.thumbnail_url and not _is_url(self.thumbnail_url):
            add("thumbnail_url", "Enter a valid URL.")

        if self.delivery_method == DeliveryMethod.DIRECT_UPLOAD:
            if not _is_url(self.delivery_url):
                add("delivery_url", "A valid download URL is required for direct uploads.")
        elif self.delivery_method == DeliveryMethod.EXTERNAL_URL:
            self._validate_external(add)
        else:
            add("delivery_method", f"Unknown delivery method '{self.delivery_method}'.")

        return errors

    def _validate_external(self, add) -> None:
        if not _is_url(self.external_url):
            add("external_url", "A valid share link is required for external delivery.")

        if not self.external_service:
            add("external_service", "The external service is required.")
            return
        if not is_known_service(self.external_service):
            add("external_service", f"Unknown service '{self.external_service}'.")
            return
        if self.external_service == OTHER_SERVICE_ID:
            return

        service = get_service(self.external_service)
        if self.external_url and not service.matches_url(self.external_url):
            add("external_url", f"Link is not a {service.name} URL.")
        if self.external_password and not service.supports_password:
            add("external_password", f"{service.name} links cannot be password protected.")
        if self.external_expires_at and not service.supports_expiry:
            add("external_expires_at", f"{service.name} links do not expire.")
        if (
            self.total_size_mb is not None
            and self.total_size_mb > service.max_file_size_gb * 1024
        ):
            add(
                "total_size_mb",
                f"{service.name} accepts at most {service.max_file_size_gb} GB.",
            )


@dataclass
class ReviewData:
    """Guest's review submitted together with a satisfied confirmation."""

    photographer_rating: int
    photo_quality_rating: int | None = None
    service_rating: int | None = None
    photographer_review: str = ""
    photo_quality_comment: str = ""
    service_comment: str = ""
    would_recommend: bool = True
    recommend_reason: str = ""

    RATING_FIELDS = ("photographer_rating", "photo_quality_rating", "service_rating")

    def validate(self) -> FieldErrors:
        errors: FieldErrors = {}
        for name in self.RATING_FIELDS:
            value = getattr(self, name)
            if value is None and name != "photographer_rating":
                continue
            if value is None or not 1 <= value <= 5:
                errors[name] = ["Rating must be between 1 and 5."]
        return errors

    def as_model_values(self) -> dict:
        return {
            "photographer_rating": self.photographer_rating,
            "photo_quality_rating": self.photo_quality_rating,
            "service_rating": self.service_rating,
            "photographer_review": self.photographer_review,
            "photo_quality_comment": self.photo_quality_comment,
            "service_comment": self.service_comment,
            "would_recommend": self.would_recommend,
            "recommend_reason": self.recommend_reason,
        }


@dataclass
class DisputeData:
    reason: str
    description: str
    evidence_urls: list[str] = field(default_factory=list)
    requested_resolution: str = RequestedResolution.REFUND

    def validate(self) -> FieldErrors:
        errors: FieldErrors = {}
        if self.reason not in DisputeReason.values:
            errors["reason"] = [f"Unknown dispute reason '{self.reason}'."]
        if not (self.description or "").strip():
            errors["description"] = ["A description of the problem is required."]
        if self.requested_resolution not in RequestedResolution.values:
            errors["requested_resolution"] = [
                f"Unknown resolution '{self.requested_resolution}'."
            ]
        bad_urls = [url for url in self.evidence_urls if not _is_url(url)]
        if bad_urls:
            errors["evidence_urls"] = [f"Invalid URL: {url}" for url in bad_urls]
        return errors

    @property
    def escrow_reason(self) -> str:
        """Text stored on EscrowPayment.dispute_reason."""
        return f"{self.reason}: {self.description.strip()}"


# =============================================================================
# Results
# =============================================================================


@dataclass
class HoldResult:
    """A freshly created PENDING escrow and the secret the guest pays with."""

    escrow: EscrowPayment
    client_secret: str | None


@dataclass
class ReceiptResult:
    outcome: str
    escrow: EscrowPayment | None
    review: Review | None = None

    @property
    def completed(self) -> bool:
        return self.outcome == SettlementOutcome.COMPLETED


@dataclass
class EscrowStatusView:
    escrow: EscrowPayment
    delivery: PhotoDelivery | None = None
    dispute: Dispute | None = None
    review: Review | None = None


@dataclass
class SweepFailure:
    escrow_id: uuid.UUID
    error_code: str
    error: str


@dataclass
class SweepResult:
    """
    Outcome of one auto-confirmation run.

    Attributes:
        processed_count: Escrows this run moved to COMPLETED
        failures: Escrows that raised, with the error kind
        skipped_count: Escrows another path settled or was settling
    """

    processed_count: int = 0
    failures: list[SweepFailure] = field(default_factory=list)
    skipped_count: int = 0

    def to_dict(self) -> dict:
        return {
            "processed_count": self.processed_count,
            "skipped_count": self.skipped_count,
            "failures": [
                {
                    "escrow_id": str(failure.escrow_id),
                    "error_code": failure.error_code,
                    "error": failure.error,
                }
                for failure in self.failures
            ],
        }


__all__ = [
    "DeliveryData",
    "ReviewData",
    "DisputeData",
    "HoldResult",
    "ReceiptResult",
    "EscrowStatusView",
    "SweepFailure",
    "SweepResult",
]
