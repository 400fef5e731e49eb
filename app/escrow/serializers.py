"""
DRF serializers for the escrow API.

Input serializers only check the request shape and build the service
dataclasses; business validation (directory rules, rating ranges, state)
happens in the services so every caller gets the same answers.

Usage:
    serializer = DeliverPhotosSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = DeliveryTracker.record_delivery(booking_id, serializer.to_delivery_data())
"""

from __future__ import annotations

from rest_framework import serializers

from escrow.models import Dispute, EscrowPayment, PhotoDelivery, Review
from escrow.services import (
    DeliveryData,
    DisputeData,
    ReviewData,
)
from escrow.state_machines import (
    DeliveryMethod,
    DisputeReason,
    PhotoResolution,
    RequestedResolution,
)

# =============================================================================
# Output
# =============================================================================


class EscrowPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = EscrowPayment
        fields = [
            "id",
            "booking",
            "escrow_status",
            "delivery_status",
            "currency",
            "total_amount",
            "platform_fee",
            "photographer_earnings",
            "auto_confirm_enabled",
            "auto_confirm_hours",
            "auto_confirm_at",
            "escrowed_at",
            "delivered_at",
            "confirmed_at",
            "completed_at",
            "dispute_created_at",
            "dispute_reason",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PhotoDeliverySerializer(serializers.ModelSerializer):
    download_url = serializers.CharField(read_only=True)

    class Meta:
        model = PhotoDelivery
        fields = [
            "id",
            "booking",
            "delivery_method",
            "photo_count",
            "total_size_mb",
            "resolution",
            "formats",
            "photographer_message",
            "download_url",
            "delivery_url",
            "thumbnail_url",
            "external_url",
            "external_service",
            "external_password",
            "external_expires_at",
            "delivered_at",
            "download_expires_at",
            "download_count",
            "max_downloads",
            "confirmed_at",
        ]
        read_only_fields = fields


class DisputeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Dispute
        fields = [
            "id",
            "booking",
            "reason",
            "description",
            "evidence_urls",
            "requested_resolution",
            "resolution_detail",
            "status",
            "created_at",
        ]
        read_only_fields = fields


class ReviewSerializer(serializers.ModelSerializer):
    class Meta:
        model = Review
        fields = [
            "id",
            "booking",
            "photographer_rating",
            "photo_quality_rating",
            "service_rating",
            "photographer_review",
            "photo_quality_comment",
            "service_comment",
            "would_recommend",
            "recommend_reason",
            "created_at",
        ]
        read_only_fields = fields


class EscrowStatusSerializer(serializers.Serializer):
    """Serializes an EscrowStatusView."""

    escrow = EscrowPaymentSerializer()
    delivery = PhotoDeliverySerializer(allow_null=True)
    dispute = DisputeSerializer(allow_null=True)
    review = ReviewSerializer(allow_null=True)


class HoldSerializer(serializers.Serializer):
    """Serializes a HoldResult."""

    escrow = EscrowPaymentSerializer()
    client_secret = serializers.CharField(allow_null=True)


class ReceiptSerializer(serializers.Serializer):
    """Serializes a ReceiptResult."""

    outcome = serializers.CharField()
    escrow = EscrowPaymentSerializer(allow_null=True)
    review = ReviewSerializer(allow_null=True)


class ExternalDeliveryServiceSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    url_pattern = serializers.CharField()
    supports_password = serializers.BooleanField()
    supports_expiry = serializers.BooleanField()
    max_file_size_gb = serializers.IntegerField()
    icon = serializers.CharField()


# =============================================================================
# Input
# =============================================================================


class CreateHoldSerializer(serializers.Serializer):
    guest_contact = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=255,
        help_text="Phone or email to attach to the hold; defaults to the request's contact",
    )


class DeliverPhotosSerializer(serializers.Serializer):
    delivery_method = serializers.ChoiceField(choices=DeliveryMethod.choices)
    photo_count = serializers.IntegerField()
    resolution = serializers.ChoiceField(choices=PhotoResolution.choices)
    formats = serializers.ListField(
        child=serializers.CharField(max_length=20),
        allow_empty=False,
    )
    total_size_mb = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, default=0
    )
    delivery_url = serializers.URLField(required=False, allow_blank=True, max_length=2048)
    thumbnail_url = serializers.URLField(required=False, allow_blank=True, max_length=2048)
    external_url = serializers.URLField(required=False, allow_blank=True, max_length=2048)
    external_service = serializers.CharField(required=False, allow_blank=True, max_length=50)
    external_password = serializers.CharField(
        required=False, allow_blank=True, max_length=128
    )
    external_expires_at = serializers.DateTimeField(required=False, allow_null=True)
    photographer_message = serializers.CharField(required=False, allow_blank=True)

    def to_delivery_data(self) -> DeliveryData:
        data = self.validated_data
        return DeliveryData(
            delivery_method=data["delivery_method"],
            photo_count=data["photo_count"],
            resolution=data["resolution"],
            formats=data["formats"],
            total_size_mb=data.get("total_size_mb", 0),
            delivery_url=data.get("delivery_url") or None,
            thumbnail_url=data.get("thumbnail_url") or None,
            external_url=data.get("external_url") or None,
            external_service=data.get("external_service") or None,
            external_password=data.get("external_password") or None,
            external_expires_at=data.get("external_expires_at"),
            photographer_message=data.get("photographer_message", ""),
        )


class ConfirmReceiptSerializer(serializers.Serializer):
    """
    The guest's answer to a delivery.

    A satisfied guest may include a review (photographer_rating required
    when any review field is sent); an unsatisfied guest lists issues.
    """

    satisfied = serializers.BooleanField()
    issues = serializers.ListField(
        child=serializers.CharField(max_length=255),
        required=False,
        default=list,
    )
    photographer_rating = serializers.IntegerField(required=False, min_value=1, max_value=5)
    photo_quality_rating = serializers.IntegerField(
        required=False, allow_null=True, min_value=1, max_value=5
    )
    service_rating = serializers.IntegerField(
        required=False, allow_null=True, min_value=1, max_value=5
    )
    photographer_review = serializers.CharField(required=False, allow_blank=True)
    photo_quality_comment = serializers.CharField(required=False, allow_blank=True)
    service_comment = serializers.CharField(required=False, allow_blank=True)
    would_recommend = serializers.BooleanField(required=False, default=True)
    recommend_reason = serializers.CharField(required=False, allow_blank=True)

    REVIEW_TEXT_FIELDS = (
        "photographer_review",
        "photo_quality_comment",
        "service_comment",
        "recommend_reason",
    )

    def validate(self, attrs):
        if not attrs["satisfied"]:
            return attrs
        has_review = any(
            attrs.get(name) not in (None, "")
            for name in ("photo_quality_rating", "service_rating", *self.REVIEW_TEXT_FIELDS)
        )
        if has_review and attrs.get("photographer_rating") is None:
            raise serializers.ValidationError(
                {"photographer_rating": ["Required when submitting a review."]}
            )
        return attrs

    def to_review_data(self) -> ReviewData | None:
        data = self.validated_data
        if not data["satisfied"] or data.get("photographer_rating") is None:
            return None
        return ReviewData(
            photographer_rating=data["photographer_rating"],
            photo_quality_rating=data.get("photo_quality_rating"),
            service_rating=data.get("service_rating"),
            would_recommend=data.get("would_recommend", True),
            **{name: data.get(name, "") for name in self.REVIEW_TEXT_FIELDS},
        )


class CreateDisputeSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=DisputeReason.choices)
    description = serializers.CharField()
    evidence_urls = serializers.ListField(
        child=serializers.URLField(max_length=2048),
        required=False,
        default=list,
    )
    requested_resolution = serializers.ChoiceField(
        choices=RequestedResolution.choices,
        required=False,
        default=RequestedResolution.REFUND,
    )

    def to_dispute_data(self) -> DisputeData:
        data = self.validated_data
        return DisputeData(
            reason=data["reason"],
            description=data["description"],
            evidence_urls=data.get("evidence_urls", []),
            requested_resolution=data.get(
                "requested_resolution", RequestedResolution.REFUND
            ),
        )
