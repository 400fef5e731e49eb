"""
Tests for the service input types and their validation rules.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from escrow.services import DeliveryData, DisputeData, ReviewData, SweepFailure, SweepResult
from escrow.state_machines import DeliveryMethod, PhotoResolution


def make_delivery(**overrides) -> DeliveryData:
    values = {
        "delivery_method": DeliveryMethod.EXTERNAL_URL,
        "photo_count": 40,
        "resolution": PhotoResolution.HIGH,
        "formats": ["jpg"],
        "total_size_mb": Decimal("850"),
        "external_url": "https://46.gigafile.nu/0101-abcdef",
        "external_service": "gigafile",
    }
    values.update(overrides)
    return DeliveryData(**values)


class TestDeliveryData:
    def test_valid_external_delivery(self):
        assert make_delivery().validate() == {}

    def test_valid_direct_upload(self):
        delivery = make_delivery(
            delivery_method=DeliveryMethod.DIRECT_UPLOAD,
            external_url=None,
            external_service=None,
            delivery_url="https://cdn.example.com/booking/photos.zip",
            thumbnail_url="https://cdn.example.com/booking/thumb.jpg",
        )

        assert delivery.validate() == {}
        assert delivery.guest_facing_url == "https://cdn.example.com/booking/photos.zip"

    @pytest.mark.parametrize("count", [0, -1])
    def test_photo_count_must_be_positive(self, count):
        assert "photo_count" in make_delivery(photo_count=count).validate()

    def test_unknown_resolution(self):
        assert "resolution" in make_delivery(resolution="4k").validate()

    def test_formats_required_and_distinct(self):
        assert "formats" in make_delivery(formats=[]).validate()
        assert "formats" in make_delivery(formats=["jpg", "jpg"]).validate()

    def test_negative_size(self):
        assert "total_size_mb" in make_delivery(total_size_mb=Decimal("-1")).validate()

    def test_direct_upload_needs_url(self):
        errors = make_delivery(
            delivery_method=DeliveryMethod.DIRECT_UPLOAD,
            external_url=None,
            external_service=None,
        ).validate()

        assert "delivery_url" in errors

    def test_unknown_delivery_method(self):
        assert "delivery_method" in make_delivery(delivery_method="carrier_pigeon").validate()

    def test_external_needs_service(self):
        assert "external_service" in make_delivery(external_service=None).validate()

    def test_unknown_external_service(self):
        errors = make_delivery(external_service="mega").validate()

        assert errors["external_service"] == ["Unknown service 'mega'."]

    def test_link_must_belong_to_service(self):
        errors = make_delivery(
            external_url="https://www.dropbox.com/sh/abc",
            external_service="gigafile",
        ).validate()

        assert "external_url" in errors

    def test_other_service_accepts_any_link(self):
        delivery = make_delivery(
            external_url="https://files.example.org/share/abc",
            external_service="other",
            external_password="secret",
            external_expires_at=timezone.now() + timedelta(days=7),
        )

        assert delivery.validate() == {}

    def test_password_only_where_supported(self):
        errors = make_delivery(
            external_url="https://wetransfer.com/downloads/abc",
            external_service="wetransfer",
            total_size_mb=Decimal("100"),
            external_password="secret",
        ).validate()

        assert "external_password" in errors

    def test_expiry_only_where_supported(self):
        errors = make_delivery(
            external_url="https://drive.google.com/drive/folders/abc",
            external_service="googledrive",
            external_expires_at=timezone.now() + timedelta(days=7),
        ).validate()

        assert "external_expires_at" in errors

    def test_size_limit_of_service(self):
        # wetransfer accepts 2 GB
        within = make_delivery(
            external_url="https://wetransfer.com/downloads/abc",
            external_service="wetransfer",
            total_size_mb=Decimal("2048"),
        )
        over = make_delivery(
            external_url="https://wetransfer.com/downloads/abc",
            external_service="wetransfer",
            total_size_mb=Decimal("2049"),
        )

        assert within.validate() == {}
        assert "total_size_mb" in over.validate()

    def test_reports_every_problem_at_once(self):
        errors = make_delivery(photo_count=0, formats=[], external_url="not a url").validate()

        assert {"photo_count", "formats", "external_url"} <= set(errors)


class TestReviewData:
    def test_valid(self):
        review = ReviewData(photographer_rating=5, photo_quality_rating=4, service_rating=3)

        assert review.validate() == {}

    @pytest.mark.parametrize("rating", [0, 6])
    def test_photographer_rating_range(self, rating):
        assert "photographer_rating" in ReviewData(photographer_rating=rating).validate()

    def test_optional_rating_range(self):
        errors = ReviewData(photographer_rating=5, service_rating=9).validate()

        assert list(errors) == ["service_rating"]

    def test_as_model_values(self):
        values = ReviewData(photographer_rating=4, photographer_review="Great").as_model_values()

        assert values["photographer_rating"] == 4
        assert values["photographer_review"] == "Great"
        assert values["would_recommend"] is True


class TestDisputeData:
    def test_valid(self):
        dispute = DisputeData(
            reason="quality_issue",
            description="Most photos are blurry",
            evidence_urls=["https://example.com/shot.png"],
        )

        assert dispute.validate() == {}
        assert dispute.escrow_reason == "quality_issue: Most photos are blurry"

    def test_invalid_fields(self):
        errors = DisputeData(
            reason="bored",
            description="   ",
            evidence_urls=["not-a-url"],
            requested_resolution="cash",
        ).validate()

        assert set(errors) == {
            "reason",
            "description",
            "evidence_urls",
            "requested_resolution",
        }


class TestSweepResult:
    def test_to_dict(self):
        result = SweepResult(processed_count=2, skipped_count=1)
        result.failures.append(
            SweepFailure(escrow_id="e1", error_code="GATEWAY_ERROR", error="down")
        )

        assert result.to_dict() == {
            "processed_count": 2,
            "skipped_count": 1,
            "failures": [{"escrow_id": "e1", "error_code": "GATEWAY_ERROR", "error": "down"}],
        }
