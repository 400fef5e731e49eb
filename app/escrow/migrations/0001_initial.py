import uuid

import django.core.validators
import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

import escrow.models.escrow_payment
import escrow.models.photo_delivery


def base_fields():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
    ]


RATING_VALIDATORS = [
    django.core.validators.MinValueValidator(1),
    django.core.validators.MaxValueValidator(5),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="EscrowPayment",
            fields=base_fields()
            + [
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Flexible key-value metadata storage",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default=escrow.models.escrow_payment.default_currency,
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "total_amount",
                    models.PositiveBigIntegerField(
                        help_text="Amount held from the guest, in minor units"
                    ),
                ),
                (
                    "platform_fee",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Platform fee kept on settlement, in minor units",
                    ),
                ),
                (
                    "photographer_earnings",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Amount owed to the photographer, in minor units",
                    ),
                ),
                (
                    "escrow_status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("escrowed", "Escrowed"),
                            ("disputed", "Disputed"),
                            ("completed", "Completed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the held funds (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "delivery_status",
                    django_fsm.FSMField(
                        choices=[
                            ("waiting", "Waiting"),
                            ("delivered", "Delivered"),
                            ("confirmed", "Confirmed"),
                        ],
                        default="waiting",
                        help_text="Photo delivery progress (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "gateway_hold_ref",
                    models.CharField(
                        blank=True,
                        help_text="Gateway reference of the manual-capture hold (e.g. pi_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "auto_confirm_enabled",
                    models.BooleanField(
                        default=True,
                        help_text="Whether the sweep may complete this escrow without the guest",
                    ),
                ),
                (
                    "auto_confirm_hours",
                    models.PositiveIntegerField(
                        default=escrow.models.escrow_payment.default_auto_confirm_hours,
                        help_text="Hours after escrow before auto-confirmation",
                    ),
                ),
                (
                    "auto_confirm_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the escrow becomes eligible for auto-confirmation",
                        null=True,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each write",
                    ),
                ),
                (
                    "escrowed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the guest's authorization was confirmed",
                        null=True,
                    ),
                ),
                (
                    "delivered_at",
                    models.DateTimeField(
                        blank=True, help_text="When photos were (last) delivered", null=True
                    ),
                ),
                (
                    "confirmed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When receipt was confirmed (by the guest or the sweep)",
                        null=True,
                    ),
                ),
                (
                    "completed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the hold was captured and the escrow completed",
                        null=True,
                    ),
                ),
                (
                    "dispute_created_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the escrow was frozen by a dispute",
                        null=True,
                    ),
                ),
                (
                    "refunded_at",
                    models.DateTimeField(
                        blank=True, help_text="When the hold was cancelled", null=True
                    ),
                ),
                (
                    "dispute_reason",
                    models.TextField(
                        blank=True,
                        help_text="Reason given when the escrow was disputed",
                        null=True,
                    ),
                ),
                (
                    "admin_notes",
                    models.TextField(
                        blank=True, help_text="Internal notes from support staff"
                    ),
                ),
                (
                    "booking",
                    models.ForeignKey(
                        help_text="Booking whose payment is held",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="escrow_payments",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Escrow Payment",
                "verbose_name_plural": "Escrow Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=[
                            "escrow_status",
                            "delivery_status",
                            "auto_confirm_enabled",
                            "auto_confirm_at",
                        ],
                        name="escrow_auto_confirm_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("escrow_status", "refunded"), _negated=True),
                        fields=("booking",),
                        name="escrow_one_live_per_booking",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_amount__gt", 0)),
                        name="escrow_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("platform_fee__lte", models.F("total_amount"))
                        ),
                        name="escrow_fee_within_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PhotoDelivery",
            fields=base_fields()
            + [
                (
                    "delivery_method",
                    models.CharField(
                        choices=[
                            ("external_url", "External URL"),
                            ("direct_upload", "Direct Upload"),
                        ],
                        help_text="How the photos are handed over",
                        max_length=20,
                    ),
                ),
                (
                    "photo_count",
                    models.PositiveIntegerField(help_text="Number of photos delivered"),
                ),
                (
                    "total_size_mb",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Total size of the delivery in megabytes",
                        max_digits=10,
                    ),
                ),
                (
                    "resolution",
                    models.CharField(
                        choices=[("high", "High"), ("medium", "Medium"), ("web", "Web")],
                        default="high",
                        help_text="Resolution of the delivered photos",
                        max_length=10,
                    ),
                ),
                (
                    "formats",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="File formats included (e.g. ['jpg', 'raw'])",
                    ),
                ),
                (
                    "photographer_message",
                    models.TextField(
                        blank=True, help_text="Message from the photographer to the guest"
                    ),
                ),
                (
                    "delivery_url",
                    models.URLField(
                        blank=True,
                        help_text="Download location for direct uploads",
                        max_length=2048,
                    ),
                ),
                (
                    "thumbnail_url",
                    models.URLField(blank=True, help_text="Preview image", max_length=2048),
                ),
                (
                    "external_url",
                    models.URLField(
                        blank=True,
                        help_text="Share link on the external service",
                        max_length=2048,
                    ),
                ),
                (
                    "external_service",
                    models.CharField(
                        blank=True,
                        help_text="Directory id of the external service, or 'other'",
                        max_length=50,
                    ),
                ),
                (
                    "external_password",
                    models.CharField(
                        blank=True,
                        help_text="Password protecting the share link",
                        max_length=128,
                    ),
                ),
                (
                    "external_expires_at",
                    models.DateTimeField(
                        blank=True, help_text="When the share link expires", null=True
                    ),
                ),
                (
                    "delivered_at",
                    models.DateTimeField(help_text="When the photos were (last) delivered"),
                ),
                (
                    "download_expires_at",
                    models.DateTimeField(help_text="End of the guest's download window"),
                ),
                (
                    "download_count",
                    models.PositiveIntegerField(
                        default=0, help_text="Downloads registered since the last delivery"
                    ),
                ),
                (
                    "max_downloads",
                    models.PositiveIntegerField(
                        default=escrow.models.photo_delivery.default_max_downloads,
                        help_text="Downloads allowed per delivery",
                    ),
                ),
                (
                    "confirmed_at",
                    models.DateTimeField(
                        blank=True, help_text="When the guest confirmed receipt", null=True
                    ),
                ),
                (
                    "booking",
                    models.OneToOneField(
                        help_text="Booking the photos were taken for",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="photo_delivery",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Photo Delivery",
                "verbose_name_plural": "Photo Deliveries",
                "ordering": ["-delivered_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("photo_count__gt", 0)),
                        name="photo_delivery_count_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("download_count__lte", models.F("max_downloads"))
                        ),
                        name="photo_delivery_downloads_within_limit",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Dispute",
            fields=base_fields()
            + [
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("quality_issue", "Quality Issue"),
                            ("quantity_issue", "Quantity Issue"),
                            ("no_delivery", "No Delivery"),
                            ("late_delivery", "Late Delivery"),
                            ("service_issue", "Service Issue"),
                            ("other", "Other"),
                        ],
                        help_text="Dispute category",
                        max_length=20,
                    ),
                ),
                (
                    "description",
                    models.TextField(help_text="Guest's description of the problem"),
                ),
                (
                    "evidence_urls",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Links to screenshots or other evidence",
                    ),
                ),
                (
                    "requested_resolution",
                    models.CharField(
                        choices=[
                            ("refund", "Refund"),
                            ("partial_refund", "Partial Refund"),
                            ("redelivery", "Redelivery"),
                            ("other", "Other"),
                        ],
                        help_text="Outcome the guest asks for",
                        max_length=20,
                    ),
                ),
                (
                    "resolution_detail",
                    models.TextField(
                        blank=True, help_text="Details of the requested outcome"
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("investigating", "Investigating"),
                            ("resolved", "Resolved"),
                            ("escalated", "Escalated"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Review progress of the dispute",
                        max_length=20,
                    ),
                ),
                (
                    "booking",
                    models.ForeignKey(
                        help_text="Booking in dispute",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes",
                        to="bookings.booking",
                    ),
                ),
                (
                    "escrow_payment",
                    models.OneToOneField(
                        help_text="Escrow frozen by this dispute",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dispute_record",
                        to="escrow.escrowpayment",
                    ),
                ),
                (
                    "raised_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Guest who opened the dispute",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="raised_disputes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Dispute",
                "verbose_name_plural": "Disputes",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Review",
            fields=base_fields()
            + [
                (
                    "photographer_rating",
                    models.PositiveSmallIntegerField(
                        help_text="Overall rating of the photographer",
                        validators=RATING_VALIDATORS,
                    ),
                ),
                (
                    "photo_quality_rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Rating of the photos",
                        null=True,
                        validators=RATING_VALIDATORS,
                    ),
                ),
                (
                    "service_rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Rating of the photographer's service",
                        null=True,
                        validators=RATING_VALIDATORS,
                    ),
                ),
                ("photographer_review", models.TextField(blank=True)),
                ("photo_quality_comment", models.TextField(blank=True)),
                ("service_comment", models.TextField(blank=True)),
                (
                    "would_recommend",
                    models.BooleanField(
                        default=True,
                        help_text="Whether the guest would recommend the photographer",
                    ),
                ),
                ("recommend_reason", models.TextField(blank=True)),
                (
                    "booking",
                    models.ForeignKey(
                        help_text="Reviewed booking",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reviews",
                        to="bookings.booking",
                    ),
                ),
                (
                    "escrow_payment",
                    models.OneToOneField(
                        help_text="Escrow completed by this confirmation",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="review",
                        to="escrow.escrowpayment",
                    ),
                ),
                (
                    "reviewer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Guest who wrote the review",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="written_reviews",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Review",
                "verbose_name_plural": "Reviews",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("photographer_rating__gte", 1),
                            ("photographer_rating__lte", 5),
                        ),
                        name="review_photographer_rating_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("photo_quality_rating__isnull", True),
                            models.Q(
                                ("photo_quality_rating__gte", 1),
                                ("photo_quality_rating__lte", 5),
                            ),
                            _connector="OR",
                        ),
                        name="review_photo_quality_rating_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("service_rating__isnull", True),
                            models.Q(
                                ("service_rating__gte", 1),
                                ("service_rating__lte", 5),
                            ),
                            _connector="OR",
                        ),
                        name="review_service_rating_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=base_fields()
            + [
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx)", max_length=255, unique=True
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g. 'payment_intent.canceled')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(
                        help_text="Verified event payload; data.object is the hold's PaymentIntent"
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "error_message",
                    models.TextField(
                        blank=True,
                        help_text="Why the last processing attempt failed",
                        null=True,
                    ),
                ),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Number of processing attempts"
                    ),
                ),
            ],
            options={
                "verbose_name": "Escrow Webhook Event",
                "verbose_name_plural": "Escrow Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="escrow_webhook_status_idx",
                    )
                ],
            },
        ),
    ]
