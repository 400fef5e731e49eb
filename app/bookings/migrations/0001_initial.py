import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PhotoRequest",
            fields=[
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
                (
                    "guest_name",
                    models.CharField(
                        help_text="Name the photographer should ask for", max_length=100
                    ),
                ),
                (
                    "guest_phone",
                    models.CharField(
                        blank=True, help_text="Contact phone number", max_length=32
                    ),
                ),
                (
                    "guest_email",
                    models.EmailField(
                        blank=True, help_text="Contact email address", max_length=254
                    ),
                ),
                (
                    "location",
                    models.CharField(
                        blank=True, help_text="Where the session takes place", max_length=255
                    ),
                ),
                (
                    "duration_minutes",
                    models.PositiveIntegerField(
                        default=30, help_text="Requested session length"
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("matched", "Matched"),
                            ("in_progress", "In Progress"),
                            ("delivered", "Delivered"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Request lifecycle status",
                        max_length=20,
                    ),
                ),
                (
                    "completed_at",
                    models.DateTimeField(
                        blank=True, help_text="When the request was completed", null=True
                    ),
                ),
                (
                    "guest",
                    models.ForeignKey(
                        blank=True,
                        help_text="Guest account, when the guest booked while signed in",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="photo_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Photo Request",
                "verbose_name_plural": "Photo Requests",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
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
                (
                    "total_amount",
                    models.PositiveBigIntegerField(
                        help_text="Amount charged to the guest, in minor units"
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
                    "status",
                    models.CharField(
                        choices=[
                            ("pending_payment", "Pending Payment"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending_payment",
                        help_text="Booking lifecycle status",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("refunded", "Refunded"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        help_text="Payment status shown to the parties",
                        max_length=20,
                    ),
                ),
                (
                    "start_time",
                    models.DateTimeField(
                        blank=True, help_text="When the session started", null=True
                    ),
                ),
                (
                    "end_time",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the session ended (set on delivery)",
                        null=True,
                    ),
                ),
                (
                    "photos_delivered",
                    models.PositiveIntegerField(
                        default=0, help_text="Number of photos in the latest delivery"
                    ),
                ),
                (
                    "delivery_url",
                    models.URLField(
                        blank=True,
                        help_text="Where the guest downloads the photos",
                        max_length=2048,
                    ),
                ),
                (
                    "guest_rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Guest's overall rating of the photographer (1-5)",
                        null=True,
                    ),
                ),
                (
                    "guest_review",
                    models.TextField(blank=True, help_text="Guest's review text"),
                ),
                (
                    "photographer",
                    models.ForeignKey(
                        help_text="Photographer who takes the photos",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="photo_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "request",
                    models.OneToOneField(
                        help_text="The request this booking fulfils",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="booking",
                        to="bookings.photorequest",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("platform_fee__lte", models.F("total_amount"))
                        ),
                        name="booking_fee_within_total",
                    )
                ],
            },
        ),
    ]
