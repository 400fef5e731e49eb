"""
Escrow admin configuration.

Escrow rows are an audit trail: they cannot be added or deleted here, and
their state fields are read-only. State only changes through the services
(the refund action below goes through EscrowService as well).
"""

from django.contrib import admin, messages

from escrow.models import Dispute, EscrowPayment, PhotoDelivery, Review, WebhookEvent
from escrow.services import EscrowService


@admin.register(EscrowPayment)
class EscrowPaymentAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "booking",
        "escrow_status",
        "delivery_status",
        "total_amount",
        "currency",
        "auto_confirm_at",
        "created_at",
    ]
    list_filter = ["escrow_status", "delivery_status", "auto_confirm_enabled"]
    search_fields = ["id", "booking__id", "gateway_hold_ref"]
    readonly_fields = [
        "id",
        "booking",
        "escrow_status",
        "delivery_status",
        "currency",
        "total_amount",
        "platform_fee",
        "photographer_earnings",
        "gateway_hold_ref",
        "auto_confirm_at",
        "version",
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
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["refund_selected"]

    fieldsets = (
        (None, {"fields": ("id", "booking", "escrow_status", "delivery_status")}),
        (
            "Amounts",
            {"fields": ("currency", "total_amount", "platform_fee", "photographer_earnings")},
        ),
        ("Gateway", {"fields": ("gateway_hold_ref",)}),
        (
            "Auto-confirmation",
            {"fields": ("auto_confirm_enabled", "auto_confirm_hours", "auto_confirm_at")},
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "escrowed_at",
                    "delivered_at",
                    "confirmed_at",
                    "completed_at",
                    "dispute_created_at",
                    "refunded_at",
                    "created_at",
                    "updated_at",
                ),
            },
        ),
        ("Notes", {"fields": ("dispute_reason", "admin_notes", "metadata", "version")}),
    )

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    @admin.action(description="Cancel hold and refund")
    def refund_selected(self, request, queryset):
        for escrow in queryset:
            result = EscrowService.refund_hold(
                booking_id=escrow.booking_id, cancel_at_gateway=True
            )
            if result.success:
                self.message_user(request, f"Refunded {escrow.pk}")
            else:
                self.message_user(
                    request,
                    f"{escrow.pk}: {result.error} ({result.error_code})",
                    level=messages.ERROR,
                )


@admin.register(PhotoDelivery)
class PhotoDeliveryAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "booking",
        "delivery_method",
        "photo_count",
        "external_service",
        "delivered_at",
        "download_count",
        "confirmed_at",
    ]
    list_filter = ["delivery_method", "resolution", "external_service"]
    search_fields = ["id", "booking__id"]
    readonly_fields = ["id", "booking", "delivered_at", "confirmed_at", "created_at", "updated_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ["id", "booking", "reason", "requested_resolution", "status", "created_at"]
    list_filter = ["status", "reason", "requested_resolution"]
    search_fields = ["id", "booking__id", "description"]
    readonly_fields = [
        "id",
        "booking",
        "escrow_payment",
        "raised_by",
        "reason",
        "description",
        "evidence_urls",
        "requested_resolution",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request) -> bool:
        return False


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["id", "booking", "photographer_rating", "would_recommend", "created_at"]
    list_filter = ["photographer_rating", "would_recommend"]
    search_fields = ["id", "booking__id"]
    readonly_fields = ["id", "booking", "escrow_payment", "reviewer", "created_at", "updated_at"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Webhook events are immutable once received."""

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
