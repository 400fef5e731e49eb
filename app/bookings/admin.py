"""
Bookings admin configuration.
"""

from django.contrib import admin

from bookings.models import Booking, PhotoRequest


@admin.register(PhotoRequest)
class PhotoRequestAdmin(admin.ModelAdmin):
    list_display = ["id", "guest_name", "guest", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["id", "guest_name", "guest_email", "guest_phone"]
    readonly_fields = ["id", "created_at", "updated_at", "completed_at"]


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "photographer",
        "status",
        "payment_status",
        "total_amount",
        "photos_delivered",
        "created_at",
    ]
    list_filter = ["status", "payment_status"]
    search_fields = ["id", "request__guest_name", "photographer__username"]
    readonly_fields = ["id", "created_at", "updated_at"]
    raw_id_fields = ["request", "photographer"]
