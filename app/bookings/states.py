"""
Status enums for requests and bookings.

PhotoRequest Status Flow:
    PENDING → MATCHED → IN_PROGRESS → DELIVERED → COMPLETED
    PENDING/MATCHED → CANCELLED / EXPIRED
    IN_PROGRESS → CANCELLED (hold refunded)

Booking Status Flow:
    PENDING_PAYMENT → IN_PROGRESS → COMPLETED
    PENDING_PAYMENT/IN_PROGRESS → CANCELLED

Booking status deliberately stays IN_PROGRESS while photos are delivered or
a dispute is open; only a settled escrow completes it.
"""

from django.db import models


class RequestStatus(models.TextChoices):
    """Lifecycle of a guest's photo request."""

    PENDING = "pending", "Pending"
    MATCHED = "matched", "Matched"
    IN_PROGRESS = "in_progress", "In Progress"
    DELIVERED = "delivered", "Delivered"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    EXPIRED = "expired", "Expired"


class BookingStatus(models.TextChoices):
    """Lifecycle of a booking."""

    PENDING_PAYMENT = "pending_payment", "Pending Payment"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    """Payment state of a booking as shown to guests and photographers."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    REFUNDED = "refunded", "Refunded"
    FAILED = "failed", "Failed"


__all__ = ["RequestStatus", "BookingStatus", "PaymentStatus"]
