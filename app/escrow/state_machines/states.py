"""
State enums for escrow models.

These are Django TextChoices for database storage and admin integration.
EscrowStatus and DeliveryStatus back the django-fsm fields of EscrowPayment.

State Machines Overview:

EscrowPayment.escrow_status:
    pending → escrowed → completed (guest confirmation or auto-confirmation)
    pending → escrowed → disputed (guest reports a problem)
    pending/escrowed → refunded (hold cancelled at the gateway)

EscrowPayment.delivery_status:
    waiting → delivered → confirmed
    delivered → delivered (re-delivery before confirmation)
"""

from django.db import models


class EscrowStatus(models.TextChoices):
    """
    Lifecycle of the funds held for a booking.

    Terminal states: COMPLETED, REFUNDED. DISPUTED is terminal for this
    service; resolving a dispute is an administrative workflow that
    settles the escrow elsewhere.
    """

    PENDING = "pending", "Pending"
    ESCROWED = "escrowed", "Escrowed"
    DISPUTED = "disputed", "Disputed"
    COMPLETED = "completed", "Completed"
    REFUNDED = "refunded", "Refunded"


class DeliveryStatus(models.TextChoices):
    """Photo delivery progress as seen by the escrow."""

    WAITING = "waiting", "Waiting"
    DELIVERED = "delivered", "Delivered"
    CONFIRMED = "confirmed", "Confirmed"


class DeliveryMethod(models.TextChoices):
    """How the photographer hands the photos over."""

    EXTERNAL_URL = "external_url", "External URL"
    DIRECT_UPLOAD = "direct_upload", "Direct Upload"


class PhotoResolution(models.TextChoices):
    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    WEB = "web", "Web"


class DisputeReason(models.TextChoices):
    """Category the guest picks when opening a dispute."""

    QUALITY_ISSUE = "quality_issue", "Quality Issue"
    QUANTITY_ISSUE = "quantity_issue", "Quantity Issue"
    NO_DELIVERY = "no_delivery", "No Delivery"
    LATE_DELIVERY = "late_delivery", "Late Delivery"
    SERVICE_ISSUE = "service_issue", "Service Issue"
    OTHER = "other", "Other"


class RequestedResolution(models.TextChoices):
    REFUND = "refund", "Refund"
    PARTIAL_REFUND = "partial_refund", "Partial Refund"
    REDELIVERY = "redelivery", "Redelivery"
    OTHER = "other", "Other"


class DisputeStatus(models.TextChoices):
    """
    Review progress of a dispute.

    Disputes are created PENDING; later states are written by the
    administrative resolution workflow.
    """

    PENDING = "pending", "Pending"
    INVESTIGATING = "investigating", "Investigating"
    RESOLVED = "resolved", "Resolved"
    ESCALATED = "escalated", "Escalated"


class SettlementTrigger(models.TextChoices):
    """What caused an escrow transition; carried on state-change events."""

    GATEWAY = "gateway", "Gateway Callback"
    GUEST = "guest", "Guest"
    PHOTOGRAPHER = "photographer", "Photographer"
    AUTO_CONFIRM = "auto_confirm", "Auto-Confirmation"
    ADMIN = "admin", "Administrative"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status of a stored gateway webhook event.

    State Flow:
        PENDING -> PROCESSING -> PROCESSED
        PENDING -> PROCESSING -> FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class SettlementOutcome(models.TextChoices):
    """
    Result of a settlement attempt.

    ALREADY_PROCESSED is a benign outcome: another path (guest, sweep or
    dispute) moved the escrow first, and nothing was captured by this call.
    """

    COMPLETED = "completed", "Completed"
    DISPUTED = "disputed", "Disputed"
    ALREADY_PROCESSED = "already_processed", "Already Processed"


__all__ = [
    "EscrowStatus",
    "DeliveryStatus",
    "DeliveryMethod",
    "PhotoResolution",
    "DisputeReason",
    "RequestedResolution",
    "DisputeStatus",
    "SettlementTrigger",
    "SettlementOutcome",
    "WebhookEventStatus",
]
