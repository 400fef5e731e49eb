"""
Escrow domain models.

- EscrowPayment: Funds held for a booking and their settlement state
- PhotoDelivery: Photos handed over for a booking
- Dispute: Guest complaint freezing an escrow
- Review: Guest ratings written on confirmation of receipt
- WebhookEvent: Stored gateway callbacks
"""

from escrow.models.dispute import Dispute, Review
from escrow.models.escrow_payment import EscrowPayment
from escrow.models.photo_delivery import PhotoDelivery
from escrow.models.webhook_event import WebhookEvent

__all__ = [
    "Dispute",
    "EscrowPayment",
    "PhotoDelivery",
    "Review",
    "WebhookEvent",
]
