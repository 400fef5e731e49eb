"""
Escrow services.

This package provides the public operations of the escrow app:
- EscrowService: hold, authorization, receipt confirmation, refund, status
- DeliveryTracker: photo deliveries and download accounting
- DisputeService: guest disputes
- BookingSynchronizer: mirrors escrow progress onto bookings and requests

Usage:
    from escrow.services import EscrowService, ReviewData

    result = EscrowService.confirm_receipt(
        booking_id, satisfied=True, review=ReviewData(photographer_rating=5)
    )
"""

from escrow.services.booking_sync import BookingSynchronizer
from escrow.services.delivery_tracker import DeliveryTracker
from escrow.services.dispute_service import DisputeService
from escrow.services.escrow_service import EscrowService
from escrow.services.types import (
    DeliveryData,
    DisputeData,
    EscrowStatusView,
    HoldResult,
    ReceiptResult,
    ReviewData,
    SweepFailure,
    SweepResult,
)

__all__ = [
    "EscrowService",
    "DeliveryTracker",
    "DisputeService",
    "BookingSynchronizer",
    "DeliveryData",
    "DisputeData",
    "ReviewData",
    "HoldResult",
    "ReceiptResult",
    "EscrowStatusView",
    "SweepFailure",
    "SweepResult",
]
