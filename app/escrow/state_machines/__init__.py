"""
State enums for escrow models.
"""

from escrow.state_machines.states import (
    DeliveryMethod,
    DeliveryStatus,
    DisputeReason,
    DisputeStatus,
    EscrowStatus,
    PhotoResolution,
    RequestedResolution,
    SettlementOutcome,
    SettlementTrigger,
    WebhookEventStatus,
)

__all__ = [
    "DeliveryMethod",
    "DeliveryStatus",
    "DisputeReason",
    "DisputeStatus",
    "EscrowStatus",
    "PhotoResolution",
    "RequestedResolution",
    "SettlementOutcome",
    "SettlementTrigger",
    "WebhookEventStatus",
]
