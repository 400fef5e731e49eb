"""
Django signals for the escrow app.

Signals:
- escrow_state_changed: sent after every persisted escrow transition
- photos_delivered: sent after every recorded photo delivery

Presentation layers (cache invalidation, notifications) subscribe to these
instead of polling escrow rows. Receivers are called with send_robust, so a
failing receiver is logged and never undoes or blocks the transition.

Related files:
    - services/: senders
    - apps.py: Signal registration

Usage:
    from escrow.signals import escrow_state_changed

    @receiver(escrow_state_changed)
    def refresh_booking_page(sender, escrow, previous_status, new_status, trigger, **kwargs):
        ...
"""

from __future__ import annotations

import logging

from django.dispatch import Signal

logger = logging.getLogger(__name__)


# Provides: escrow, previous_status, new_status, trigger
escrow_state_changed = Signal()

# Provides: booking, delivery, escrow
photos_delivered = Signal()


def send_state_changed(
    sender,
    escrow,
    previous_status: str,
    new_status: str,
    trigger: str,
) -> None:
    """Notify receivers of a persisted escrow transition."""
    responses = escrow_state_changed.send_robust(
        sender=sender,
        escrow=escrow,
        previous_status=previous_status,
        new_status=new_status,
        trigger=trigger,
    )
    _log_receiver_errors("escrow_state_changed", responses, escrow_id=str(escrow.pk))


def send_photos_delivered(sender, booking, delivery, escrow) -> None:
    responses = photos_delivered.send_robust(
        sender=sender,
        booking=booking,
        delivery=delivery,
        escrow=escrow,
    )
    _log_receiver_errors("photos_delivered", responses, booking_id=str(booking.pk))


def _log_receiver_errors(signal_name: str, responses, **context) -> None:
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                f"{signal_name} receiver failed: {response}",
                extra={
                    **context,
                    "signal": signal_name,
                    "receiver": getattr(receiver, "__qualname__", repr(receiver)),
                },
                exc_info=response,
            )


def log_escrow_state_change(
    sender, escrow, previous_status, new_status, trigger, **kwargs
) -> None:
    """Audit trail of escrow transitions in the application log."""
    logger.info(
        f"Escrow {escrow.pk} {previous_status} -> {new_status}",
        extra={
            "escrow_id": str(escrow.pk),
            "booking_id": str(escrow.booking_id),
            "previous_status": previous_status,
            "new_status": new_status,
            "trigger": trigger,
        },
    )


def register_signals() -> None:
    """Connect the escrow app's own receivers. Called from EscrowConfig.ready()."""
    escrow_state_changed.connect(
        log_escrow_state_change,
        dispatch_uid="escrow.log_escrow_state_change",
    )


__all__ = [
    "escrow_state_changed",
    "photos_delivered",
    "send_state_changed",
    "send_photos_delivered",
    "register_signals",
]
