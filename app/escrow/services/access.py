"""
Booking lookup and actor checks shared by the escrow services.

``actor=None`` means a trusted internal caller (webhooks, the sweep,
administrative tasks) and skips the party checks.
"""

from __future__ import annotations

from bookings.models import Booking

from core.exceptions import AuthenticationRequiredError, PermissionDeniedError

from escrow.exceptions import EscrowNotFoundError


def load_booking(booking_id) -> Booking:
    booking = (
        Booking.objects.select_related("request", "request__guest", "photographer")
        .filter(pk=booking_id)
        .first()
    )
    if booking is None:
        raise EscrowNotFoundError(
            "Booking not found",
            details={"booking_id": str(booking_id)},
        )
    return booking


def _require_authenticated(actor) -> None:
    if not getattr(actor, "is_authenticated", False):
        raise AuthenticationRequiredError("Sign in to continue")


def require_guest(booking: Booking, actor) -> None:
    if actor is None:
        return
    _require_authenticated(actor)
    if booking.request.guest_id != actor.pk:
        raise PermissionDeniedError(
            "Only the booking's guest can do this",
            details={"booking_id": str(booking.pk)},
        )


def require_photographer(booking: Booking, actor) -> None:
    if actor is None:
        return
    _require_authenticated(actor)
    if booking.photographer_id != actor.pk:
        raise PermissionDeniedError(
            "Only the booking's photographer can do this",
            details={"booking_id": str(booking.pk)},
        )


def require_party(booking: Booking, actor) -> None:
    """Guest or photographer of the booking."""
    if actor is None:
        return
    _require_authenticated(actor)
    if actor.pk not in (booking.request.guest_id, booking.photographer_id):
        raise PermissionDeniedError(
            "You are not part of this booking",
            details={"booking_id": str(booking.pk)},
        )
