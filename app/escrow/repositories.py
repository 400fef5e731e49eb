"""
Data access for escrow entities.

Services never write escrow state with a plain ``save()``. Every escrow
transition is persisted with ``EscrowPaymentRepository.conditional_update``,
a single ``UPDATE ... WHERE escrow_status = <expected>`` statement. If a
concurrent path moved the row first, the update matches no row and the
caller learns that it lost the race instead of overwriting the winner.

Usage:
    from escrow.repositories import EscrowPaymentRepository

    escrow = EscrowPaymentRepository.get_by_booking_id(booking.id)
    escrow.complete(now=now)
    won = EscrowPaymentRepository.conditional_update(
        escrow,
        expected_status=EscrowStatus.ESCROWED,
        fields=["confirmed_at", "completed_at"],
    )
    if not won:
        ...  # another path already settled the escrow
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from escrow.exceptions import AlreadyProcessedError
from escrow.models import Dispute, EscrowPayment, PhotoDelivery, Review
from escrow.state_machines import DeliveryStatus, EscrowStatus

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from typing import Any
    from uuid import UUID

logger = logging.getLogger(__name__)


# =============================================================================
# EscrowPayment
# =============================================================================


class EscrowPaymentRepository:
    """Persistence for EscrowPayment with compare-and-swap transitions."""

    @staticmethod
    def create(**values: Any) -> EscrowPayment:
        """
        Insert a new escrow.

        Raises:
            AlreadyProcessedError: A live escrow already exists for the booking
        """
        try:
            with transaction.atomic():
                return EscrowPayment.objects.create(**values)
        except IntegrityError as exc:
            booking = values.get("booking")
            raise AlreadyProcessedError(
                "An escrow payment already exists for this booking",
                details={"booking_id": str(getattr(booking, "pk", booking))},
            ) from exc

    @staticmethod
    def get(escrow_id: UUID) -> EscrowPayment | None:
        return EscrowPayment.objects.filter(pk=escrow_id).first()

    @staticmethod
    def get_by_booking_id(booking_id: UUID) -> EscrowPayment | None:
        """
        Return the booking's live escrow, or its latest refunded one.
        """
        queryset = EscrowPayment.objects.filter(booking_id=booking_id)
        live = queryset.exclude(escrow_status=EscrowStatus.REFUNDED).first()
        if live is not None:
            return live
        return queryset.order_by("-created_at").first()

    @staticmethod
    def get_live_by_booking_id(booking_id: UUID) -> EscrowPayment | None:
        return (
            EscrowPayment.objects.filter(booking_id=booking_id)
            .exclude(escrow_status=EscrowStatus.REFUNDED)
            .first()
        )

    @staticmethod
    def count_by_booking_id(booking_id: UUID) -> int:
        """All escrows ever created for the booking, refunded ones included."""
        return EscrowPayment.objects.filter(booking_id=booking_id).count()

    @staticmethod
    def get_by_hold_ref(hold_ref: str) -> EscrowPayment | None:
        return EscrowPayment.objects.filter(gateway_hold_ref=hold_ref).first()

    @staticmethod
    def conditional_update(
        escrow: EscrowPayment,
        expected_status: str,
        fields: Iterable[str] = (),
        expected_delivery_status: str | None = None,
    ) -> bool:
        """
        Persist an in-memory transition only if the stored state still matches.

        Writes both FSM fields, the named ``fields`` and a version bump in
        one UPDATE filtered on the expected prior state.

        Args:
            escrow: Instance whose transition method has already run
            expected_status: escrow_status the row must still have
            fields: Additional attributes to copy from the instance
            expected_delivery_status: delivery_status the row must still have

        Returns:
            True if the row was updated, False if another writer got there first
        """
        values: dict[str, Any] = {name: getattr(escrow, name) for name in fields}
        values.update(
            escrow_status=escrow.escrow_status,
            delivery_status=escrow.delivery_status,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )

        filters: dict[str, Any] = {"pk": escrow.pk, "escrow_status": expected_status}
        if expected_delivery_status is not None:
            filters["delivery_status"] = expected_delivery_status

        updated = EscrowPayment.objects.filter(**filters).update(**values)

        if not updated:
            logger.info(
                "Conditional update lost",
                extra={
                    "escrow_id": str(escrow.pk),
                    "expected_status": expected_status,
                    "expected_delivery_status": expected_delivery_status,
                    "target_status": escrow.escrow_status,
                },
            )
        return bool(updated)

    @staticmethod
    def query_eligible_for_sweep(
        now: datetime,
        limit: int | None = None,
    ) -> list[UUID]:
        """
        IDs of escrows the auto-confirmation sweep may complete at ``now``.

        Eligible: ESCROWED, DELIVERED, auto-confirm enabled and
        ``auto_confirm_at <= now``. Oldest deadlines first.
        """
        queryset = (
            EscrowPayment.objects.filter(
                escrow_status=EscrowStatus.ESCROWED,
                delivery_status=DeliveryStatus.DELIVERED,
                auto_confirm_enabled=True,
                auto_confirm_at__lte=now,
            )
            .order_by("auto_confirm_at")
            .values_list("pk", flat=True)
        )
        if limit is not None:
            queryset = queryset[:limit]
        return list(queryset)


# =============================================================================
# PhotoDelivery
# =============================================================================


class PhotoDeliveryRepository:
    """Persistence for PhotoDelivery, keyed by booking."""

    @staticmethod
    def get_by_booking_id(booking_id: UUID) -> PhotoDelivery | None:
        return PhotoDelivery.objects.filter(booking_id=booking_id).first()

    @staticmethod
    def get_for_update(booking_id: UUID) -> PhotoDelivery | None:
        """Lock the booking's delivery row. Must run inside a transaction."""
        return (
            PhotoDelivery.objects.select_for_update()
            .filter(booking_id=booking_id)
            .first()
        )

    @staticmethod
    def upsert(booking, values: dict[str, Any]) -> PhotoDelivery:
        """Create the booking's delivery or overwrite the existing one."""
        delivery, _ = PhotoDelivery.objects.update_or_create(
            booking=booking,
            defaults=values,
        )
        return delivery

    @staticmethod
    def mark_confirmed(booking_id: UUID, now: datetime) -> bool:
        """Set confirmed_at once; later calls leave the first value."""
        updated = PhotoDelivery.objects.filter(
            booking_id=booking_id,
            confirmed_at__isnull=True,
        ).update(confirmed_at=now, updated_at=timezone.now())
        return bool(updated)

    @staticmethod
    def register_download(booking_id: UUID, now: datetime) -> bool:
        """
        Count one download if the window is open and the limit not reached.
        """
        updated = PhotoDelivery.objects.filter(
            booking_id=booking_id,
            download_count__lt=F("max_downloads"),
            download_expires_at__gt=now,
        ).update(download_count=F("download_count") + 1, updated_at=timezone.now())
        return bool(updated)


# =============================================================================
# Dispute & Review
# =============================================================================


class DisputeRepository:
    @staticmethod
    def create(**values: Any) -> Dispute:
        """
        Raises:
            AlreadyProcessedError: The escrow already has a dispute
        """
        try:
            with transaction.atomic():
                return Dispute.objects.create(**values)
        except IntegrityError as exc:
            raise AlreadyProcessedError(
                "A dispute has already been opened for this booking",
                details={"booking_id": str(values["booking"].pk)},
            ) from exc

    @staticmethod
    def get_by_booking_id(booking_id: UUID) -> Dispute | None:
        return Dispute.objects.filter(booking_id=booking_id).first()

    @staticmethod
    def exists_for_escrow(escrow_id: UUID) -> bool:
        return Dispute.objects.filter(escrow_payment_id=escrow_id).exists()


class ReviewRepository:
    @staticmethod
    def create(**values: Any) -> Review:
        return Review.objects.create(**values)

    @staticmethod
    def get_by_booking_id(booking_id: UUID) -> Review | None:
        return Review.objects.filter(booking_id=booking_id).first()


__all__ = [
    "EscrowPaymentRepository",
    "PhotoDeliveryRepository",
    "DisputeRepository",
    "ReviewRepository",
]
