"""
Dispute service: a guest freezes an escrowed payment.

A dispute moves the escrow ESCROWED -> DISPUTED and records what went
wrong. Nothing is captured or refunded here; resolving a dispute is an
administrative workflow outside this app.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.utils import timezone

from core.exceptions import ValidationError
from core.services import BaseService, ServiceResult

from escrow.exceptions import (
    AlreadyProcessedError,
    EscrowNotFoundError,
    LockAcquisitionError,
    NotEligibleError,
)
from escrow.locks import settlement_lock
from escrow.repositories import DisputeRepository, EscrowPaymentRepository
from escrow.services.access import load_booking, require_guest, require_party
from escrow.signals import send_state_changed
from escrow.state_machines import DisputeStatus, EscrowStatus, SettlementTrigger

if TYPE_CHECKING:
    from datetime import datetime

    from escrow.models import Dispute
    from escrow.services.types import DisputeData


class DisputeService(BaseService):
    @classmethod
    def create_dispute(
        cls,
        booking_id,
        dispute: DisputeData,
        actor=None,
        now: datetime | None = None,
    ) -> ServiceResult[Dispute]:
        """
        Open a dispute on an escrowed payment.

        An escrow already frozen by an unsatisfied confirmation has no
        dispute record yet; it accepts one without another transition.

        Fails with NOT_ELIGIBLE for any other non-escrowed state and with
        ALREADY_PROCESSED when a dispute exists or settlement is running.
        """
        now = now or timezone.now()
        logger = cls.get_logger()
        try:
            booking = load_booking(booking_id)
            require_guest(booking, actor)

            errors = dispute.validate()
            if errors:
                raise ValidationError("Invalid dispute", details={"errors": errors})

            escrow = EscrowPaymentRepository.get_by_booking_id(booking.pk)
            if escrow is None:
                raise EscrowNotFoundError(
                    "No escrow payment for this booking",
                    details={"booking_id": str(booking.pk)},
                )

            try:
                with settlement_lock(escrow.pk):
                    record, transitioned = cls._open(booking, escrow.pk, dispute, actor, now)
            except LockAcquisitionError as exc:
                raise AlreadyProcessedError(
                    "The payment is being settled",
                    details={"booking_id": str(booking.pk), **exc.details},
                ) from exc
        except Exception as exc:
            return cls.handle_exception(
                exc, "create_dispute", booking_id=str(booking_id)
            )

        logger.info(
            "Dispute opened",
            extra={
                "booking_id": str(booking.pk),
                "escrow_id": str(escrow.pk),
                "dispute_id": str(record.pk),
                "reason": record.reason,
                "transitioned": transitioned,
            },
        )
        if transitioned:
            send_state_changed(
                cls,
                EscrowPaymentRepository.get(escrow.pk),
                previous_status=EscrowStatus.ESCROWED,
                new_status=EscrowStatus.DISPUTED,
                trigger=SettlementTrigger.GUEST,
            )
        return ServiceResult.success(record)

    @classmethod
    def _open(cls, booking, escrow_id, dispute: DisputeData, actor, now):
        escrow = EscrowPaymentRepository.get(escrow_id)

        if DisputeRepository.exists_for_escrow(escrow.pk):
            raise AlreadyProcessedError(
                "A dispute has already been opened for this booking",
                details={"booking_id": str(booking.pk)},
            )

        if escrow.escrow_status not in (EscrowStatus.ESCROWED, EscrowStatus.DISPUTED):
            raise NotEligibleError(
                "Only an escrowed payment can be disputed",
                details={
                    "booking_id": str(booking.pk),
                    "escrow_status": escrow.escrow_status,
                },
            )

        transitioned = escrow.escrow_status == EscrowStatus.ESCROWED
        with cls.atomic():
            if transitioned:
                escrow.dispute(reason=dispute.escrow_reason, now=now)
                won = EscrowPaymentRepository.conditional_update(
                    escrow,
                    expected_status=EscrowStatus.ESCROWED,
                    fields=["dispute_reason", "dispute_created_at"],
                )
                if not won:
                    raise AlreadyProcessedError(
                        "The payment changed while the dispute was being opened",
                        details={"booking_id": str(booking.pk)},
                    )

            record = DisputeRepository.create(
                booking=booking,
                escrow_payment=escrow,
                raised_by=actor if actor is not None else booking.request.guest,
                reason=dispute.reason,
                description=dispute.description.strip(),
                evidence_urls=list(dispute.evidence_urls),
                requested_resolution=dispute.requested_resolution,
                status=DisputeStatus.PENDING,
            )
        return record, transitioned

    @classmethod
    def get_dispute(cls, booking_id, actor=None) -> ServiceResult[Dispute]:
        try:
            booking = load_booking(booking_id)
            require_party(booking, actor)
            record = DisputeRepository.get_by_booking_id(booking.pk)
            if record is None:
                raise EscrowNotFoundError(
                    "No dispute for this booking",
                    details={"booking_id": str(booking.pk)},
                )
        except Exception as exc:
            return cls.handle_exception(exc, "get_dispute", booking_id=str(booking_id))
        return ServiceResult.success(record)


__all__ = ["DisputeService"]
