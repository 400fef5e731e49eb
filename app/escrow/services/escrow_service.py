"""
Escrow service: the settlement lifecycle of a booking's payment.

State Flow:
    create_hold            -> PENDING      (manual-capture hold at the gateway)
    confirm_authorization  -> ESCROWED     (guest authorized the hold)
    confirm_receipt(True)  -> COMPLETED    (hold captured)
    confirm_receipt(False) -> DISPUTED     (nothing captured)
    refund_hold            -> REFUNDED     (hold cancelled)

Settlement (guest confirmation and the auto-confirmation sweep) runs:
    1. settlement lock for the escrow (non-blocking, contention is benign)
    2. fresh read; anything but ESCROWED + DELIVERED is "already processed"
    3. gateway capture with an idempotency key scoped to the hold
    4. conditional update ESCROWED -> COMPLETED
    5. review, delivery confirmation and booking mirror

A gateway failure at step 3 leaves the row ESCROWED so settlement can be
retried; nothing is written.

Usage:
    from escrow.services import EscrowService

    result = EscrowService.confirm_receipt(
        booking_id,
        satisfied=True,
        review=ReviewData(photographer_rating=5),
        actor=request.user,
    )
    if result.success and result.data.completed:
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.exceptions import ValidationError
from core.services import BaseService, ServiceResult

from escrow.adapters import AuthorizeParams, IdempotencyKeyGenerator, StripeAdapter
from escrow.exceptions import (
    AlreadyProcessedError,
    EscrowNotFoundError,
    GatewayError,
    LockAcquisitionError,
    NotDeliverableError,
    NotEligibleError,
)
from escrow.locks import settlement_lock
from escrow.repositories import (
    DisputeRepository,
    EscrowPaymentRepository,
    PhotoDeliveryRepository,
    ReviewRepository,
)
from escrow.services.access import load_booking, require_guest, require_party
from escrow.services.booking_sync import BookingSynchronizer
from escrow.services.types import (
    EscrowStatusView,
    HoldResult,
    ReceiptResult,
    ReviewData,
)
from escrow.signals import send_state_changed
from escrow.state_machines import (
    DeliveryStatus,
    EscrowStatus,
    SettlementOutcome,
    SettlementTrigger,
)

if TYPE_CHECKING:
    from datetime import datetime

    from escrow.adapters import PaymentGateway
    from escrow.models import EscrowPayment


ESCROW_METADATA_TYPE = "instant_photo_escrow"

UNSATISFIED_DEFAULT_REASON = "Guest is not satisfied with the delivery"


class EscrowService(BaseService):
    """
    Public escrow operations.

    Every public method returns a ServiceResult. The gateway defaults to
    StripeAdapter and can be replaced per call.
    """

    # =========================================================================
    # Create Hold
    # =========================================================================

    @classmethod
    def create_hold(
        cls,
        booking_id,
        guest_contact: str | None = None,
        actor=None,
        gateway: PaymentGateway | None = None,
    ) -> ServiceResult[HoldResult]:
        """
        Authorize a manual-capture hold for the booking's total and persist
        a PENDING escrow.

        Fails with ALREADY_PROCESSED when the booking already has a live
        (non-refunded) escrow.
        """
        gateway = gateway or StripeAdapter
        try:
            booking = load_booking(booking_id)
            require_guest(booking, actor)

            existing = EscrowPaymentRepository.get_live_by_booking_id(booking.pk)
            if existing is not None:
                raise AlreadyProcessedError(
                    "An escrow payment already exists for this booking",
                    details={
                        "booking_id": str(booking.pk),
                        "escrow_status": existing.escrow_status,
                    },
                )

            attempt = EscrowPaymentRepository.count_by_booking_id(booking.pk) + 1
            try:
                params = AuthorizeParams(
                    amount=booking.total_amount,
                    currency=settings.ESCROW_CURRENCY,
                    idempotency_key=IdempotencyKeyGenerator.generate(
                        "authorize", booking.pk, attempt
                    ),
                    metadata={
                        "booking_id": str(booking.pk),
                        "type": ESCROW_METADATA_TYPE,
                        "guest_contact": guest_contact or booking.guest_contact,
                    },
                )
            except ValueError as exc:
                raise ValidationError(
                    str(exc), details={"booking_id": str(booking.pk)}
                ) from exc

            authorization = cls._call_gateway(
                "authorize", lambda: gateway.authorize(params)
            )

            try:
                escrow = EscrowPaymentRepository.create(
                    booking=booking,
                    currency=params.currency,
                    total_amount=booking.total_amount,
                    platform_fee=booking.platform_fee,
                    photographer_earnings=booking.total_amount - booking.platform_fee,
                    gateway_hold_ref=authorization.hold_ref,
                    metadata={
                        "authorize_attempt": attempt,
                        "gateway_status": authorization.status,
                    },
                )
            except AlreadyProcessedError:
                # Replayed idempotency keys return the winner's hold; only a
                # hold no escrow references is an orphan.
                if EscrowPaymentRepository.get_by_hold_ref(authorization.hold_ref) is None:
                    cls._release_orphan_hold(gateway, authorization.hold_ref, booking.pk)
                raise
        except Exception as exc:
            return cls.handle_exception(exc, "create_hold", booking_id=str(booking_id))

        cls.get_logger().info(
            "Escrow hold created",
            extra={
                "booking_id": str(booking.pk),
                "escrow_id": str(escrow.pk),
                "hold_ref": escrow.gateway_hold_ref,
                "amount": escrow.total_amount,
            },
        )
        return ServiceResult.success(
            HoldResult(escrow=escrow, client_secret=authorization.client_secret)
        )

    @classmethod
    def _release_orphan_hold(cls, gateway, hold_ref: str, booking_id) -> None:
        # A concurrent create_hold won with a different hold; ours must not linger.
        try:
            gateway.cancel(
                hold_ref,
                idempotency_key=IdempotencyKeyGenerator.generate("cancel", hold_ref),
            )
        except Exception:
            cls.get_logger().error(
                "Could not cancel orphaned hold",
                extra={"booking_id": str(booking_id), "hold_ref": hold_ref},
                exc_info=True,
            )

    # =========================================================================
    # Confirm Authorization
    # =========================================================================

    @classmethod
    def confirm_authorization(
        cls,
        gateway_ref: str,
        now: datetime | None = None,
    ) -> ServiceResult[EscrowPayment]:
        """
        PENDING -> ESCROWED once the guest authorized the hold.

        Gateway callbacks repeat, so an escrow that is already past PENDING
        is returned unchanged as a success. A refunded hold cannot be
        authorized again.
        """
        now = now or timezone.now()
        try:
            escrow = EscrowPaymentRepository.get_by_hold_ref(gateway_ref)
            if escrow is None:
                raise EscrowNotFoundError(
                    "No escrow payment for this hold",
                    details={"gateway_ref": gateway_ref},
                )

            if escrow.escrow_status != EscrowStatus.PENDING:
                cls._ensure_not_refunded(escrow)
                return ServiceResult.success(escrow)

            with cls.atomic():
                escrow.authorize(now=now)
                won = EscrowPaymentRepository.conditional_update(
                    escrow,
                    expected_status=EscrowStatus.PENDING,
                    fields=["escrowed_at", "auto_confirm_at"],
                )
                if won:
                    BookingSynchronizer.on_authorized(escrow.booking)

            current = EscrowPaymentRepository.get(escrow.pk)
            if not won:
                cls._ensure_not_refunded(current)
                return ServiceResult.success(current)
        except Exception as exc:
            return cls.handle_exception(
                exc, "confirm_authorization", gateway_ref=gateway_ref
            )

        send_state_changed(
            cls,
            current,
            previous_status=EscrowStatus.PENDING,
            new_status=EscrowStatus.ESCROWED,
            trigger=SettlementTrigger.GATEWAY,
        )
        return ServiceResult.success(current)

    @staticmethod
    def _ensure_not_refunded(escrow: EscrowPayment) -> None:
        if escrow.escrow_status == EscrowStatus.REFUNDED:
            raise NotEligibleError(
                "The hold was cancelled and cannot be authorized",
                details={"escrow_id": str(escrow.pk)},
            )

    # =========================================================================
    # Confirm Receipt
    # =========================================================================

    @classmethod
    def confirm_receipt(
        cls,
        booking_id,
        satisfied: bool,
        review: ReviewData | None = None,
        issues: list[str] | None = None,
        actor=None,
        gateway: PaymentGateway | None = None,
        now: datetime | None = None,
    ) -> ServiceResult[ReceiptResult]:
        """
        Guest's answer to a delivery.

        satisfied=True captures the hold and completes the escrow, storing
        the review. satisfied=False freezes the escrow as DISPUTED without
        touching the gateway; that outcome is reported as a success.

        Precondition: ESCROWED and DELIVERED, otherwise NOT_DELIVERABLE.
        """
        gateway = gateway or StripeAdapter
        now = now or timezone.now()
        try:
            booking = load_booking(booking_id)
            require_guest(booking, actor)

            escrow = cls._get_escrow(booking.pk)
            if not escrow.is_settleable:
                raise NotDeliverableError(
                    "Photos must be delivered before receipt can be confirmed",
                    details={
                        "booking_id": str(booking.pk),
                        "escrow_status": escrow.escrow_status,
                        "delivery_status": escrow.delivery_status,
                    },
                )

            if satisfied:
                if review is not None:
                    errors = review.validate()
                    if errors:
                        raise ValidationError(
                            "Invalid review", details={"errors": errors}
                        )
                receipt = cls._settle(
                    escrow.pk,
                    trigger=SettlementTrigger.GUEST,
                    gateway=gateway,
                    now=now,
                    review=review,
                    reviewer=actor,
                )
            else:
                reason = ", ".join(issue for issue in (issues or []) if issue)
                receipt = cls._dispute_unsatisfied(
                    escrow.pk, reason or UNSATISFIED_DEFAULT_REASON, now
                )
        except Exception as exc:
            return cls.handle_exception(
                exc,
                "confirm_receipt",
                booking_id=str(booking_id),
                satisfied=satisfied,
            )
        return ServiceResult.success(receipt)

    @classmethod
    def _dispute_unsatisfied(cls, escrow_id, reason: str, now: datetime) -> ReceiptResult:
        logger = cls.get_logger()
        try:
            with settlement_lock(escrow_id):
                escrow = EscrowPaymentRepository.get(escrow_id)
                if escrow.escrow_status != EscrowStatus.ESCROWED:
                    return ReceiptResult(SettlementOutcome.ALREADY_PROCESSED, escrow)

                escrow.dispute(reason=reason, now=now)
                won = EscrowPaymentRepository.conditional_update(
                    escrow,
                    expected_status=EscrowStatus.ESCROWED,
                    fields=["dispute_reason", "dispute_created_at"],
                )
                current = EscrowPaymentRepository.get(escrow_id)
                if not won:
                    return ReceiptResult(SettlementOutcome.ALREADY_PROCESSED, current)
        except LockAcquisitionError:
            logger.info(
                "Escrow is being settled elsewhere",
                extra={"escrow_id": str(escrow_id), "operation": "dispute"},
            )
            return ReceiptResult(
                SettlementOutcome.ALREADY_PROCESSED,
                EscrowPaymentRepository.get(escrow_id),
            )

        logger.info(
            "Escrow disputed by guest",
            extra={"escrow_id": str(escrow_id), "dispute_reason": reason},
        )
        send_state_changed(
            cls,
            current,
            previous_status=EscrowStatus.ESCROWED,
            new_status=EscrowStatus.DISPUTED,
            trigger=SettlementTrigger.GUEST,
        )
        return ReceiptResult(SettlementOutcome.DISPUTED, current)

    # =========================================================================
    # Settlement
    # =========================================================================

    @classmethod
    def settle(
        cls,
        escrow_id,
        trigger: str = SettlementTrigger.AUTO_CONFIRM,
        gateway: PaymentGateway | None = None,
        now: datetime | None = None,
    ) -> ServiceResult[ReceiptResult]:
        """
        Capture and complete an escrow without guest input.

        Used by the auto-confirmation sweep. With the AUTO_CONFIRM trigger
        the escrow must still be due at ``now`` when re-read under the lock.
        """
        try:
            receipt = cls._settle(
                escrow_id,
                trigger=trigger,
                gateway=gateway or StripeAdapter,
                now=now or timezone.now(),
            )
        except Exception as exc:
            return cls.handle_exception(exc, "settle", escrow_id=str(escrow_id))
        return ServiceResult.success(receipt)

    @classmethod
    def _settle(
        cls,
        escrow_id,
        trigger: str,
        gateway: PaymentGateway,
        now: datetime,
        review: ReviewData | None = None,
        reviewer=None,
    ) -> ReceiptResult:
        """
        Raises:
            EscrowNotFoundError: No escrow with this id
            GatewayError: Capture failed; the escrow is unchanged
        """
        logger = cls.get_logger()
        log_context = {"escrow_id": str(escrow_id), "trigger": trigger}

        try:
            with settlement_lock(escrow_id):
                escrow = EscrowPaymentRepository.get(escrow_id)
                if escrow is None:
                    raise EscrowNotFoundError(
                        "Escrow payment not found",
                        details={"escrow_id": str(escrow_id)},
                    )

                eligible = (
                    escrow.is_due_for_auto_confirm(now)
                    if trigger == SettlementTrigger.AUTO_CONFIRM
                    else escrow.is_settleable
                )
                if not eligible:
                    logger.info(
                        "Escrow no longer settleable, skipping capture",
                        extra={
                            **log_context,
                            "escrow_status": escrow.escrow_status,
                            "delivery_status": escrow.delivery_status,
                        },
                    )
                    return ReceiptResult(SettlementOutcome.ALREADY_PROCESSED, escrow)

                capture = cls._call_gateway(
                    "capture",
                    lambda: gateway.capture(
                        escrow.gateway_hold_ref,
                        idempotency_key=IdempotencyKeyGenerator.generate(
                            "capture", escrow.gateway_hold_ref
                        ),
                    ),
                )

                created_review = None
                with cls.atomic():
                    escrow.complete(now=now)
                    won = EscrowPaymentRepository.conditional_update(
                        escrow,
                        expected_status=EscrowStatus.ESCROWED,
                        fields=["confirmed_at", "completed_at"],
                        expected_delivery_status=DeliveryStatus.DELIVERED,
                    )
                    if won:
                        if review is not None:
                            created_review = ReviewRepository.create(
                                booking_id=escrow.booking_id,
                                escrow_payment_id=escrow.pk,
                                reviewer=reviewer,
                                **review.as_model_values(),
                            )
                        if trigger == SettlementTrigger.GUEST:
                            PhotoDeliveryRepository.mark_confirmed(
                                escrow.booking_id, now
                            )
                        BookingSynchronizer.on_completed(
                            escrow.booking, review=review, now=now
                        )

                current = EscrowPaymentRepository.get(escrow_id)
                if not won:
                    logger.error(
                        "Hold captured but escrow was settled concurrently",
                        extra={
                            **log_context,
                            "hold_ref": escrow.gateway_hold_ref,
                            "escrow_status": current.escrow_status,
                        },
                    )
                    return ReceiptResult(SettlementOutcome.ALREADY_PROCESSED, current)
        except LockAcquisitionError:
            logger.info("Escrow is being settled elsewhere", extra=log_context)
            return ReceiptResult(
                SettlementOutcome.ALREADY_PROCESSED,
                EscrowPaymentRepository.get(escrow_id),
            )

        logger.info(
            "Escrow completed",
            extra={
                **log_context,
                "booking_id": str(current.booking_id),
                "amount_captured": capture.amount_captured,
            },
        )
        send_state_changed(
            cls,
            current,
            previous_status=EscrowStatus.ESCROWED,
            new_status=EscrowStatus.COMPLETED,
            trigger=trigger,
        )
        return ReceiptResult(SettlementOutcome.COMPLETED, current, review=created_review)

    # =========================================================================
    # Refund
    # =========================================================================

    @classmethod
    def refund_hold(
        cls,
        booking_id=None,
        gateway_ref: str | None = None,
        cancel_at_gateway: bool = False,
        gateway: PaymentGateway | None = None,
        now: datetime | None = None,
    ) -> ServiceResult[EscrowPayment]:
        """
        PENDING/ESCROWED -> REFUNDED.

        Administrative path: called when the gateway reports the hold as
        cancelled (cancel_at_gateway=False), or to cancel it ourselves.
        Refunding an escrow that is already REFUNDED is a no-op success.
        """
        gateway = gateway or StripeAdapter
        now = now or timezone.now()
        try:
            if gateway_ref:
                escrow = EscrowPaymentRepository.get_by_hold_ref(gateway_ref)
            elif booking_id:
                escrow = EscrowPaymentRepository.get_by_booking_id(booking_id)
            else:
                raise ValidationError("booking_id or gateway_ref is required")
            if escrow is None:
                raise EscrowNotFoundError(
                    "Escrow payment not found",
                    details={"booking_id": str(booking_id), "gateway_ref": gateway_ref},
                )

            with settlement_lock(escrow.pk):
                escrow = EscrowPaymentRepository.get(escrow.pk)
                previous = escrow.escrow_status
                if previous == EscrowStatus.REFUNDED:
                    return ServiceResult.success(escrow)
                if previous not in (EscrowStatus.PENDING, EscrowStatus.ESCROWED):
                    raise NotEligibleError(
                        f"A {previous} escrow cannot be refunded",
                        details={"escrow_id": str(escrow.pk)},
                    )

                if cancel_at_gateway and escrow.gateway_hold_ref:
                    cls._call_gateway(
                        "cancel",
                        lambda: gateway.cancel(
                            escrow.gateway_hold_ref,
                            idempotency_key=IdempotencyKeyGenerator.generate(
                                "cancel", escrow.gateway_hold_ref
                            ),
                        ),
                    )

                with cls.atomic():
                    escrow.refund(now=now)
                    won = EscrowPaymentRepository.conditional_update(
                        escrow,
                        expected_status=previous,
                        fields=["refunded_at"],
                    )
                    if won:
                        BookingSynchronizer.on_refunded(escrow.booking)

                current = EscrowPaymentRepository.get(escrow.pk)
                if not won:
                    raise AlreadyProcessedError(
                        "The escrow changed while it was being refunded",
                        details={
                            "escrow_id": str(escrow.pk),
                            "escrow_status": current.escrow_status,
                        },
                    )
        except LockAcquisitionError as exc:
            return cls.handle_exception(
                AlreadyProcessedError(
                    "The escrow is being settled", details=exc.details
                ),
                "refund_hold",
                booking_id=str(booking_id),
                gateway_ref=gateway_ref,
            )
        except Exception as exc:
            return cls.handle_exception(
                exc, "refund_hold", booking_id=str(booking_id), gateway_ref=gateway_ref
            )

        send_state_changed(
            cls,
            current,
            previous_status=previous,
            new_status=EscrowStatus.REFUNDED,
            trigger=SettlementTrigger.GATEWAY
            if not cancel_at_gateway
            else SettlementTrigger.ADMIN,
        )
        return ServiceResult.success(current)

    # =========================================================================
    # Status
    # =========================================================================

    @classmethod
    def get_status(cls, booking_id, actor=None) -> ServiceResult[EscrowStatusView]:
        """Escrow of a booking together with its delivery, dispute and review."""
        try:
            booking = load_booking(booking_id)
            require_party(booking, actor)
            escrow = cls._get_escrow(booking.pk)
            view = EscrowStatusView(
                escrow=escrow,
                delivery=PhotoDeliveryRepository.get_by_booking_id(booking.pk),
                dispute=DisputeRepository.get_by_booking_id(booking.pk),
                review=ReviewRepository.get_by_booking_id(booking.pk),
            )
        except Exception as exc:
            return cls.handle_exception(exc, "get_status", booking_id=str(booking_id))
        return ServiceResult.success(view)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _get_escrow(booking_id) -> EscrowPayment:
        escrow = EscrowPaymentRepository.get_by_booking_id(booking_id)
        if escrow is None:
            raise EscrowNotFoundError(
                "No escrow payment for this booking",
                details={"booking_id": str(booking_id)},
            )
        return escrow

    @classmethod
    def _call_gateway(cls, operation: str, call):
        """Run a gateway call, translating unknown failures to GatewayError."""
        try:
            return call()
        except GatewayError:
            raise
        except Exception as exc:
            cls.get_logger().error(
                f"Gateway {operation} failed: {type(exc).__name__}",
                extra={"operation": operation},
                exc_info=True,
            )
            raise GatewayError(
                f"Payment gateway {operation} failed",
                details={"operation": operation},
            ) from exc


__all__ = ["EscrowService"]
