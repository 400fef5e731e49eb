"""
EscrowPayment model: funds held for a booking until delivery is confirmed.

The escrow is created PENDING with a manual-capture hold at the payment
gateway. Once the guest authorizes the hold it becomes ESCROWED, and it is
settled either by capturing the hold (COMPLETED) or frozen (DISPUTED).
Cancelled holds end REFUNDED. Rows are never deleted.

Usage:
    from escrow.models import EscrowPayment

    escrow = EscrowPayment.objects.create(
        booking=booking,
        total_amount=10000,
        platform_fee=1000,
        photographer_earnings=9000,
        gateway_hold_ref="pi_123",
    )

    # Transitions validate the source state in memory; persistence goes
    # through EscrowPaymentRepository.conditional_update so the write only
    # happens if the stored state is still the expected one.
    escrow.authorize(now=timezone.now())
    EscrowPaymentRepository.conditional_update(
        escrow,
        expected_status=EscrowStatus.PENDING,
        fields=["escrowed_at", "auto_confirm_at"],
    )
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

from escrow.state_machines import DeliveryStatus, EscrowStatus


def default_auto_confirm_hours() -> int:
    return settings.ESCROW_AUTO_CONFIRM_HOURS


def default_currency() -> str:
    return settings.ESCROW_CURRENCY


class EscrowPayment(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    Escrowed payment for a single booking.

    State Flow:
        PENDING -> ESCROWED -> COMPLETED
        PENDING -> ESCROWED -> DISPUTED
        PENDING/ESCROWED -> REFUNDED

    Fields:
        booking: Booking the funds are held for
        escrow_status: FSM state of the funds
        delivery_status: FSM state of the photo delivery
        total_amount/platform_fee/photographer_earnings: Price split in minor units
        gateway_hold_ref: Gateway handle of the authorized hold
        auto_confirm_*: Auto-confirmation window
        version: Optimistic locking version
        *_at timestamps: Track state transition times

    Note:
        Only one non-REFUNDED escrow may exist per booking. Refunded rows
        stay as the audit trail and do not block a new hold.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="escrow_payments",
        help_text="Booking whose payment is held",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code (lowercase)",
    )

    total_amount = models.PositiveBigIntegerField(
        help_text="Amount held from the guest, in minor units",
    )

    platform_fee = models.PositiveBigIntegerField(
        default=0,
        help_text="Platform fee kept on settlement, in minor units",
    )

    photographer_earnings = models.PositiveBigIntegerField(
        default=0,
        help_text="Amount owed to the photographer, in minor units",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    escrow_status = FSMField(
        default=EscrowStatus.PENDING,
        choices=EscrowStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the held funds (managed by FSM)",
    )

    delivery_status = FSMField(
        default=DeliveryStatus.WAITING,
        choices=DeliveryStatus.choices,
        protected=True,
        help_text="Photo delivery progress (managed by FSM)",
    )

    # ==========================================================================
    # Gateway
    # ==========================================================================

    gateway_hold_ref = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Gateway reference of the manual-capture hold (e.g. pi_xxx)",
    )

    # ==========================================================================
    # Auto-confirmation
    # ==========================================================================

    auto_confirm_enabled = models.BooleanField(
        default=True,
        help_text="Whether the sweep may complete this escrow without the guest",
    )

    auto_confirm_hours = models.PositiveIntegerField(
        default=default_auto_confirm_hours,
        help_text="Hours after escrow before auto-confirmation",
    )

    auto_confirm_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the escrow becomes eligible for auto-confirmation",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each write",
    )

    # ==========================================================================
    # State Timestamps
    # ==========================================================================

    escrowed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the guest's authorization was confirmed",
    )

    delivered_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When photos were (last) delivered",
    )

    confirmed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When receipt was confirmed (by the guest or the sweep)",
    )

    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the hold was captured and the escrow completed",
    )

    dispute_created_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the escrow was frozen by a dispute",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the hold was cancelled",
    )

    # ==========================================================================
    # Dispute & Notes
    # ==========================================================================

    dispute_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Reason given when the escrow was disputed",
    )

    admin_notes = models.TextField(
        blank=True,
        help_text="Internal notes from support staff",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Escrow Payment"
        verbose_name_plural = "Escrow Payments"
        indexes = [
            models.Index(
                fields=[
                    "escrow_status",
                    "delivery_status",
                    "auto_confirm_enabled",
                    "auto_confirm_at",
                ],
                name="escrow_auto_confirm_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=~Q(escrow_status=EscrowStatus.REFUNDED),
                name="escrow_one_live_per_booking",
            ),
            models.CheckConstraint(
                condition=Q(total_amount__gt=0),
                name="escrow_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(platform_fee__lte=F("total_amount")),
                name="escrow_fee_within_total",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"EscrowPayment({self.id}, {self.escrow_status}/{self.delivery_status}, "
            f"{self.total_amount} {self.currency.upper()})"
        )

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.
        """
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_settleable(self) -> bool:
        """Whether the hold may be captured now (escrowed and delivered)."""
        return (
            self.escrow_status == EscrowStatus.ESCROWED
            and self.delivery_status == DeliveryStatus.DELIVERED
        )

    def is_due_for_auto_confirm(self, now=None) -> bool:
        now = now or timezone.now()
        return (
            self.is_settleable
            and self.auto_confirm_enabled
            and self.auto_confirm_at is not None
            and self.auto_confirm_at <= now
        )

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=escrow_status,
        source=EscrowStatus.PENDING,
        target=EscrowStatus.ESCROWED,
    )
    def authorize(self, now=None):
        """
        Mark the hold as authorized by the guest.

        Transition: PENDING -> ESCROWED

        Starts the auto-confirmation window from the moment of escrow.
        """
        self.escrowed_at = now or timezone.now()
        self.auto_confirm_at = self.escrowed_at + timedelta(
            hours=self.auto_confirm_hours
        )

    @transition(
        field=escrow_status,
        source=EscrowStatus.ESCROWED,
        target=EscrowStatus.COMPLETED,
        conditions=[lambda escrow: escrow.delivery_status == DeliveryStatus.DELIVERED],
    )
    def complete(self, now=None):
        """
        Complete the escrow after the hold was captured.

        Transition: ESCROWED -> COMPLETED (requires delivery)
        """
        now = now or timezone.now()
        self.confirm_delivery()
        self.confirmed_at = now
        self.completed_at = now

    @transition(
        field=escrow_status,
        source=EscrowStatus.ESCROWED,
        target=EscrowStatus.DISPUTED,
    )
    def dispute(self, reason: str, now=None):
        """
        Freeze the escrow under dispute.

        Transition: ESCROWED -> DISPUTED
        """
        self.dispute_reason = reason
        self.dispute_created_at = now or timezone.now()

    @transition(
        field=escrow_status,
        source=[EscrowStatus.PENDING, EscrowStatus.ESCROWED],
        target=EscrowStatus.REFUNDED,
    )
    def refund(self, now=None):
        """
        Record that the hold was cancelled and nothing will be captured.

        Transition: PENDING/ESCROWED -> REFUNDED
        """
        self.refunded_at = now or timezone.now()

    @transition(
        field=delivery_status,
        source=[DeliveryStatus.WAITING, DeliveryStatus.DELIVERED],
        target=DeliveryStatus.DELIVERED,
    )
    def mark_delivered(self, now=None):
        """
        Record a (re-)delivery of photos.

        Transition: WAITING/DELIVERED -> DELIVERED
        """
        self.delivered_at = now or timezone.now()

    @transition(
        field=delivery_status,
        source=DeliveryStatus.DELIVERED,
        target=DeliveryStatus.CONFIRMED,
    )
    def confirm_delivery(self):
        """
        Transition: DELIVERED -> CONFIRMED
        """
