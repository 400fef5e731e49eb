"""
Auto-confirmation sweep.

Guests who never answer a delivery still pay the photographer: once an
escrowed, delivered payment passes its auto_confirm_at deadline, the sweep
captures the hold and completes the escrow, exactly as a satisfied guest
confirmation would but without a review.

Each escrow is settled independently. A gateway failure on one row is
logged and reported in the result; it never stops the run. Rows another
path settled (or is settling) in the meantime are skipped without error,
so the sweep can run as often as needed.

Tasks:
- process_auto_confirmations: Periodic task (celery-beat, every 15 minutes)

Usage:
    from escrow.workers import sweep

    result = sweep(now=timezone.now())
    result.processed_count, result.failures

    # Or via Celery
    process_auto_confirmations.delay()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from escrow.repositories import EscrowPaymentRepository
from escrow.services import EscrowService, SweepFailure, SweepResult
from escrow.state_machines import SettlementOutcome, SettlementTrigger

if TYPE_CHECKING:
    from datetime import datetime

    from escrow.adapters import PaymentGateway

logger = logging.getLogger(__name__)


def sweep(
    now: datetime | None = None,
    gateway: PaymentGateway | None = None,
    batch_size: int | None = None,
) -> SweepResult:
    """
    Complete every escrow whose auto-confirmation deadline has passed.

    Args:
        now: Reference time; rows with auto_confirm_at <= now are due
        gateway: Payment gateway (StripeAdapter by default)
        batch_size: Maximum rows per run (ESCROW_SWEEP_BATCH_SIZE by default)

    Returns:
        SweepResult with the number of escrows completed by this run and
        the per-escrow failures
    """
    now = now or timezone.now()
    batch_size = batch_size or settings.ESCROW_SWEEP_BATCH_SIZE

    escrow_ids = EscrowPaymentRepository.query_eligible_for_sweep(now, limit=batch_size)
    logger.info(
        "Starting auto-confirmation sweep",
        extra={"eligible_count": len(escrow_ids), "now": now.isoformat()},
    )

    result = SweepResult()
    for escrow_id in escrow_ids:
        try:
            settled = EscrowService.settle(
                escrow_id,
                trigger=SettlementTrigger.AUTO_CONFIRM,
                gateway=gateway,
                now=now,
            )
        except Exception as e:
            # settle() converts errors itself; this guards the loop.
            logger.exception(
                f"Auto-confirmation crashed: {e}",
                extra={"escrow_id": str(escrow_id)},
            )
            result.failures.append(
                SweepFailure(escrow_id=escrow_id, error_code="UNEXPECTED_ERROR", error=str(e))
            )
            continue

        if not settled.success:
            logger.error(
                f"Auto-confirmation failed: {settled.error}",
                extra={"escrow_id": str(escrow_id), "error_code": settled.error_code},
            )
            result.failures.append(
                SweepFailure(
                    escrow_id=escrow_id,
                    error_code=settled.error_code,
                    error=settled.error,
                )
            )
        elif settled.data.outcome == SettlementOutcome.COMPLETED:
            result.processed_count += 1
        else:
            result.skipped_count += 1

    logger.info(
        f"Auto-confirmation sweep complete: {result.processed_count} completed",
        extra={
            "processed_count": result.processed_count,
            "skipped_count": result.skipped_count,
            "failure_count": len(result.failures),
        },
    )
    return result


@shared_task(name="escrow.process_auto_confirmations")
def process_auto_confirmations() -> dict:
    """
    Periodic entry point for the sweep.

    Returns:
        Dict with processed_count, skipped_count and failures
    """
    return sweep().to_dict()


__all__ = ["sweep", "process_auto_confirmations"]
