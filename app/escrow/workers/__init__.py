"""
Background workers for the escrow app.

Workers:
- auto_confirmer: completes escrows whose auto-confirmation deadline passed
"""

from escrow.workers.auto_confirmer import process_auto_confirmations, sweep

__all__ = ["sweep", "process_auto_confirmations"]
