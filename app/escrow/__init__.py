"""
Escrow app: holds a booking's payment until the guest has the photos.

Entry points:
    escrow.services: EscrowService, DeliveryTracker, DisputeService
    escrow.workers: process_auto_confirmations (Celery beat)
    escrow.webhooks: Stripe webhook endpoint
"""
