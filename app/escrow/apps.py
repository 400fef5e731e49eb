"""
Escrow app configuration.

This app owns the settlement lifecycle of a booking's payment:
- EscrowPayment state machine and the gateway hold behind it
- Photo delivery tracking
- Disputes
- Auto-confirmation sweep (Celery beat)
- Stripe webhook handling
"""

from django.apps import AppConfig


class EscrowConfig(AppConfig):
    """Configuration for the escrow application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "escrow"
    verbose_name = "Escrow"

    def ready(self):
        from escrow.signals import register_signals

        register_signals()
