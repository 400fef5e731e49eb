"""
Stripe webhook intake for the escrow app.

- views.stripe_webhook: signature check, storage, queueing
- handlers: event type -> escrow operation
"""
