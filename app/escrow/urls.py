"""
URL configuration for the escrow app.

Routes:
    - POST/GET bookings/<id>/escrow/              - create hold / status
    - POST/GET bookings/<id>/delivery/            - deliver photos / delivery
    - POST     bookings/<id>/delivery/downloads/  - register a download
    - POST     bookings/<id>/confirm/             - confirm receipt
    - POST/GET bookings/<id>/dispute/             - open / read dispute
    - GET      delivery-services/                 - external service directory
    - POST     webhooks/stripe/                   - Stripe webhook endpoint

All routes are prefixed with /api/v1/escrow/ when included in the main URLconf.
"""

from django.urls import path

from escrow import views
from escrow.webhooks.views import stripe_webhook

app_name = "escrow"

urlpatterns = [
    path(
        "bookings/<uuid:booking_id>/escrow/",
        views.EscrowPaymentView.as_view(),
        name="escrow-payment",
    ),
    path(
        "bookings/<uuid:booking_id>/delivery/",
        views.PhotoDeliveryView.as_view(),
        name="photo-delivery",
    ),
    path(
        "bookings/<uuid:booking_id>/delivery/downloads/",
        views.PhotoDownloadView.as_view(),
        name="photo-download",
    ),
    path(
        "bookings/<uuid:booking_id>/confirm/",
        views.ConfirmReceiptView.as_view(),
        name="confirm-receipt",
    ),
    path(
        "bookings/<uuid:booking_id>/dispute/",
        views.DisputeView.as_view(),
        name="dispute",
    ),
    path(
        "delivery-services/",
        views.DeliveryServiceListView.as_view(),
        name="delivery-services",
    ),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
