"""
Root URL configuration.

URL Structure:
    /                                      - ReDoc API documentation
    /schema/                               - OpenAPI schema (YAML)
    /admin/                                - Django admin interface
    /health/                               - Health check endpoint
    /api/v1/escrow/                        - Escrow endpoints
        bookings/{id}/escrow/              - Create hold (POST), status (GET)
        bookings/{id}/delivery/            - Deliver photos (POST), read (GET)
        bookings/{id}/delivery/downloads/  - Register a guest download (POST)
        bookings/{id}/confirm/             - Confirm receipt with review (POST)
        bookings/{id}/dispute/             - Open (POST) or read (GET) a dispute
        delivery-services/                 - External delivery service directory
        webhooks/stripe/                   - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("escrow/", include("escrow.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Photo Booking Escrow Admin"
admin.site.site_title = "Escrow Admin"
admin.site.index_title = "Bookings and settlements"
