"""
Infrastructure endpoints that sit outside the business domain, and the
REST framework exception handler shared by every API app.
"""

import logging

from django.core.cache import cache
from django.db import connection
from django.core.exceptions import PermissionDenied
from django.http import Http404, JsonResponse
from rest_framework import exceptions
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for container orchestrators and load balancers.

    Returns 200 when the database answers, 503 otherwise. Cache failures
    degrade the report but do not fail the check.

    Example Response:
        {"status": "healthy", "database": "connected", "cache": "connected"}
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        health_status["cache"] = "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)


# DRF exception -> error kind of the result envelope
DRF_ERROR_CODES = {
    exceptions.NotAuthenticated: ("AUTHENTICATION_REQUIRED", 401),
    exceptions.AuthenticationFailed: ("AUTHENTICATION_REQUIRED", 401),
    exceptions.PermissionDenied: ("AUTHORIZATION_DENIED", 403),
    exceptions.NotFound: ("NOT_FOUND", 404),
    exceptions.ValidationError: ("VALIDATION_ERROR", 400),
    exceptions.ParseError: ("VALIDATION_ERROR", 400),
}


def api_exception_handler(exc, context):
    """
    REST framework exception handler answering in the service result envelope.

    Errors raised by DRF itself (authentication, permissions, parsing) get
    the same {"success": false, "error", "error_code"} body as service
    failures. Session authentication has no WWW-Authenticate challenge, so
    unauthenticated requests are answered with 401 explicitly.
    """
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    error_code, status_code = "REQUEST_ERROR", response.status_code
    for exc_class, mapping in DRF_ERROR_CODES.items():
        if isinstance(exc, exc_class):
            error_code, status_code = mapping
            break

    body = {"success": False, "error_code": error_code}
    if isinstance(exc, exceptions.ValidationError):
        body["error"] = "Invalid request"
        body["errors"] = response.data
    else:
        body["error"] = str(getattr(exc, "detail", exc))

    response.data = body
    response.status_code = status_code
    return response
