"""
Health check and observability views.
"""

import logging
import time

from django.db import connection
from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

logger = logging.getLogger(__name__)


def _check_database():
    start = time.time()
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except Exception as exc:
        logger.error("Database health check failed: %s", exc)
        return {"status": "unhealthy", "message": str(exc)}
    return {
        "status": "healthy",
        "duration_ms": round((time.time() - start) * 1000, 2),
    }


@method_decorator(csrf_exempt, name='dispatch')
class HealthCheckView(View):
    """
    Health check endpoint.

    GET /health/ - database connectivity and draft producer configuration
    """

    def get(self, request):
        from django.conf import settings

        checks = {
            "database": _check_database(),
            "draft_producer": {
                "status": "healthy",
                "backend": settings.DRAFT_PRODUCER_BACKEND,
            },
        }
        healthy = all(c["status"] == "healthy" for c in checks.values())
        return JsonResponse(
            {"status": "healthy" if healthy else "unhealthy", "checks": checks},
            status=200 if healthy else 503,
        )


@method_decorator(csrf_exempt, name='dispatch')
class LivenessView(View):
    """Returns 200 if the application is running."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


@method_decorator(csrf_exempt, name='dispatch')
class ReadinessView(View):
    """Returns 200 if the database answers."""

    def get(self, request):
        db_check = _check_database()
        if db_check["status"] == "healthy":
            return JsonResponse({"status": "ready"})
        return JsonResponse({
            "status": "not_ready",
            "reason": db_check.get("message", ""),
        }, status=503)
