"""
Infrastructure endpoints that sit outside the payments domain.
"""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for container orchestration and load balancers.

    The payment ledger is the only local dependency, so the service is
    healthy exactly when the database answers.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {"status": "healthy", "database": "connected"}
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError:
        logger.exception("Health check failed: database unreachable")
        return JsonResponse(
            {"status": "unhealthy", "database": "disconnected"},
            status=503,
        )

    return JsonResponse({"status": "healthy", "database": "connected"})
