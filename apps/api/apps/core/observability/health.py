"""
Health check and metrics endpoints.

Provides /healthz, /readyz and /metrics for monitoring.
"""
import logging
from django.http import HttpResponse, JsonResponse
from django.views import View
from django.db import connections
from django.db.utils import DatabaseError
from django.conf import settings
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from apps.core.tenancy import tenant_aliases

logger = logging.getLogger(__name__)


class HealthzView(View):
    """
    Basic health check endpoint.

    Returns 200 OK if application is running.
    Does not check dependencies.
    """

    def get(self, request):
        """Return basic health status."""
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness check endpoint.

    Returns 200 OK if the shared database and every tenant database
    answer a trivial query.
    """

    def get(self, request):
        """Return readiness status with dependency checks."""
        aliases = ['default'] + [a for a in tenant_aliases() if a != 'default']
        checks = {
            f'database:{alias}': self._check_database(alias)
            for alias in aliases
        }

        all_healthy = all(checks.values())

        response_data = {
            'status': 'ready' if all_healthy else 'not_ready',
            'checks': checks,
        }

        return JsonResponse(response_data, status=200 if all_healthy else 503)

    def _check_database(self, alias):
        """Check one database connection."""
        try:
            with connections[alias].cursor() as cursor:
                cursor.execute('SELECT 1')
                return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'alias': alias,
                    'error': str(e)
                }
            )
            return False


class MetricsView(View):
    """Prometheus exposition endpoint."""

    def get(self, request):
        return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
