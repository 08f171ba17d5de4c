"""
Health check endpoints.

Provides /healthz, /readyz and /metrics for monitoring.
"""
import logging
from django.http import HttpResponse, JsonResponse
from django.views import View
from django.db import DatabaseError, connection
from django.conf import settings

from .metrics import metrics

logger = logging.getLogger(__name__)


class HealthzView(View):
    """
    Liveness probe. Does not check dependencies.
    """

    def get(self, request):
        health_data = {
            'status': 'ok',
            'service': 'letters-api',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness probe.

    Returns 503 until the database answers and the letter tables exist.
    """

    def get(self, request):
        checks = {
            'database': self._check_database(),
        }
        if checks['database']:
            checks['migrations'] = self._check_letter_table()

        all_healthy = all(checks.values())

        return JsonResponse(
            {
                'status': 'ready' if all_healthy else 'not_ready',
                'checks': checks,
            },
            status=200 if all_healthy else 503
        )

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
                return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error': str(e)
                }
            )
            return False

    def _check_letter_table(self):
        from apps.letters.models import LetterRequest

        tables = connection.introspection.table_names()
        if LetterRequest._meta.db_table not in tables:
            logger.warning(
                'Letter tables missing, migrations not applied',
                extra={'event': 'health_check_failed', 'check': 'migrations'}
            )
            return False
        return True


class MetricsView(View):
    """Prometheus scrape endpoint."""

    def get(self, request):
        payload, content_type = metrics.export()
        return HttpResponse(payload, content_type=content_type)
