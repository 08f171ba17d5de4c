"""
Metrics instrumentation.

All application metrics live on one Prometheus registry owned by this
module, exposed at /metrics.
"""
import logging
import time
from functools import wraps

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


class MetricsRegistry:
    """
    Central metrics registry for the letter service.

    Provides typed access to all application metrics.
    """

    def __init__(self, registry=None):
        """Initialize metrics registry."""
        self.registry = registry or CollectorRegistry()
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        return Counter(name, description, labels or [], registry=self.registry)

    def _create_histogram(self, name, description, labels=None, buckets=None):
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets, registry=self.registry)
        return Histogram(name, description, labels or [], registry=self.registry)

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )

        self.http_request_duration_seconds = self._create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Auth Metrics
        # ===================================================================
        self.auth_registrations_total = self._create_counter(
            'auth_registrations_total',
            'Self-service account registrations',
            ['result']  # success, duplicate
        )

        self.auth_logins_total = self._create_counter(
            'auth_logins_total',
            'Login attempts',
            ['result']  # success, invalid_credentials
        )

        # ===================================================================
        # Letter Metrics
        # ===================================================================
        self.letters_created_total = self._create_counter(
            'letters_created_total',
            'Letter requests created',
            ['category']
        )

        self.letters_transition_total = self._create_counter(
            'letters_transition_total',
            'Letter status transitions',
            ['from_status', 'to_status', 'result']
        )

        self.letter_numbers_assigned_total = self._create_counter(
            'letter_numbers_assigned_total',
            'Official letter numbers assigned'
        )

        self.letter_number_conflicts_total = self._create_counter(
            'letter_number_conflicts_total',
            'Letter number collisions retried during allocation',
            ['outcome']  # retried, exhausted
        )

        self.letter_number_allocation_duration_seconds = self._create_histogram(
            'letter_number_allocation_duration_seconds',
            'Duration of letter number allocation',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.letter_number_allocation_duration_seconds)
            def allocate_number(letter):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator

    def export(self):
        """Return (payload, content_type) in Prometheus text format."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


# Global metrics instance
metrics = MetricsRegistry()
