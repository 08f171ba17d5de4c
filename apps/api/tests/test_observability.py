"""
Tests for observability layer.

Validates that metrics, logs, and events are emitted correctly
without logging applicant PII.
"""
import json
import logging
from unittest.mock import patch

import pytest
from django.http import HttpResponse
from django.test import RequestFactory

from apps.core.exceptions import InvalidStateTransition
from apps.core.observability.correlation import (
    RequestCorrelationMiddleware,
    bind_user,
    clear_request_context,
    get_request_id,
    get_user_id,
    get_user_role,
)
from apps.core.observability.events import log_domain_event, log_letter_transition
from apps.core.observability.logging import (
    CorrelationFilter,
    SanitizedJSONFormatter,
    sanitize_dict,
)
from apps.core.observability.metrics import MetricsRegistry, metrics
from apps.letters import services


@pytest.fixture(autouse=True)
def _clean_context():
    clear_request_context()
    yield
    clear_request_context()


def sample(name, labels=None):
    return metrics.registry.get_sample_value(name, labels or {}) or 0


class TestRequestCorrelation:
    """Test request correlation middleware."""

    def _middleware(self):
        return RequestCorrelationMiddleware(lambda r: HttpResponse('ok'))

    def test_generates_request_id_if_missing(self):
        request = RequestFactory().get('/api/v1/letters/')

        self._middleware().process_request(request)

        assert request.request_id
        assert get_request_id() == request.request_id

    def test_propagates_existing_request_id(self):
        request = RequestFactory().get('/api/v1/letters/', HTTP_X_REQUEST_ID='req-123', HTTP_X_TRACE_ID='trace-9')

        self._middleware().process_request(request)

        assert request.request_id == 'req-123'
        assert request.trace_id == 'trace-9'

    def test_adds_headers_and_counts_request(self):
        middleware = self._middleware()
        request = RequestFactory().get('/tidak-ada', HTTP_X_REQUEST_ID='req-456', HTTP_X_TRACE_ID='trace-1')
        labels = {'path': 'unmatched', 'method': 'GET', 'status': '200'}
        before = sample('http_requests_total', labels)

        middleware.process_request(request)
        response = middleware.process_response(request, HttpResponse('ok'))

        assert response['X-Request-ID'] == 'req-456'
        assert response['X-Trace-ID'] == 'trace-1'
        assert sample('http_requests_total', labels) == before + 1

    def test_response_over_full_stack_carries_request_id(self, db, client):
        response = client.get('/healthz', HTTP_X_REQUEST_ID='req-full')

        assert response['X-Request-ID'] == 'req-full'

    def test_bind_user(self, db, clerk):
        bind_user(clerk)

        assert get_user_id() == str(clerk.id)
        assert get_user_role() == 'clerk'


class TestSanitization:
    """Test PII sanitization."""

    def test_sanitize_dict_redacts_sensitive_fields(self):
        data = {
            'id': '123',
            'applicant_name': 'Siti Aminah',
            'applicant_national_id': '1234567812345678',
            'email': 'siti@example.com',
            'phone': '0812',
            'notes': 'Mohon segera',
            'payload': {'alamat_lengkap': 'Dusun Sukamaju'},
            'status': 'submitted',
        }

        sanitized = sanitize_dict(data)

        assert sanitized['id'] == '123'
        assert sanitized['status'] == 'submitted'
        for key in ('applicant_name', 'applicant_national_id', 'email', 'phone', 'notes', 'payload'):
            assert sanitized[key] == '[REDACTED]'

    def test_sanitize_dict_handles_nested_objects(self):
        data = {
            'letter': {'id': '456', 'applicant': {'national_id': '1234567812345678', 'id': 'a-1'}},
            'status': 'completed',
        }

        sanitized = sanitize_dict(data)

        assert sanitized['letter']['id'] == '456'
        assert sanitized['letter']['applicant']['id'] == 'a-1'
        assert sanitized['letter']['applicant']['national_id'] == '[REDACTED]'

    def test_allowed_fields_not_redacted(self):
        data = {
            'letter_id': 'letter-123',
            'letter_number': '005/001/Kel.Sindangrasa/2025',
            'from_status': 'processing',
            'to_status': 'completed',
            'attempts': 2,
        }

        assert sanitize_dict(data) == data

    def test_formatter_redacts_extra_fields(self):
        record = logging.LogRecord('letters', logging.INFO, __file__, 1, 'Letter created', None, None)
        record.applicant_national_id = '1234567812345678'
        record.password = 'rahasia'
        record.letter_id = 'letter-1'
        CorrelationFilter().filter(record)

        output = json.loads(SanitizedJSONFormatter().format(record))

        assert output['message'] == 'Letter created'
        assert output['applicant_national_id'] == '[REDACTED]'
        assert output['password'] == '[REDACTED]'
        assert output['letter_id'] == 'letter-1'
        assert output['request_id'] == '-'
        assert '1234567812345678' not in json.dumps(output)


class TestMetricsRegistry:
    """Test that metrics are defined and exported."""

    def test_registry_has_letter_metrics(self):
        for name in (
            'http_requests_total',
            'auth_logins_total',
            'letters_created_total',
            'letters_transition_total',
            'letter_numbers_assigned_total',
            'letter_number_conflicts_total',
            'letter_number_allocation_duration_seconds',
        ):
            assert hasattr(metrics, name)

    def test_separate_registries_do_not_collide(self):
        first = MetricsRegistry()
        second = MetricsRegistry()

        first.letters_created_total.labels(category='layanan-umum').inc()

        assert first.registry.get_sample_value('letters_created_total', {'category': 'layanan-umum'}) == 1
        assert second.registry.get_sample_value('letters_created_total', {'category': 'layanan-umum'}) is None

    def test_export_is_prometheus_text(self):
        payload, content_type = MetricsRegistry().export()

        assert content_type.startswith('text/plain')
        assert b'letters_transition_total' in payload

    def test_track_duration(self):
        registry = MetricsRegistry()

        @registry.track_duration(registry.letter_number_allocation_duration_seconds)
        def work():
            return 'done'

        assert work() == 'done'
        assert registry.registry.get_sample_value('letter_number_allocation_duration_seconds_count') == 1


@pytest.mark.django_db
class TestLetterFlowMetrics:
    """Letter services move the counters they own."""

    def test_creation_and_transitions_are_counted(self, citizen, clerk, domicile_data):
        created_before = sample('letters_created_total', {'category': 'layanan-umum'})
        submit_labels = {'from_status': 'draft', 'to_status': 'submitted', 'result': 'success'}
        submit_before = sample('letters_transition_total', submit_labels)
        assigned_before = sample('letter_numbers_assigned_total')

        letter = services.create_letter(citizen, domicile_data)
        services.submit_letter(citizen, letter.id)
        services.process_letter(clerk, letter.id)
        services.complete_letter(clerk, letter.id)

        assert sample('letters_created_total', {'category': 'layanan-umum'}) == created_before + 1
        assert sample('letters_transition_total', submit_labels) == submit_before + 1
        assert sample('letter_numbers_assigned_total') == assigned_before + 1

    def test_blocked_transition_is_counted(self, clerk, draft_letter):
        labels = {'from_status': 'draft', 'to_status': 'completed', 'result': 'invalid'}
        before = sample('letters_transition_total', labels)

        with pytest.raises(InvalidStateTransition):
            services.complete_letter(clerk, draft_letter.id)

        assert sample('letters_transition_total', labels) == before + 1


class TestDomainEvents:
    """Test domain event logging."""

    @patch('apps.core.observability.events.logger')
    def test_log_domain_event_structure(self, mock_logger):
        log_domain_event(
            'letter_created',
            entity_type='LetterRequest',
            entity_id='letter-123',
            entity_ids={'actor_id': 'user-1'},
            category='layanan-umum',
            applicant_national_id='1234567812345678',
        )

        mock_logger.info.assert_called_once()
        extra = mock_logger.info.call_args[1]['extra']
        assert extra['event'] == 'letter_created'
        assert extra['entity_type'] == 'LetterRequest'
        assert extra['entity_id'] == 'letter-123'
        assert extra['actor_id'] == 'user-1'
        assert extra['result'] == 'success'
        assert extra['category'] == 'layanan-umum'
        assert extra['applicant_national_id'] == '[REDACTED]'

    @patch('apps.core.observability.events.logger')
    def test_blocked_events_log_as_warning(self, mock_logger):
        log_domain_event('letter_transition', result='blocked')

        mock_logger.warning.assert_called_once()
        mock_logger.info.assert_not_called()

    @patch('apps.core.observability.events.logger')
    def test_failures_log_as_error(self, mock_logger):
        log_domain_event('letter_number_exhausted', result='failure')

        mock_logger.error.assert_called_once()

    @pytest.mark.django_db
    @patch('apps.core.observability.events.logger')
    def test_letter_transition_event(self, mock_logger, clerk, draft_letter):
        log_letter_transition(draft_letter, 'submitted', 'processing', actor=clerk)

        extra = mock_logger.info.call_args[1]['extra']
        assert extra['letter_id'] == str(draft_letter.id)
        assert extra['actor_id'] == str(clerk.id)
        assert extra['from_status'] == 'submitted'
        assert extra['to_status'] == 'processing'
