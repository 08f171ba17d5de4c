"""
Tests for /healthz, /readyz and /metrics.
"""
from unittest.mock import patch

import pytest
from django.conf import settings


@pytest.mark.django_db
class TestHealthEndpoints:

    def test_healthz(self, client):
        response = client.get('/healthz')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ok'
        assert data['service'] == 'letters-api'
        assert data['version'] == settings.VERSION

    def test_readyz_when_migrated(self, client):
        response = client.get('/readyz')

        assert response.status_code == 200
        assert response.json() == {
            'status': 'ready',
            'checks': {'database': True, 'migrations': True},
        }

    def test_readyz_without_letter_table(self, client):
        with patch('django.db.connection.introspection.table_names', return_value=['auth_user']):
            response = client.get('/readyz')

        assert response.status_code == 503
        assert response.json()['status'] == 'not_ready'
        assert response.json()['checks']['migrations'] is False

    def test_metrics_scrape(self, client, citizen_client, domicile_body):
        citizen_client.post('/api/v1/letters/', domicile_body)

        response = client.get('/metrics')

        assert response.status_code == 200
        assert response['Content-Type'].startswith('text/plain')
        body = response.content.decode()
        assert 'letters_created_total{category="layanan-umum"}' in body
        assert 'http_requests_total' in body
