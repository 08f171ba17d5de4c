"""
Tests for registration, login, profile and token handling.

Tests:
- Registration creates a citizen and returns a token pair
- Duplicate email / national ID is rejected as duplicate_identity
- Login by email or national ID; wrong password and unknown identifier fail alike
- Profile never exposes the credential
- Access tokens resolve back to their user
"""
from datetime import timedelta

import pytest
from rest_framework_simplejwt.backends import TokenBackend
from rest_framework_simplejwt.tokens import AccessToken

from apps.authz import services
from apps.authz.models import RoleChoices, User
from apps.core.exceptions import Unauthenticated

REGISTER_URL = '/api/auth/register/'
LOGIN_URL = '/api/auth/login/'
PROFILE_URL = '/api/auth/profile/'
REFRESH_URL = '/api/auth/token/refresh/'


def registration(**overrides):
    body = {
        'name': 'Dewi Lestari',
        'national_id': '3207015505950001',
        'email': 'Dewi@Example.com',
        'password': 'rahasia123',
        'phone': '081234567890',
        'address': 'Dusun Cibeureum',
    }
    body.update(overrides)
    return body


@pytest.mark.django_db
class TestRegistration:

    def test_register_creates_citizen_with_tokens(self, api_client):
        response = api_client.post(REGISTER_URL, registration())

        assert response.status_code == 201
        data = response.json()
        assert data['user']['role'] == RoleChoices.CITIZEN
        assert data['user']['email'] == 'dewi@example.com'
        assert 'password' not in data['user']
        assert data['access']
        assert data['refresh']

        user = User.objects.get(national_id='3207015505950001')
        assert user.check_password('rahasia123')
        assert user.password != 'rahasia123'

    def test_register_ignores_requested_role(self, api_client):
        response = api_client.post(REGISTER_URL, registration(role='admin'))

        assert response.status_code == 201
        assert response.json()['user']['role'] == RoleChoices.CITIZEN

    def test_duplicate_email_rejected(self, api_client, citizen):
        response = api_client.post(REGISTER_URL, registration(email='WARGA@test.id'))

        assert response.status_code == 400
        assert response.json()['error'] == 'duplicate_identity'

    def test_duplicate_national_id_rejected(self, api_client, citizen):
        response = api_client.post(REGISTER_URL, registration(national_id=citizen.national_id))

        assert response.status_code == 400
        assert response.json()['error'] == 'duplicate_identity'
        assert User.objects.filter(national_id=citizen.national_id).count() == 1

    def test_short_password_rejected(self, api_client):
        response = api_client.post(REGISTER_URL, registration(password='abc'))

        assert response.status_code == 400
        body = response.json()
        assert body['error'] == 'validation_error'
        assert 'password' in body['detail']
        assert not User.objects.filter(national_id='3207015505950001').exists()

    def test_malformed_national_id_rejected(self, api_client):
        response = api_client.post(REGISTER_URL, registration(national_id='12345'))

        assert response.status_code == 400
        body = response.json()
        assert body['error'] == 'validation_error'
        assert 'national_id' in body['detail']

    def test_missing_name_rejected(self, api_client):
        body = registration()
        del body['name']
        response = api_client.post(REGISTER_URL, body)

        assert response.status_code == 400
        assert 'name' in response.json()['detail']


@pytest.mark.django_db
class TestLogin:

    def test_login_by_email(self, api_client, citizen, password):
        response = api_client.post(LOGIN_URL, {'identifier': 'warga@test.id', 'password': password})

        assert response.status_code == 200
        data = response.json()
        assert data['user']['id'] == str(citizen.id)
        assert data['access']

    def test_login_by_email_alias_is_case_insensitive(self, api_client, citizen, password):
        response = api_client.post(LOGIN_URL, {'email': 'WARGA@TEST.ID', 'password': password})

        assert response.status_code == 200

    def test_login_by_national_id(self, api_client, citizen, password):
        response = api_client.post(LOGIN_URL, {'identifier': citizen.national_id, 'password': password})

        assert response.status_code == 200
        assert response.json()['user']['national_id'] == citizen.national_id

    def test_login_records_last_login(self, api_client, citizen, password):
        assert citizen.last_login is None
        api_client.post(LOGIN_URL, {'identifier': 'warga@test.id', 'password': password})

        citizen.refresh_from_db()
        assert citizen.last_login is not None

    def test_wrong_password_and_unknown_identifier_fail_alike(self, api_client, citizen, password):
        wrong = api_client.post(LOGIN_URL, {'identifier': 'warga@test.id', 'password': 'salah-sandi'})
        unknown = api_client.post(LOGIN_URL, {'identifier': 'nobody@test.id', 'password': password})

        assert wrong.status_code == 401
        assert unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()['error'] == 'invalid_credentials'

    def test_inactive_user_cannot_login(self, api_client, citizen, password):
        citizen.is_active = False
        citizen.save()

        response = api_client.post(LOGIN_URL, {'identifier': 'warga@test.id', 'password': password})

        assert response.status_code == 401
        assert response.json()['error'] == 'invalid_credentials'

    def test_missing_identifier(self, api_client):
        response = api_client.post(LOGIN_URL, {'password': 'rahasia123'})

        assert response.status_code == 400
        assert 'identifier' in response.json()['detail']


@pytest.mark.django_db
class TestProfileAndTokens:

    def test_profile_requires_authentication(self, api_client):
        response = api_client.get(PROFILE_URL)

        assert response.status_code == 401
        assert response.json()['error'] == 'unauthenticated'

    def test_profile_with_bearer_token(self, api_client, clerk):
        tokens = services.issue_tokens(clerk)
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        response = api_client.get(PROFILE_URL)

        assert response.status_code == 200
        data = response.json()
        assert data['id'] == str(clerk.id)
        assert data['role'] == RoleChoices.CLERK
        assert 'password' not in data

    def test_garbage_token_rejected(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')

        response = api_client.get(PROFILE_URL)

        assert response.status_code == 401

    def test_refresh_returns_new_access_token(self, api_client, citizen):
        tokens = services.issue_tokens(citizen)

        response = api_client.post(REFRESH_URL, {'refresh': tokens['refresh']})

        assert response.status_code == 200
        assert response.json()['access']

    def test_authenticate_token_resolves_user(self, citizen):
        tokens = services.issue_tokens(citizen)

        assert services.authenticate_token(tokens['access']) == citizen

    @pytest.mark.parametrize('raw', ['', None, 'abc.def.ghi'])
    def test_authenticate_token_rejects_bad_input(self, raw):
        with pytest.raises(Unauthenticated):
            services.authenticate_token(raw)

    def test_authenticate_token_rejects_deleted_user(self, make_user):
        user = make_user('hilang@test.id', '3207010101900099')
        tokens = services.issue_tokens(user)
        user.delete()

        with pytest.raises(Unauthenticated):
            services.authenticate_token(tokens['access'])

    def test_authenticate_token_rejects_expired(self, citizen):
        token = AccessToken.for_user(citizen)
        token.set_exp(lifetime=-timedelta(minutes=5))

        with pytest.raises(Unauthenticated):
            services.authenticate_token(str(token))

    def test_authenticate_token_rejects_foreign_signature(self, citizen):
        payload = dict(AccessToken.for_user(citizen).payload)
        forged = TokenBackend('HS256', signing_key='kunci-lain-yang-bukan-milik-kantor').encode(payload)

        with pytest.raises(Unauthenticated):
            services.authenticate_token(forged)
