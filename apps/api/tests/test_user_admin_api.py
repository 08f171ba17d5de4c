"""
Tests for user administration (admin only) and role checks.
"""
from types import SimpleNamespace

import pytest
from django.contrib.auth.models import AnonymousUser

from apps.authz.models import RoleChoices, User
from apps.authz.permissions import HasRole, IsAdmin, IsOfficeStaff
from apps.authz.services import authorize
from apps.core.exceptions import Forbidden

USERS_URL = '/api/v1/users/'


@pytest.mark.django_db
class TestAuthorize:

    def test_role_in_allowed_set_passes(self, clerk):
        authorize(clerk, (RoleChoices.CLERK, RoleChoices.ADMIN))

    def test_role_outside_allowed_set_is_forbidden(self, citizen):
        with pytest.raises(Forbidden):
            authorize(citizen, (RoleChoices.CLERK, RoleChoices.ADMIN))

    def test_anonymous_is_forbidden(self):
        with pytest.raises(Forbidden):
            authorize(AnonymousUser(), (RoleChoices.CITIZEN,))

    def test_has_role_permission(self, citizen, clerk, admin_user):
        request = SimpleNamespace(user=clerk)
        assert IsOfficeStaff().has_permission(request, None)
        assert not IsAdmin().has_permission(request, None)

        assert HasRole(RoleChoices.CITIZEN)().has_permission(SimpleNamespace(user=citizen), None)
        assert IsAdmin().has_permission(SimpleNamespace(user=admin_user), None)
        assert not IsOfficeStaff().has_permission(SimpleNamespace(user=AnonymousUser()), None)


@pytest.mark.django_db
class TestUserAdministration:

    def test_non_admin_cannot_list_users(self, clerk_client, citizen_client):
        assert clerk_client.get(USERS_URL).status_code == 403
        assert citizen_client.get(USERS_URL).status_code == 403

    def test_admin_lists_users_paginated(self, admin_client, citizen, clerk):
        response = admin_client.get(USERS_URL)

        assert response.status_code == 200
        data = response.json()
        assert data['total'] == 3
        assert data['page'] == 1
        assert {row['email'] for row in data['records']} == {
            'warga@test.id', 'petugas@test.id', 'admin@test.id'
        }

    def test_filter_by_role_and_search(self, admin_client, citizen, clerk):
        by_role = admin_client.get(USERS_URL, {'role': 'clerk'}).json()
        assert [row['email'] for row in by_role['records']] == ['petugas@test.id']

        by_search = admin_client.get(USERS_URL, {'q': citizen.national_id}).json()
        assert [row['id'] for row in by_search['records']] == [str(citizen.id)]

    def test_admin_provisions_clerk(self, admin_client):
        response = admin_client.post(USERS_URL, {
            'name': 'Petugas Baru',
            'national_id': '3207010101900010',
            'email': 'baru@test.id',
            'password': 'rahasia123',
            'role': 'clerk',
            'employee_number': '198001012005011001',
        })

        assert response.status_code == 201
        assert response.json()['role'] == 'clerk'
        assert 'password' not in response.json()
        user = User.objects.get(email='baru@test.id')
        assert user.is_office_staff
        assert user.check_password('rahasia123')

    def test_provisioning_duplicate_identity(self, admin_client, citizen):
        response = admin_client.post(USERS_URL, {
            'name': 'Kembar',
            'national_id': citizen.national_id,
            'email': 'lain@test.id',
            'password': 'rahasia123',
        })

        assert response.status_code == 400
        assert response.json()['error'] == 'duplicate_identity'

    def test_admin_changes_role_and_deactivates(self, admin_client, citizen):
        response = admin_client.patch(f'{USERS_URL}{citizen.id}/', {'role': 'clerk', 'is_active': False})

        assert response.status_code == 200
        citizen.refresh_from_db()
        assert citizen.role == RoleChoices.CLERK
        assert citizen.is_active is False

    def test_update_to_taken_email_is_duplicate(self, admin_client, citizen, clerk):
        response = admin_client.patch(f'{USERS_URL}{citizen.id}/', {'email': clerk.email})

        assert response.status_code == 400
        assert response.json()['error'] == 'duplicate_identity'

    def test_users_cannot_be_deleted(self, admin_client, citizen):
        response = admin_client.delete(f'{USERS_URL}{citizen.id}/')

        assert response.status_code == 405
        assert User.objects.filter(pk=citizen.pk).exists()

    def test_reset_password(self, admin_client, citizen):
        response = admin_client.post(f'{USERS_URL}{citizen.id}/reset-password/', {'new_password': 'sandibaru1'})

        assert response.status_code == 200
        citizen.refresh_from_db()
        assert citizen.check_password('sandibaru1')

    def test_reset_password_rejects_weak_password(self, admin_client, citizen):
        response = admin_client.post(f'{USERS_URL}{citizen.id}/reset-password/', {'new_password': 'abc'})

        assert response.status_code == 400
        assert 'new_password' in response.json()['detail']
