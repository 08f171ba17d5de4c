"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Users and authenticated API clients by role
- Letter payloads and letters in each lifecycle state
"""
import pytest
from rest_framework.test import APIClient

from apps.authz.models import RoleChoices, User
from apps.letters import services
from apps.letters.models import LetterRequest, LetterStatusChoices

PASSWORD = 'rahasia123'


def _create_user(email, national_id, role=RoleChoices.CITIZEN, **extra):
    return User.objects.create_user(
        email=email,
        password=PASSWORD,
        name=extra.pop('name', email.split('@')[0].title()),
        national_id=national_id,
        role=role,
        **extra
    )


def authenticated(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def citizen(db):
    return _create_user('warga@test.id', '3207010101900001', name='Siti Aminah')


@pytest.fixture
def other_citizen(db):
    return _create_user('tetangga@test.id', '3207010101900002', name='Budi Santoso')


@pytest.fixture
def clerk(db):
    return _create_user('petugas@test.id', '3207010101900003', role=RoleChoices.CLERK, name='Petugas Loket')


@pytest.fixture
def admin_user(db):
    return _create_user('admin@test.id', '3207010101900004', role=RoleChoices.ADMIN, name='Admin Kelurahan')


@pytest.fixture
def make_user(db):
    """Factory: make_user(email, national_id, role=..., **extra)."""
    return _create_user


@pytest.fixture
def password():
    return PASSWORD


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def citizen_client(citizen):
    return authenticated(citizen)


@pytest.fixture
def other_citizen_client(other_citizen):
    return authenticated(other_citizen)


@pytest.fixture
def clerk_client(clerk):
    return authenticated(clerk)


@pytest.fixture
def admin_client(admin_user):
    return authenticated(admin_user)


# ============================================================================
# Letters
# ============================================================================

@pytest.fixture
def domicile_data():
    """Service-level input for a domicile certificate."""
    return {
        'letter_type': 'surat-keterangan-domisili',
        'category': 'layanan-umum',
        'applicant_name': 'Siti Aminah',
        'applicant_national_id': '1234567812345678',
        'applicant_birth_place': 'Ciamis',
        'applicant_gender': 'Perempuan',
        'applicant_address': 'Dusun Sukamaju RT 01 RW 02',
        'payload': {
            'alamat_lengkap': 'Dusun Sukamaju RT 01 RW 02, Sindangrasa',
            'rt': '01',
            'rw': '02',
            'lama_tinggal': '5 tahun',
            'keperluan': 'Melamar pekerjaan',
        },
    }


@pytest.fixture
def domicile_body():
    """Wire-level request body for a domicile certificate."""
    return {
        'letter_type': 'surat-keterangan-domisili',
        'category': 'layanan-umum',
        'applicant': {
            'name': 'Siti Aminah',
            'national_id': '1234567812345678',
            'birth_place': 'Ciamis',
            'birth_date': '1990-01-01',
            'gender': 'Perempuan',
            'address': 'Dusun Sukamaju RT 01 RW 02',
        },
        'payload': {
            'alamat_lengkap': 'Dusun Sukamaju RT 01 RW 02, Sindangrasa',
            'rt': '01',
            'rw': '02',
            'lama_tinggal': '5 tahun',
            'keperluan': 'Melamar pekerjaan',
        },
        'notes': 'Mohon segera',
    }


@pytest.fixture
def draft_letter(citizen, domicile_data):
    return services.create_letter(citizen, domicile_data)


@pytest.fixture
def submitted_letter(citizen, draft_letter):
    return services.submit_letter(citizen, draft_letter.id)


@pytest.fixture
def processing_letter(clerk, submitted_letter):
    return services.process_letter(clerk, submitted_letter.id)


@pytest.fixture
def completed_letter(clerk, processing_letter):
    return services.complete_letter(clerk, processing_letter.id)


@pytest.fixture
def make_letter(citizen, domicile_data):
    """Factory: create a letter directly in the store, bypassing the lifecycle."""
    def _make(author=None, status=LetterStatusChoices.DRAFT, **overrides):
        author = author or citizen
        data = dict(domicile_data)
        data.update(services.default_signer(author))
        data.update(overrides)
        letter = LetterRequest(created_by=author, status=status, **data)
        letter.save(skip_validation=True)
        return letter
    return _make
