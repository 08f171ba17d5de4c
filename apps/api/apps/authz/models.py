"""
Authz models: auth_user with a single closed role.
"""
import uuid
from django.core.validators import RegexValidator
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin


national_id_validator = RegexValidator(
    regex=r'^\d{16}$',
    message='National ID (NIK) must be exactly 16 digits.',
    code='invalid_national_id',
)


# ============================================================================
# Enums
# ============================================================================

class RoleChoices(models.TextChoices):
    """
    Closed set of roles.

    - CITIZEN: registers themself, authors and submits own requests
    - CLERK: office staff, processes requests, may author on behalf of citizens
    - ADMIN: everything a clerk does plus archiving and user provisioning
    """
    CITIZEN = 'citizen', 'Citizen'
    CLERK = 'clerk', 'Clerk'
    ADMIN = 'admin', 'Admin'


STAFF_ROLES = (RoleChoices.CLERK, RoleChoices.ADMIN)


# ============================================================================
# User Management
# ============================================================================

class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def normalize_email(self, email):
        # Whole address lowercased; login treats it case-insensitively.
        return (email or '').strip().lower()

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.full_clean(exclude=['password'])
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', RoleChoices.ADMIN)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Account of a citizen or an office employee.

    Users are never hard-deleted through the API; deactivate with is_active.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    national_id = models.CharField(
        max_length=16,
        unique=True,
        validators=[national_id_validator],
        help_text='NIK, 16 digits'
    )
    email = models.EmailField(unique=True, max_length=255)
    role = models.CharField(
        max_length=10,
        choices=RoleChoices.choices,
        default=RoleChoices.CITIZEN
    )
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    employee_number = models.CharField(
        max_length=32,
        blank=True,
        help_text='NIP of office staff, printed in signer blocks'
    )
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Django admin access
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name', 'national_id']

    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['role'], name='idx_user_role'),
            models.Index(fields=['is_active'], name='idx_user_active'),
        ]

    def __str__(self):
        return f'{self.name} <{self.email}>'

    @property
    def is_office_staff(self):
        return self.role in STAFF_ROLES

    def has_role(self, *roles):
        return self.role in roles
