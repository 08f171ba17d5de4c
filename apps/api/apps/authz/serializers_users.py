"""
User Administration Serializers.
"""
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from apps.authz.models import RoleChoices, User, national_id_validator
from apps.authz.services import ensure_identity_available


class UserListSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/v1/users/ - List all users
    """

    class Meta:
        model = User
        fields = [
            'id',
            'name',
            'email',
            'role',
            'is_active',
            'last_login',
            'created_at',
        ]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/v1/users/{id}/ - Get user detail
    """

    class Meta:
        model = User
        fields = [
            'id',
            'name',
            'national_id',
            'email',
            'role',
            'phone',
            'address',
            'employee_number',
            'is_active',
            'is_staff',
            'last_login',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class UserCreateSerializer(serializers.Serializer):
    """
    Used for:
    - POST /api/v1/users/ - Provision a citizen or office account

    Duplicate identity is detected by the account service, not here, so the
    error kind is duplicate_identity rather than a field error.
    """
    name = serializers.CharField(max_length=255)
    national_id = serializers.CharField(max_length=16, validators=[national_id_validator])
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=RoleChoices.choices, default=RoleChoices.CITIZEN)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    address = serializers.CharField(required=False, allow_blank=True, default='')
    employee_number = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    is_active = serializers.BooleanField(default=True)


class UserUpdateSerializer(serializers.ModelSerializer):
    """
    Used for:
    - PATCH /api/v1/users/{id}/ - Update profile, role or active flag
    """

    class Meta:
        model = User
        fields = [
            'name',
            'national_id',
            'email',
            'role',
            'phone',
            'address',
            'employee_number',
            'is_active',
        ]
        extra_kwargs = {
            # Uniqueness reported as duplicate_identity in validate()
            'email': {'validators': []},
            'national_id': {'validators': [national_id_validator]},
        }

    def validate_email(self, value):
        return User.objects.normalize_email(value)

    def validate(self, attrs):
        instance = self.instance
        email = attrs.get('email', instance.email)
        national_id = attrs.get('national_id', instance.national_id)
        if email != instance.email or national_id != instance.national_id:
            ensure_identity_available(email, national_id, exclude_pk=instance.pk)
        return attrs


class PasswordResetSerializer(serializers.Serializer):
    """
    Used for:
    - POST /api/v1/users/{id}/reset-password/ - Admin sets a new password
    """
    new_password = serializers.CharField(write_only=True)

    def validate_new_password(self, value):
        try:
            validate_password(value, user=self.context.get('user'))
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        return value

    def save(self):
        user = self.context['user']
        user.set_password(self.validated_data['new_password'])
        user.save(update_fields=['password', 'updated_at'])
        return user
