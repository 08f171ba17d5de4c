"""
Authz serializers for registration, login and profile.
"""
from rest_framework import serializers
from apps.authz.models import User, national_id_validator


class RegisterSerializer(serializers.Serializer):
    """
    Input for POST /api/auth/register/.

    Uniqueness and password strength are enforced by the registration service.
    """
    name = serializers.CharField(max_length=255)
    national_id = serializers.CharField(max_length=16, validators=[national_id_validator])
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    address = serializers.CharField(required=False, allow_blank=True, default='')


class LoginSerializer(serializers.Serializer):
    """
    Input for POST /api/auth/login/.

    `identifier` is an email address or a 16 digit national ID.
    `email` is accepted as an alias for clients that only know email login.
    """
    identifier = serializers.CharField(required=False)
    email = serializers.CharField(required=False)
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})

    def validate(self, attrs):
        identifier = attrs.get('identifier') or attrs.get('email')
        if not identifier:
            raise serializers.ValidationError({'identifier': 'This field is required.'})
        attrs['identifier'] = identifier
        return attrs


class UserProfileSerializer(serializers.ModelSerializer):
    """
    Authenticated user's own profile. Never includes the credential.
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
            'created_at',
        ]
        read_only_fields = fields


class AuthResponseSerializer(serializers.Serializer):
    """Shape of register/login responses (for the schema)."""
    user = UserProfileSerializer()
    access = serializers.CharField()
    refresh = serializers.CharField()
