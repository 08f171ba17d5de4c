"""
Identity services: registration, login, token handling and role checks.

Views stay thin; everything that touches credentials goes through here.
"""
from django.contrib.auth.models import update_last_login
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q
from rest_framework import exceptions
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken

from apps.authz.models import RoleChoices, User, national_id_validator
from apps.core.exceptions import DuplicateIdentity, Forbidden, InvalidCredentials, Unauthenticated
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.correlation import bind_user
from apps.core.observability.events import log_registration

logger = get_sanitized_logger(__name__)


def issue_tokens(user):
    """Return a fresh access/refresh pair for `user`."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }


def ensure_identity_available(email, national_id, exclude_pk=None):
    """Raise DuplicateIdentity if email or national ID already belongs to someone."""
    queryset = User.objects.filter(
        Q(email__iexact=email) | Q(national_id=national_id)
    )
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        raise DuplicateIdentity()


def create_account(*, name, national_id, email, password, role=RoleChoices.CITIZEN, **extra):
    """
    Create a user after uniqueness and password checks.

    Shared by self-registration and administrator provisioning.
    """
    email = User.objects.normalize_email(email)
    try:
        national_id_validator(national_id)
    except DjangoValidationError as e:
        raise exceptions.ValidationError({'national_id': e.messages})
    ensure_identity_available(email, national_id)

    candidate = User(name=name, national_id=national_id, email=email, role=role, **extra)
    try:
        validate_password(password, user=candidate)
    except DjangoValidationError as e:
        raise exceptions.ValidationError({'password': e.messages})

    try:
        with transaction.atomic():
            return User.objects.create_user(
                email=email,
                password=password,
                name=name,
                national_id=national_id,
                role=role,
                **extra
            )
    except IntegrityError:
        # Lost a race against a concurrent registration with the same identity
        raise DuplicateIdentity()


def register_user(*, name, national_id, email, password, phone='', address=''):
    """
    Self-service registration. Always yields a citizen.

    Returns (user, tokens).
    """
    try:
        user = create_account(
            name=name,
            national_id=national_id,
            email=email,
            password=password,
            phone=phone or '',
            address=address or '',
        )
    except DuplicateIdentity:
        metrics.auth_registrations_total.labels(result='duplicate').inc()
        log_registration(None, result='rejected', reason='duplicate_identity')
        raise

    metrics.auth_registrations_total.labels(result='success').inc()
    log_registration(user, role=user.role)
    return user, issue_tokens(user)


def _find_by_identifier(identifier):
    identifier = (identifier or '').strip()
    if not identifier:
        return None
    if identifier.isdigit():
        lookup = Q(national_id=identifier)
    else:
        lookup = Q(email__iexact=identifier)
    return User.objects.filter(lookup).first()


def login_user(identifier, password):
    """
    Authenticate by email or national ID and password.

    Returns (user, tokens). Unknown identifier, wrong password and inactive
    accounts all fail the same way.
    """
    user = _find_by_identifier(identifier)

    if user is None:
        # Run the hasher anyway so unknown identifiers cost the same time
        User().set_password(password)
        valid = False
    else:
        valid = user.check_password(password) and user.is_active

    if not valid:
        metrics.auth_logins_total.labels(result='invalid_credentials').inc()
        logger.info(
            'Login failed',
            extra={'event': 'auth_login_failed'}
        )
        raise InvalidCredentials()

    update_last_login(None, user)
    bind_user(user)
    metrics.auth_logins_total.labels(result='success').inc()
    logger.info(
        'Login succeeded',
        extra={'event': 'auth_login'}
    )
    return user, issue_tokens(user)


def authenticate_token(raw_token):
    """
    Resolve a raw access token into its user.

    Raises Unauthenticated when the token is missing, malformed, expired,
    wrongly signed, or its user no longer resolves.
    """
    if not raw_token:
        raise Unauthenticated()

    backend = JWTAuthentication()
    try:
        validated = backend.get_validated_token(raw_token)
        return backend.get_user(validated)
    except exceptions.AuthenticationFailed:
        raise Unauthenticated()


def authorize(user, allowed_roles):
    """Raise Forbidden unless `user` holds one of `allowed_roles`."""
    if user is None or not user.is_authenticated or not user.has_role(*allowed_roles):
        raise Forbidden()
