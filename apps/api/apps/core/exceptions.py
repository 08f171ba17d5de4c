"""
Error taxonomy and DRF exception handler.

Every failure leaves the API with the same envelope:

    {"error": "<kind>", "message": "<human readable>", "detail": <optional>}

`error` is a stable machine-readable kind the frontend can switch on.
"""
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.core.observability import get_sanitized_logger, metrics

logger = get_sanitized_logger(__name__)


class DuplicateIdentity(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'A user with this email or national ID already exists.'
    default_code = 'duplicate_identity'


class DuplicateNumber(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Could not allocate a unique document number.'
    default_code = 'duplicate_number'


class InvalidCredentials(exceptions.AuthenticationFailed):
    default_detail = 'Invalid identifier or password.'
    default_code = 'invalid_credentials'


class Unauthenticated(exceptions.NotAuthenticated):
    default_detail = 'Authentication credentials were not provided or are invalid.'
    default_code = 'unauthenticated'


class Forbidden(exceptions.PermissionDenied):
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'


class InvalidStateTransition(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The requested status transition is not allowed.'
    default_code = 'invalid_state_transition'


# DRF built-ins mapped onto our kinds.
_KIND_BY_EXCEPTION = (
    (DuplicateIdentity, 'duplicate_identity'),
    (DuplicateNumber, 'duplicate_number'),
    (InvalidStateTransition, 'invalid_state_transition'),
    (InvalidCredentials, 'invalid_credentials'),
    (exceptions.ValidationError, 'validation_error'),
    (exceptions.ParseError, 'validation_error'),
    (exceptions.NotAuthenticated, 'unauthenticated'),
    (exceptions.AuthenticationFailed, 'unauthenticated'),
    (exceptions.PermissionDenied, 'forbidden'),
    (exceptions.NotFound, 'not_found'),
    (exceptions.MethodNotAllowed, 'method_not_allowed'),
    (exceptions.Throttled, 'throttled'),
)


def _kind_for(exc):
    for exc_class, kind in _KIND_BY_EXCEPTION:
        if isinstance(exc, exc_class):
            return kind
    return 'error'


def _message_for(detail):
    """Pick the first human readable message out of a DRF detail structure."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _message_for(value)
            if key in ('detail', 'non_field_errors'):
                return message
            return f'{key}: {message}'
        return ''
    if isinstance(detail, (list, tuple)):
        return _message_for(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    """
    Wrap DRF's handler so every error response carries `error` and `message`.

    Django ValidationError raised from model.full_clean() inside services is
    converted to a DRF ValidationError first, so it reports as a 400.
    """
    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            exc = exceptions.ValidationError(exc.message_dict)
        else:
            exc = exceptions.ValidationError(exc.messages)
    elif isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = Forbidden()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(
            'Unhandled exception in API view',
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={
                'event': 'api_unhandled_exception',
                'view': view.__class__.__name__ if view else None,
                'exception_type': exc.__class__.__name__,
            }
        )
        metrics.exceptions_total.labels(
            exception_type=exc.__class__.__name__,
            location='api'
        ).inc()
        return Response(
            {
                'error': 'internal_error',
                'message': 'An unexpected error occurred.',
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    kind = _kind_for(exc)
    detail = response.data
    body = {
        'error': kind,
        'message': _message_for(detail),
    }
    # Field errors are worth returning as-is; a bare {"detail": "..."} is not.
    if not (isinstance(detail, dict) and set(detail.keys()) == {'detail'}):
        body['detail'] = detail
    response.data = body
    return response
