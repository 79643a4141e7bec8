"""
Error taxonomy and the unified API exception handler.

Every engine error is a DRF ``APIException`` carrying a stable
machine-readable ``code`` plus a human message, so services can raise
them directly and the handler renders them in the same envelope as
DRF's own errors.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class EngineError(drf_exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'error'
    default_detail = 'Request could not be processed.'

    @property
    def code(self) -> str:
        return self.default_code


class ValidationError(EngineError):
    """Malformed input; caller-fixable, never retried."""
    default_code = 'validation'
    default_detail = 'Invalid input.'


class CapacityError(EngineError):
    """No free unit (or service) right now; back off or pick another facility."""
    status_code = status.HTTP_409_CONFLICT
    default_code = 'capacity'
    default_detail = 'No capacity available.'


class EmergencyCapacityError(CapacityError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'No beds available for emergency admission.'


class NotAvailableError(CapacityError):
    default_code = 'not_available'
    default_detail = 'Service not available at this facility.'


class AuthorizationError(EngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'authorization'
    default_detail = 'Not authorized.'


class InvalidStateError(EngineError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'invalid_state'
    default_detail = 'Operation not permitted in the current state.'


class ExpiredError(EngineError):
    """The provisional window lapsed; the caller should create a new reservation."""
    status_code = status.HTTP_410_GONE
    default_code = 'expired'
    default_detail = 'Reservation has expired. Please create a new reservation.'


class NotFoundError(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'
    default_detail = 'Not found.'


_DRF_CODES = (
    (drf_exceptions.ValidationError, 'validation'),
    (drf_exceptions.ParseError, 'validation'),
    (drf_exceptions.NotFound, 'not_found'),
    (drf_exceptions.NotAuthenticated, 'not_authenticated'),
    (drf_exceptions.AuthenticationFailed, 'not_authenticated'),
    (drf_exceptions.PermissionDenied, 'authorization'),
    (drf_exceptions.Throttled, 'throttled'),
)


def _code_for(exc) -> str:
    if isinstance(exc, EngineError):
        return exc.code
    if isinstance(exc, Http404):
        return 'not_found'
    if isinstance(exc, DjangoPermissionDenied):
        return 'authorization'
    for cls, code in _DRF_CODES:
        if isinstance(exc, cls):
            return code
    return 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled error in %s', context.get('view'), exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}}, status=500)
    code = _code_for(exc)
    # capacity/expired/state errors are routine outcomes, not faults
    logger.info('%s rejected with %s (%s)', getattr(context.get('request'), 'path', '?'), code, resp.status_code)
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    # keep status and headers (Retry-After, WWW-Authenticate) from DRF
    resp.data = {'ok': False, 'error': {'code': code, 'message': detail}}
    return resp
