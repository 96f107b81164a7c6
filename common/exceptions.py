"""
Error taxonomy and the DRF exception handler shared by both registries.

Every error leaves the API as:
    {"code": str, "message": str, "timestamp": iso8601, "details": {...}?}
"""
import logging

from django.db import IntegrityError
from django.http import Http404
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import set_rollback

logger = logging.getLogger(__name__)


class ServiceError(APIException):
    """Base class for errors that carry their own response code."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = 'BAD_REQUEST'
    default_detail = 'Bad request'

    def __init__(self, detail=None, details=None):
        super().__init__(detail)
        self.details = details


class ResourceNotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = 'NOT_FOUND'
    default_detail = 'Resource not found'


class AlreadyExists(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    error_code = 'ALREADY_EXISTS'
    default_detail = 'Resource already exists'


class MissingParameter(ServiceError):
    error_code = 'MISSING_PARAMETER'

    def __init__(self, name):
        super().__init__(f"Required parameter '{name}' is missing")
        self.parameter = name


class TypeMismatch(ServiceError):
    error_code = 'TYPE_MISMATCH'

    def __init__(self, name, value):
        super().__init__(f"Invalid value for parameter '{name}': {value}")
        self.parameter = name


def error_body(code, message, details=None):
    body = {
        'code': code,
        'message': message,
        'timestamp': timezone.now().isoformat(),
    }
    if details:
        body['details'] = details
    return body


def _first_message(value):
    if isinstance(value, (list, tuple)):
        return _first_message(value[0]) if value else ''
    if isinstance(value, dict):
        return {key: _first_message(item) for key, item in value.items()}
    return str(value)


def flatten_validation_errors(detail):
    """Reduce DRF's nested error lists to a field -> message map."""
    if isinstance(detail, dict):
        return {field: _first_message(messages) for field, messages in detail.items()}
    return {'non_field_errors': _first_message(detail)}


def service_exception_handler(exc, context):
    """Translate every exception raised inside a view into the error body."""
    view = context.get('view')
    view_name = view.__class__.__name__ if view is not None else 'unknown'

    if isinstance(exc, Http404):
        exc = ResourceNotFound()

    if isinstance(exc, ServiceError):
        logger.warning(f"{view_name}: {exc.error_code} - {exc.detail}")
        set_rollback()
        return Response(
            error_body(exc.error_code, str(exc.detail), exc.details),
            status=exc.status_code,
        )

    if isinstance(exc, ValidationError):
        details = flatten_validation_errors(exc.detail)
        logger.warning(f"{view_name}: validation failed {details}")
        set_rollback()
        return Response(
            error_body('VALIDATION_FAILED', 'Request validation failed', details),
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, IntegrityError):
        logger.error(f"{view_name}: data integrity violation: {exc}")
        set_rollback()
        return Response(
            error_body('DATA_INTEGRITY_VIOLATION', 'Data integrity constraint violated'),
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, APIException):
        codes = exc.get_codes()
        code = codes.upper() if isinstance(codes, str) else 'BAD_REQUEST'
        set_rollback()
        return Response(
            error_body(code, str(exc.detail)),
            status=exc.status_code,
        )

    logger.exception(f"{view_name}: unexpected error occurred")
    set_rollback()
    return Response(
        error_body('INTERNAL_ERROR', 'An internal server error occurred'),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
