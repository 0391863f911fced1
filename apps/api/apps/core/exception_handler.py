"""
DRF exception handler mapping the domain error taxonomy to JSON responses.

Every error body has the shape ``{"error": ..., "error_type": ...}``.
Unexpected exceptions become a generic 500 carrying the request id; the
cause is only written to the logs.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from apps.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    TenantError,
)
from apps.core.observability import metrics, get_sanitized_logger
from apps.core.observability.correlation import get_request_id

logger = get_sanitized_logger(__name__)


def _validation_details(exc):
    if hasattr(exc, 'error_dict'):
        return exc.message_dict
    return exc.messages


def api_exception_handler(exc, context):
    """Translate exceptions raised by views and services into responses."""
    view = context.get('view')
    location = view.__class__.__name__ if view is not None else 'unknown'

    if isinstance(exc, InsufficientStockError):
        return Response(
            {'error': exc.messages[0], 'error_type': 'insufficient_stock', **exc.as_payload()},
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, ConflictError):
        return Response(
            {'error': exc.messages[0], 'error_type': 'conflict'},
            status=status.HTTP_409_CONFLICT
        )

    if isinstance(exc, DjangoValidationError):
        return Response(
            {
                'error': 'Validation failed',
                'error_type': 'validation_error',
                'details': _validation_details(exc),
            },
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, NotFoundError):
        return Response(
            {'error': str(exc), 'error_type': 'not_found', 'entity': exc.entity},
            status=status.HTTP_404_NOT_FOUND
        )

    if isinstance(exc, TenantError):
        return Response(
            {'error': str(exc), 'error_type': exc.error_type},
            status=exc.status_code
        )

    response = drf_exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, drf_exceptions.ValidationError):
            response.data = {
                'error': 'Validation failed',
                'error_type': 'validation_error',
                'details': response.data,
            }
        elif isinstance(exc, (Http404, drf_exceptions.NotFound)):
            response.data = {'error': 'Not found', 'error_type': 'not_found'}
        elif isinstance(exc, drf_exceptions.APIException):
            detail = response.data.get('detail', '') if isinstance(response.data, dict) else response.data
            response.data = {'error': str(detail), 'error_type': exc.default_code}
        return response

    metrics.exceptions_total.labels(
        exception_type=exc.__class__.__name__,
        location=location
    ).inc()
    logger.error(
        'Unhandled API exception',
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={
            'event': 'api_unhandled_exception',
            'exception_type': exc.__class__.__name__,
            'view': location,
        }
    )
    return Response(
        {
            'error': 'Internal server error',
            'error_type': 'internal_error',
            'request_id': get_request_id(),
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
