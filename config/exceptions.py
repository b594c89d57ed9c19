"""
Project-wide DRF exception handler.

Renders every API error in the ledger failure envelope::

    {"ok": false, "error": {"code": "...", "message": "...", "details": {...}}}
"""
import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.shipments.exceptions import PaymentError, UnknownPaymentError

logger = logging.getLogger(__name__)


def error_envelope(code, message, details=None):
    return {
        'ok': False,
        'error': {
            'code': code,
            'message': message,
            'details': details,
        },
    }


def ledger_exception_handler(exc, context):
    """Convert exceptions raised in API views into the failure envelope."""
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    if isinstance(exc, PaymentError):
        return Response(
            error_envelope(exc.code, str(exc.detail), exc.details),
            status=exc.status_code,
        )

    if isinstance(exc, exceptions.ValidationError):
        fields = exc.detail if isinstance(exc.detail, dict) else {'non_field_errors': exc.detail}
        return Response(
            error_envelope('VALIDATION_ERROR', 'Invalid input.', {'fields': fields}),
            status=exc.status_code,
        )

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Unhandled error in %s",
            view.__class__.__name__ if view else 'unknown view',
            exc_info=exc,
        )
        unknown = UnknownPaymentError()
        return Response(
            error_envelope(unknown.code, str(unknown.detail)),
            status=unknown.status_code,
        )

    # Keep DRF's status and headers (e.g. WWW-Authenticate), replace the body
    detail = response.data.get('detail') if isinstance(response.data, dict) else None
    code = getattr(exc, 'default_code', 'error')
    if isinstance(exc, exceptions.APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    response.data = error_envelope(
        str(code).upper(),
        str(detail) if detail is not None else str(exc),
    )
    return response
