"""
REST framework exception handler for class calendar errors.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import (
    ClassAlreadyExists,
    MalformedCourseWindow,
    ReconciliationInProgress,
    SchedulingError,
)

log = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    Turn service errors into JSON responses.

    Falls back to REST framework's handler for everything else; unknown
    errors (including a bare ValueError) still propagate as server errors.
    """
    if isinstance(exc, (ReconciliationInProgress, ClassAlreadyExists)):
        return _error_response(exc, exc.code, status.HTTP_409_CONFLICT)

    if isinstance(exc, MalformedCourseWindow):
        response = _error_response(exc, exc.code, status.HTTP_400_BAD_REQUEST)
        response.data['field'] = exc.field_name
        return response

    if isinstance(exc, SchedulingError):
        return _error_response(exc, exc.code, status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, DjangoValidationError):
        log.info("Rejected invalid data: %s", exc)
        detail = exc.message_dict if hasattr(exc, 'error_dict') else exc.messages
        return Response(
            {'detail': detail, 'code': 'invalid'},
            status=status.HTTP_400_BAD_REQUEST
        )

    return exception_handler(exc, context)


def _error_response(exc, code, http_status):
    log.warning("Request failed (%s): %s", code, exc)
    return Response({'detail': str(exc), 'code': code}, status=http_status)
