"""
Centralized error handling for the reservations API.

Every reservation endpoint answers failures with the same shape:

    {'success': False, 'error': <code>, 'message': <human readable>, 'field_errors': {...}}

so the widget and the supplier pages can tell an expired link from an
already handled booking from a temporary failure worth retrying.
"""

import logging
from typing import Any, Dict, List, Optional

from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.reservations.exceptions import ReservationError

logger = logging.getLogger(__name__)


class ReservationErrorHandler:
    """Maps lifecycle and framework errors to API responses."""

    @staticmethod
    def handle_reservation_error(error: ReservationError, context: Optional[Dict[str, Any]] = None) -> Response:
        error_context = context or {}
        log = logger.error if error.http_status >= 500 else logger.warning
        log(
            f"🔴 [RESERVATION_ERROR] {error.code}: {error.user_message}",
            extra={'error_type': error.code, **error_context}
        )

        fields = error.details.get('fields') or []
        return Response(
            {
                'success': False,
                'error': error.code,
                'message': error.user_message,
                'field_errors': {field: ['This field is required.'] for field in fields},
            },
            status=error.http_status
        )

    @staticmethod
    def handle_validation_error(error: ValidationError, context: Optional[Dict[str, Any]] = None) -> Response:
        error_context = context or {}
        logger.warning(
            f"🔴 [RESERVATION_ERROR] Validation error: {error.detail}",
            extra={'error_type': 'validation', **error_context}
        )

        if isinstance(error.detail, dict):
            field_errors = ReservationErrorHandler.format_field_errors(error.detail)
            message = 'Please correct the highlighted fields.'
        else:
            field_errors = {}
            message = ' '.join(str(item) for item in error.detail) if isinstance(error.detail, list) else str(error.detail)

        return Response(
            {
                'success': False,
                'error': 'validation_failed',
                'message': message,
                'field_errors': field_errors,
            },
            status=status.HTTP_400_BAD_REQUEST
        )

    @staticmethod
    def handle_database_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> Response:
        error_context = context or {}
        logger.error(
            f"🔴 [RESERVATION_ERROR] Database error: {str(error)}",
            exc_info=True,
            extra={'error_type': 'database', **error_context}
        )

        if isinstance(error, IntegrityError):
            return Response(
                {
                    'success': False,
                    'error': 'conflict',
                    'message': 'This booking was changed at the same time, please reload and try again.',
                    'field_errors': {},
                },
                status=status.HTTP_409_CONFLICT
            )

        return Response(
            {
                'success': False,
                'error': 'temporary_failure',
                'message': 'Temporary failure, please try again in a moment.',
                'field_errors': {},
            },
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    @staticmethod
    def handle_generic_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> Response:
        error_context = context or {}
        logger.error(
            f"🔴 [RESERVATION_ERROR] Unexpected error: {str(error)}",
            exc_info=True,
            extra={'error_type': 'generic', 'error_class': error.__class__.__name__, **error_context}
        )
        return Response(
            {
                'success': False,
                'error': 'internal_error',
                'message': 'Something went wrong. Please try again.',
                'field_errors': {},
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    @staticmethod
    def handle_exception(error: Exception, context: Optional[Dict[str, Any]] = None) -> Response:
        """Route an exception to the matching handler."""
        if isinstance(error, ReservationError):
            return ReservationErrorHandler.handle_reservation_error(error, context)
        elif isinstance(error, ValidationError):
            return ReservationErrorHandler.handle_validation_error(error, context)
        elif isinstance(error, (IntegrityError, DatabaseError)):
            return ReservationErrorHandler.handle_database_error(error, context)
        else:
            return ReservationErrorHandler.handle_generic_error(error, context)

    @staticmethod
    def format_field_errors(serializer_errors: Dict[str, Any]) -> Dict[str, List[str]]:
        formatted = {}
        for field, messages in serializer_errors.items():
            if isinstance(messages, list):
                formatted[field] = [str(msg) for msg in messages]
            elif isinstance(messages, dict):
                formatted[field] = [f"{k}: {v}" for k, v in messages.items()]
            else:
                formatted[field] = [str(messages)]
        return formatted
