import logging
import traceback
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.http import Http404
from django.core.exceptions import PermissionDenied, ValidationError
from django.db.utils import IntegrityError
from django.conf import settings

logger = logging.getLogger('cinetrack')

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def first_error_message(data):
    """
    Return the first human readable message found in an error payload.

    DRF error payloads nest messages in dicts and lists
    (e.g. {'email': ['This field is required.']}).
    """
    if isinstance(data, dict):
        for value in data.values():
            message = first_error_message(value)
            if message:
                return message
        return None
    if isinstance(data, (list, tuple)):
        for value in data:
            message = first_error_message(value)
            if message:
                return message
        return None
    if data is None:
        return None
    return str(data)


def custom_exception_handler(exc, context):
    """
    Custom exception handler for DRF that provides consistent error responses
    and logs exceptions for debugging.

    Every error body has the shape {'error': <message>, 'detail': <payload>}.
    """
    # Call REST framework's default exception handler first to get the standard response
    response = exception_handler(exc, context)

    # If response is None, DRF doesn't handle this exception by default
    if response is None:
        if isinstance(exc, Http404):
            response = Response(
                {'error': 'Not found', 'detail': str(exc)},
                status=status.HTTP_404_NOT_FOUND
            )
        elif isinstance(exc, PermissionDenied):
            response = Response(
                {'error': 'Access denied', 'detail': str(exc)},
                status=status.HTTP_403_FORBIDDEN
            )
        elif isinstance(exc, ValidationError):
            detail = exc.message_dict if hasattr(exc, 'error_dict') else exc.messages
            response = Response(
                {'error': first_error_message(detail) or 'Validation error', 'detail': detail},
                status=status.HTTP_400_BAD_REQUEST
            )
        elif isinstance(exc, IntegrityError):
            logger.warning(f"Integrity error: {exc}")
            response = Response(
                {'error': 'Database integrity error', 'detail': str(exc) if settings.DEBUG else None},
                status=status.HTTP_400_BAD_REQUEST
            )
        else:
            # Generic uncaught exception
            error_message = str(exc)

            # Log the error with traceback for server debugging
            logger.error(
                f"Uncaught exception: {exc.__class__.__name__}: {error_message}\n"
                f"Traceback: {traceback.format_exc()}"
            )

            # In production, don't expose detailed error information to the client
            if not settings.DEBUG:
                error_message = GENERIC_ERROR_MESSAGE

            response = Response(
                {'error': 'Server error', 'detail': error_message},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    # For already handled exceptions, let's add consistency to the format
    else:
        data = response.data
        error_type = exc.__class__.__name__

        request = context.get('request')
        view = context.get('view')

        log = logger.warning if response.status_code < 500 else logger.error
        log(
            f"Exception in {view.__class__.__name__}: {error_type}: {str(exc)}\n"
            f"Request: {getattr(request, 'method', '?')} {getattr(request, 'path', '?')}"
        )

        if isinstance(data, dict) and 'detail' in data and len(data) == 1:
            data = data['detail']
        response.data = {
            'error': first_error_message(data) or error_type,
            'detail': data,
        }

    return response


def create_error_response(error_message, status_code=status.HTTP_400_BAD_REQUEST):
    """
    Helper function to create consistent error responses.

    Args:
        error_message: Error message or dict of errors
        status_code: HTTP status code

    Returns:
        Response object with consistent error format
    """
    if isinstance(error_message, dict):
        return Response(
            {'error': first_error_message(error_message) or 'Error', 'detail': error_message},
            status=status_code
        )
    return Response({'error': str(error_message), 'detail': str(error_message)}, status=status_code)


def format_count(value):
    """
    Format a counter for display: 999 -> '999', 12500 -> '12k+', 3000000 -> '3M'.
    A trailing '+' marks a value that was rounded down.
    """
    value = int(value or 0)
    if value >= 1_000_000:
        return f"{value // 1_000_000}M{'+' if value % 1_000_000 else ''}"
    if value >= 1000:
        return f"{value // 1000}k{'+' if value % 1000 else ''}"
    return str(value)
