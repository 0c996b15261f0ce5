"""
Error taxonomy for the marketplace and the REST exception handler.

Domain errors are Django REST Framework exceptions so services can raise them
directly and views render them without translation:

- ValidationFailed / InvalidRange -> 400
- Unauthorized -> 401
- Forbidden -> 403
- NotFound and its subclasses -> 404
- Conflict -> 409
- anything else -> 500 with no detail
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ValidationFailed(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid'


class InvalidRange(ValidationFailed):
    default_detail = 'End date must be after start date.'
    default_code = 'invalid_range'


class Unauthorized(exceptions.NotAuthenticated):
    default_detail = 'Authentication credentials were not provided.'


class Forbidden(exceptions.PermissionDenied):
    default_detail = 'You do not have permission to perform this action.'


class NotFound(exceptions.NotFound):
    default_detail = 'Not found.'


class ListingNotFound(NotFound):
    default_detail = 'Listing not found.'
    default_code = 'listing_not_found'


class BookingNotFound(NotFound):
    default_detail = 'Booking not found.'
    default_code = 'booking_not_found'


class InvalidReceiver(NotFound):
    default_detail = 'Receiver not found.'
    default_code = 'invalid_receiver'


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state of the resource.'
    default_code = 'conflict'


def first_message(detail):
    """
    Reduce a DRF/Django error structure to one human-readable message.

    Field errors are prefixed with the field name, e.g. ``"start: This field is required."``.
    """
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = first_message(value)
            if field in ('non_field_errors', '__all__', 'detail'):
                return message
            return f'{field}: {message}'
        return ''
    if isinstance(detail, (list, tuple)):
        return first_message(detail[0]) if detail else ''
    return str(detail)


def marketplace_exception_handler(exc, context):
    """
    REST_FRAMEWORK['EXCEPTION_HANDLER'].

    Every error body carries a single ``detail`` message; validation errors
    keep the full field map under ``errors``.
    """
    if isinstance(exc, DjangoValidationError):
        errors = exc.message_dict if hasattr(exc, 'error_dict') else {'non_field_errors': exc.messages}
        return Response(
            {'detail': first_message(errors), 'errors': errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=exc
        )
        return Response(
            {'detail': 'Internal server error.'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, exceptions.ValidationError):
        response.data = {'detail': first_message(exc.detail), 'errors': response.data}

    return response
