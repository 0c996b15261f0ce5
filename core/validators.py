"""
Custom validators for marketplace models.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError


def validate_booking_window(start, end):
    """
    Validate that a booking interval is non-empty.

    Bookings cover the half-open interval [start, end), so ``start`` must be
    strictly before ``end``.

    Args:
        start: Start datetime
        end: End datetime

    Raises:
        ValidationError: If the interval is empty or reversed
    """
    if start is None or end is None:
        return

    if start >= end:
        raise ValidationError(
            'End date must be after start date.',
            code='invalid_range'
        )


def validate_hourly_rate(value):
    """
    Validate that an hourly rate is strictly positive.

    Raises:
        ValidationError: If the rate is zero or negative
    """
    if value is None:
        return

    if Decimal(value) <= 0:
        raise ValidationError(
            'Hourly rate must be greater than 0.',
            code='invalid_hourly_rate'
        )


def validate_string_list(value):
    """
    Validate a JSON field holding a list of non-empty strings (image URLs, features).

    Raises:
        ValidationError: If the value is not a list of strings
    """
    if not isinstance(value, list):
        raise ValidationError('Value must be a list.', code='invalid_list')

    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(
                'Every entry must be a non-empty string.',
                code='invalid_list_item'
            )
