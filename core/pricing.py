"""
Booking price derivation.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .exceptions import ListingNotFound, ValidationFailed
from .models import PriceSource
from .repositories import default_store

SECONDS_PER_HOUR = Decimal(3600)

# Largest value Booking.total_price (14 digits, 4 decimal places) can hold
MAX_PRICE = Decimal('9999999999.9999')


@dataclass(frozen=True)
class PriceQuote:
    amount: Decimal
    source: str


def hours_between(start, end):
    """Length of [start, end) in hours, as an exact Decimal."""
    delta = end - start
    seconds = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(10 ** 6)
    return seconds / SECONDS_PER_HOUR


class PricingCalculator:
    """
    Prices a booking from the listing's hourly rate unless the caller
    already supplied a price.

    A non-zero caller price is accepted as is and tagged CALLER_SUPPLIED;
    it is not compared against hours x rate.
    """

    def __init__(self, store=None):
        self.store = store or default_store()

    def compute_price(self, listing_id, start, end, explicit_price=None):
        if explicit_price is not None:
            try:
                explicit = Decimal(str(explicit_price))
            except InvalidOperation:
                raise ValidationFailed('Total price must be a number.')

            if not explicit.is_finite():
                raise ValidationFailed('Total price must be a number.')
            if explicit < 0:
                raise ValidationFailed('Total price cannot be negative.')
            if explicit > MAX_PRICE:
                raise ValidationFailed('Total price is too large.')
            if explicit != 0:
                return PriceQuote(amount=explicit, source=PriceSource.CALLER_SUPPLIED)

        listing = self.store.listings.get(listing_id)
        if listing is None:
            raise ListingNotFound()

        amount = hours_between(start, end) * Decimal(listing.hourly_rate)
        if amount > MAX_PRICE:
            raise ValidationFailed('Booking is too long to price.')
        return PriceQuote(amount=amount, source=PriceSource.COMPUTED)
