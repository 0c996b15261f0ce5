"""
Booking lifecycle: creation, reads and status changes.

BookingEngine ties together pricing, persistence, the booking-time message
to the listing owner, and the authorization rules in core.permissions.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .conf import marketplace_setting
from .exceptions import (
    BookingNotFound,
    Forbidden,
    InvalidRange,
    ListingNotFound,
    Unauthorized,
    ValidationFailed,
)
from .messaging import MessageSideEffect
from .models import BookingStatus
from .permissions import can_mutate_booking, can_view_booking, is_authenticated
from .pricing import PricingCalculator
from .repositories import default_store

logger = logging.getLogger(__name__)

# Booking.total_price is stored with four decimal places
PRICE_QUANTUM = Decimal('0.0001')


@dataclass
class BookingRequest:
    listing_id: object
    start: datetime
    end: datetime
    guest_name: str = ''
    message: str = ''
    total_price: Optional[Decimal] = None
    payment_method: str = ''
    payer_phone: str = ''


class Perspective(enum.Enum):
    AS_BOOKER = 'booker'
    AS_OWNER = 'owner'


class PermissiveTransitions:
    """Any status may move to any other status."""

    def check(self, current, target):
        return None


class StrictTransitions:
    """
    Booking state machine:

    - pending -> confirmed, cancelled
    - confirmed -> completed, cancelled
    - completed, cancelled: terminal
    """

    ALLOWED = {
        BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
        BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
        BookingStatus.COMPLETED: set(),
        BookingStatus.CANCELLED: set(),
    }

    def check(self, current, target):
        """
        Returns:
            None if the move is allowed, otherwise the error message
        """
        if current == target:
            return None

        if target not in self.ALLOWED.get(current, set()):
            if not self.ALLOWED.get(current):
                return f'Cannot change status of a {current} booking.'
            return f'Cannot change booking status from {current} to {target}.'

        return None


def transition_policy_from_settings():
    if marketplace_setting('STRICT_BOOKING_TRANSITIONS'):
        return StrictTransitions()
    return PermissiveTransitions()


class BookingEngine:
    """
    Entry point for booking operations.

    ``transitions`` pins a status transition policy; when omitted the policy
    follows STUDIO_MARKETPLACE['STRICT_BOOKING_TRANSITIONS'] at call time.
    """

    def __init__(self, store=None, pricing=None, messaging=None, transitions=None):
        self.store = store or default_store()
        self.pricing = pricing or PricingCalculator(self.store)
        self.messaging = messaging or MessageSideEffect(self.store)
        self.transitions = transitions

    def create_booking(self, request, actor=None):
        """
        Create a pending booking for ``actor``, or a guest booking when
        ``actor`` is None.

        If the request carries a message it is recorded for the listing
        owner. A failure to record it is logged and the booking is kept.

        Raises:
            InvalidRange: start is not before end
            ValidationFailed: missing guest name or invalid price
            ListingNotFound: listing_id does not resolve
        """
        if not is_authenticated(actor):
            actor = None

        if request.start is None or request.end is None:
            raise ValidationFailed('Start and end are required.')

        if request.start >= request.end:
            raise InvalidRange()

        guest_name = (request.guest_name or '').strip()
        if actor is None and not guest_name:
            raise ValidationFailed('Guest name is required for guest bookings.')

        quote = self.pricing.compute_price(
            request.listing_id, request.start, request.end, request.total_price
        )

        listing = self.store.listings.get(request.listing_id)
        if listing is None:
            raise ListingNotFound()

        with self.store.atomic():
            booking = self.store.bookings.create(
                listing=listing,
                user=actor,
                guest_name=guest_name,
                start=request.start,
                end=request.end,
                status=BookingStatus.PENDING,
                total_price=quote.amount.quantize(PRICE_QUANTUM),
                price_source=quote.source,
                message=request.message or '',
                payment_method=request.payment_method or '',
                payer_phone=request.payer_phone or '',
            )

            logger.info(
                f"Booking created. Booking ID: {booking.id}, "
                f"Listing: {listing.name} (ID: {listing.id}), "
                f"Booker: {actor.email if actor else f'guest {guest_name}'}, "
                f"Total: {booking.total_price} ({quote.source})"
            )

            if request.message and request.message.strip():
                self._notify_owner(booking, listing, request, actor, guest_name)

        return booking

    def _notify_owner(self, booking, listing, request, actor, guest_name):
        content = request.message.strip()
        if request.payer_phone:
            content = f"{content}\nPhone: {request.payer_phone}"

        try:
            with self.store.atomic():
                self.messaging.record(
                    sender_id=actor.id if actor else None,
                    receiver_id=listing.owner_id,
                    content=content,
                    guest_name=None if actor else guest_name,
                )
        except Exception as e:
            logger.exception(
                f"Booking message could not be recorded. "
                f"Booking ID: {booking.id}, Owner ID: {listing.owner_id}, Error: {e}"
            )

    def get_booking(self, booking_id, requester=None):
        booking = self.store.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound()

        if not can_view_booking(booking, requester):
            logger.warning(
                f"Booking read denied. Booking ID: {booking.id}, "
                f"Requester: {requester.email}"
            )
            raise Forbidden('You do not have permission to view this booking.')

        return booking

    def list_bookings_for_requester(self, actor, perspective):
        if not is_authenticated(actor):
            raise Unauthorized()

        if perspective is Perspective.AS_BOOKER:
            bookings = self.store.bookings.query(user_id=actor.id)
        elif perspective is Perspective.AS_OWNER:
            bookings = self.store.bookings.query(listing__owner_id=actor.id)
        else:
            raise ValueError(f'Unknown perspective: {perspective!r}')

        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    def update_status(self, booking_id, target_status, actor):
        """
        Move a booking to ``target_status``. Only the listing owner may do so.

        Raises:
            Unauthorized: no actor
            BookingNotFound: booking_id does not resolve
            Forbidden: actor does not own the booking's listing
            ValidationFailed: unknown status, or refused by the transition policy
        """
        if not is_authenticated(actor):
            raise Unauthorized()

        booking = self.store.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound()

        if not can_mutate_booking(actor, booking):
            logger.warning(
                f"Booking status change denied. Booking ID: {booking.id}, "
                f"Actor: {actor.email}, Requested: {target_status}"
            )
            raise Forbidden('Only the studio owner can update this booking.')

        if target_status not in BookingStatus.values:
            raise ValidationFailed(
                f"Status must be one of: {', '.join(BookingStatus.values)}."
            )

        policy = self.transitions or transition_policy_from_settings()
        error = policy.check(booking.status, target_status)
        if error:
            raise ValidationFailed(error)

        previous = booking.status
        self.store.bookings.update(booking, status=target_status)

        logger.info(
            f"Booking status changed. Booking ID: {booking.id}, "
            f"From: {previous}, To: {target_status}, Owner: {actor.email}"
        )
        return booking
