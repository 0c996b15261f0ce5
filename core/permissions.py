"""
Authorization rules for the studio marketplace.

The capability checks are plain functions so services and views share them;
the DRF permission classes at the bottom wrap them for views.
"""

import enum

from rest_framework import permissions

from .models import Account


class BookingAccess(enum.Enum):
    """
    How a requester relates to a booking.

    ANONYMOUS covers the guest receipt page: anyone holding the booking id
    can read it without a credential.
    """

    ANONYMOUS = 'anonymous'
    BOOKER = 'booker'
    OWNER = 'owner'
    UNRELATED = 'unrelated'


def is_authenticated(actor):
    return actor is not None and getattr(actor, 'is_authenticated', True)


def classify_booking_access(booking, requester=None):
    if not is_authenticated(requester):
        return BookingAccess.ANONYMOUS

    if booking.user_id is not None and booking.user_id == requester.id:
        return BookingAccess.BOOKER

    if booking.listing.owner_id == requester.id:
        return BookingAccess.OWNER

    return BookingAccess.UNRELATED


def can_view_booking(booking, requester=None):
    """
    Anonymous callers, the booker and the listing owner may read a booking.
    Any other account may read it only when it is a guest booking.
    """
    access = classify_booking_access(booking, requester)

    if access in (BookingAccess.ANONYMOUS, BookingAccess.BOOKER, BookingAccess.OWNER):
        return True

    return booking.user_id is None


def can_moderate_listings(actor):
    return is_authenticated(actor) and actor.role == Account.Role.ADMIN


def can_mutate_booking(actor, booking):
    return is_authenticated(actor) and booking.listing.owner_id == actor.id


def can_mutate_listing(actor, listing):
    return is_authenticated(actor) and listing.owner_id == actor.id


class IsAdmin(permissions.BasePermission):
    """
    Allows only marketplace admins (role ``admin``).

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsAdmin]
    """

    message = 'You do not have permission to perform this action. Admin privileges required.'

    def has_permission(self, request, view):
        return can_moderate_listings(request.user)


class IsListingOwnerRole(permissions.BasePermission):
    """
    Allows accounts that may create listings: studio owners and admins.
    """

    message = 'Only studio owners can create listings.'

    def has_permission(self, request, view):
        user = request.user
        if not is_authenticated(user):
            return False

        return user.role in (Account.Role.STUDIO_OWNER, Account.Role.ADMIN)


class IsListingOwner(permissions.BasePermission):
    """
    Object-level check: the listing belongs to the requesting account.
    """

    message = 'You do not have permission to modify this listing.'

    def has_permission(self, request, view):
        return is_authenticated(request.user)

    def has_object_permission(self, request, view, obj):
        return can_mutate_listing(request.user, obj)
