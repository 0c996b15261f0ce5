"""
Listing visibility control and the listing queries built on it.
"""

import logging

from .exceptions import Forbidden, ListingNotFound, Unauthorized, ValidationFailed
from .models import Visibility
from .permissions import can_moderate_listings, is_authenticated
from .repositories import default_store

logger = logging.getLogger(__name__)


# Reference moderation graph. set_visibility() does not enforce it; moves
# outside it are logged. Returning to PENDING is the admin "reopen review".
TRANSITIONS = {
    Visibility.PENDING: {Visibility.PUBLIC, Visibility.SUSPENDED},
    Visibility.PUBLIC: {Visibility.SUSPENDED, Visibility.PENDING},
    Visibility.SUSPENDED: {Visibility.PENDING},
}


class ListingVisibilityWorkflow:
    """
    Pending / Public / Suspended state of listings.

    Only admins change visibility. Open discovery returns PUBLIC listings
    only; owners see their own listings in every state.
    """

    def __init__(self, store=None):
        self.store = store or default_store()

    def set_visibility(self, listing_id, target, actor):
        if not can_moderate_listings(actor):
            raise Forbidden('Only admins can change listing visibility.')

        if target not in Visibility.values:
            raise ValidationFailed(
                f"Visibility must be one of: {', '.join(Visibility.values)}."
            )

        listing = self.store.listings.get(listing_id)
        if listing is None:
            raise ListingNotFound()

        current = listing.visibility
        if target != current and target not in TRANSITIONS.get(current, ()):
            logger.warning(
                f"Listing visibility moved outside the moderation graph. "
                f"Listing ID: {listing.id}, From: {current}, To: {target}, "
                f"Admin: {actor.email}"
            )

        self.store.listings.update(listing, visibility=target)

        logger.info(
            f"Listing visibility changed. "
            f"Listing ID: {listing.id}, From: {current}, To: {target}, "
            f"Admin: {actor.email}"
        )
        return listing

    def approve(self, listing_id, actor):
        return self.set_visibility(listing_id, Visibility.PUBLIC, actor)

    def reject(self, listing_id, actor):
        return self.set_visibility(listing_id, Visibility.SUSPENDED, actor)

    def suspend(self, listing_id, actor):
        return self.set_visibility(listing_id, Visibility.SUSPENDED, actor)

    def reopen_review(self, listing_id, actor):
        return self.set_visibility(listing_id, Visibility.PENDING, actor)

    def public_listings(self, location=None, name=None, min_price=None, max_price=None):
        """
        Open discovery query.

        ``location`` and ``name`` match case-insensitively on substrings;
        ``min_price``/``max_price`` bound the hourly rate inclusively.
        """
        filters = {'visibility': Visibility.PUBLIC}

        if location:
            filters['location__icontains'] = location
        if name:
            filters['name__icontains'] = name
        if min_price is not None:
            filters['hourly_rate__gte'] = min_price
        if max_price is not None:
            filters['hourly_rate__lte'] = max_price

        return self.store.listings.query(**filters)

    def pending_listings(self, actor):
        if not can_moderate_listings(actor):
            raise Forbidden('Only admins can review pending listings.')

        return self.store.listings.query(visibility=Visibility.PENDING)

    def owned_listings(self, actor):
        if not is_authenticated(actor):
            raise Unauthorized()

        return self.store.listings.query(owner_id=actor.id)

    def public_locations(self):
        """Distinct locations of PUBLIC listings, sorted."""
        locations = {listing.location for listing in self.public_listings() if listing.location}
        return sorted(locations)
