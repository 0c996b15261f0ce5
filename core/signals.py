"""
Signal receivers that keep listing ratings in sync with reviews and guard
listings that still have active bookings.

The listing row is locked and the aggregate recomputed from every review on
each change, so concurrent reviews for one listing cannot lose an update.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count, ProtectedError
from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from .models import Listing, Review

logger = logging.getLogger(__name__)


def recalculate_listing_rating(listing_id):
    """
    Recompute ``rating`` and ``total_reviews`` of a listing from its reviews.

    Returns:
        The updated listing, or None if it no longer exists
    """
    with transaction.atomic():
        try:
            listing = Listing.objects.select_for_update().get(pk=listing_id)
        except Listing.DoesNotExist:
            return None

        aggregate = Review.objects.filter(listing_id=listing_id).aggregate(
            avg=Avg('rating'),
            count=Count('id'),
        )

        if aggregate['avg'] is None:
            listing.rating = Decimal('0.00')
        else:
            listing.rating = Decimal(str(aggregate['avg'])).quantize(Decimal('0.01'))
        listing.total_reviews = aggregate['count']

        # Bypass Listing.save() validation; only the denormalized columns change
        Listing.objects.filter(pk=listing_id).update(
            rating=listing.rating,
            total_reviews=listing.total_reviews,
        )

    logger.info(
        f"Recalculated rating for listing {listing_id}: "
        f"rating={listing.rating}, total_reviews={listing.total_reviews}"
    )
    return listing


@receiver(post_save, sender=Review)
def update_rating_on_review_save(sender, instance, created, **kwargs):
    try:
        recalculate_listing_rating(instance.listing_id)
    except Exception as e:
        logger.error(
            f"Error updating rating for review {instance.id}: {e}",
            exc_info=True
        )
        # Re-raise so the review write rolls back with it
        raise


@receiver(post_delete, sender=Review)
def update_rating_on_review_delete(sender, instance, **kwargs):
    try:
        recalculate_listing_rating(instance.listing_id)
    except Exception as e:
        logger.error(
            f"Error updating rating after deleting review {instance.id}: {e}",
            exc_info=True
        )
        raise


@receiver(pre_delete, sender=Listing)
def protect_listing_with_active_bookings(sender, instance, **kwargs):
    """
    Refuse to delete a listing that still has pending or confirmed bookings.

    Runs for instance deletes, queryset deletes and cascades from the owner's
    account alike; the surrounding delete transaction rolls back.
    """
    active = list(instance.active_bookings())
    if active:
        logger.warning(
            f"Refused to delete listing {instance.id}: "
            f"{len(active)} active booking(s)"
        )
        raise ProtectedError(
            'Cannot delete a listing with pending or confirmed bookings.',
            set(active)
        )
