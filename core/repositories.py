"""
Data access for the marketplace services.

Every service in ``core`` receives a ``Store`` instead of touching the ORM
directly. Each repository exposes the same four operations:

- get(pk): instance or None
- create(**fields): validated, persisted instance
- update(obj, **fields): persists only the given fields
- query(**filters): list of instances, in the model's default ordering

Tests substitute in-memory repositories with the same interface
(see tests/fakes.py).
"""

from django.core.exceptions import ValidationError
from django.db import transaction

from .models import Account, Booking, Listing, Message


class ModelRepository:
    """Repository backed by a Django model's default manager."""

    model = None
    related = ()

    def get_queryset(self):
        queryset = self.model._default_manager.all()
        if self.related:
            queryset = queryset.select_related(*self.related)
        return queryset

    def get(self, pk):
        if pk is None:
            return None
        try:
            return self.get_queryset().get(pk=pk)
        except (self.model.DoesNotExist, ValueError, ValidationError):
            # Malformed ids resolve to nothing, like unknown ones
            return None

    def create(self, **fields):
        obj = self.model(**fields)
        # Model.save() runs full_clean()
        obj.save()
        return obj

    def update(self, obj, **fields):
        for name, value in fields.items():
            setattr(obj, name, value)

        update_fields = list(fields)
        if hasattr(obj, 'updated_at'):
            update_fields.append('updated_at')

        obj.save(update_fields=update_fields)
        return obj

    def query(self, **filters):
        return list(self.get_queryset().filter(**filters))


class AccountRepository(ModelRepository):
    model = Account


class ListingRepository(ModelRepository):
    model = Listing
    related = ('owner',)


class BookingRepository(ModelRepository):
    model = Booking
    related = ('listing', 'listing__owner', 'user')


class MessageRepository(ModelRepository):
    model = Message
    related = ('sender', 'receiver')


class Store:
    """
    Bundle of repositories handed to the services.

    ``atomic()`` returns a context manager that makes the enclosed writes one
    unit; nested calls create savepoints.
    """

    def __init__(self, accounts, listings, bookings, messages):
        self.accounts = accounts
        self.listings = listings
        self.bookings = bookings
        self.messages = messages

    def atomic(self):
        return transaction.atomic()


def default_store():
    return Store(
        accounts=AccountRepository(),
        listings=ListingRepository(),
        bookings=BookingRepository(),
        messages=MessageRepository(),
    )
