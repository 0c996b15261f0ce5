"""
Tests for model-level invariants.
"""

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db.models import ProtectedError
from django.test import TestCase
from django.utils import timezone

from core.models import Account, Booking, BookingStatus, Listing, Message, PriceSource, Review, Visibility
from tests.factories import make_account, make_listing


class AccountModelTests(TestCase):

    def test_email_is_stored_lowercase(self):
        account = make_account('Mixed.Case@Example.COM')

        self.assertEqual(account.email, 'mixed.case@example.com')

    def test_default_role_is_client(self):
        account = Account.objects.create_user(username='a@example.com', email='a@example.com', password='x')

        self.assertEqual(account.role, Account.Role.CLIENT)
        self.assertFalse(account.is_admin)

    def test_superuser_is_marketplace_admin(self):
        account = Account.objects.create_superuser('root@example.com', 'root@example.com', 'x')

        self.assertEqual(account.role, Account.Role.ADMIN)
        self.assertTrue(account.is_admin)

    def test_display_name_falls_back_to_email(self):
        self.assertEqual(make_account('olga@example.com', name='Olga').display_name, 'Olga')
        self.assertEqual(make_account('anon@example.com').display_name, 'anon@example.com')


class ListingModelTests(TestCase):

    def setUp(self):
        self.owner = make_account('owner@example.com', role=Account.Role.STUDIO_OWNER)

    def test_defaults(self):
        listing = Listing.objects.create(
            owner=self.owner,
            name='Blue Room',
            description='Live room',
            location='Berlin',
            hourly_rate=Decimal('25.00'),
        )

        self.assertEqual(listing.visibility, Visibility.PENDING)
        self.assertEqual(listing.rating, Decimal('0.00'))
        self.assertEqual(listing.total_reviews, 0)
        self.assertEqual(listing.images, [])

    def test_rate_must_be_positive(self):
        with self.assertRaises(ValidationError) as ctx:
            make_listing(self.owner, hourly_rate='0.00')

        self.assertIn('hourly_rate', ctx.exception.message_dict)

    def test_blank_name_rejected(self):
        with self.assertRaises(ValidationError):
            make_listing(self.owner, name='   ')

    def test_images_must_be_strings(self):
        with self.assertRaises(ValidationError):
            make_listing(self.owner, images=['https://example.com/a.jpg', 42])

    def test_queryset_helpers(self):
        public = make_listing(self.owner)
        pending = make_listing(self.owner, visibility=Visibility.PENDING)

        self.assertEqual(list(Listing.objects.public()), [public])
        self.assertEqual(list(Listing.objects.pending()), [pending])


class BookingModelTests(TestCase):

    def setUp(self):
        self.owner = make_account('owner@example.com', role=Account.Role.STUDIO_OWNER)
        self.client_account = make_account('client@example.com')
        self.listing = make_listing(self.owner)
        self.start = timezone.now() + timedelta(days=1)

    def book(self, **fields):
        values = {
            'listing': self.listing,
            'user': self.client_account,
            'start': self.start,
            'end': self.start + timedelta(hours=1),
            'total_price': Decimal('25.0000'),
        }
        values.update(fields)
        return Booking.objects.create(**values)

    def test_defaults(self):
        booking = self.book()

        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(booking.price_source, PriceSource.COMPUTED)
        self.assertFalse(booking.is_guest_booking)

    def test_empty_window_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.book(end=self.start)

        self.assertIn('end', ctx.exception.message_dict)

    def test_guest_booking_needs_a_name(self):
        with self.assertRaises(ValidationError) as ctx:
            self.book(user=None)

        self.assertIn('guest_name', ctx.exception.message_dict)

        booking = self.book(user=None, guest_name='Gina')
        self.assertTrue(booking.is_guest_booking)

    def test_negative_price_rejected(self):
        with self.assertRaises(ValidationError):
            self.book(total_price=Decimal('-1'))

    def test_active_bookings_protect_listing(self):
        booking = self.book(status=BookingStatus.CONFIRMED)

        with self.assertRaises(ProtectedError):
            self.listing.delete()

        booking.status = BookingStatus.COMPLETED
        booking.save()

        self.listing.delete()
        self.assertFalse(Booking.objects.exists())

    def test_queryset_delete_respects_active_bookings(self):
        self.book(user=None, guest_name='Gina')

        with self.assertRaises(ProtectedError):
            Listing.objects.filter(pk=self.listing.pk).delete()

        self.assertTrue(Listing.objects.filter(pk=self.listing.pk).exists())

    def test_owner_deletion_respects_active_bookings(self):
        self.book(user=None, guest_name='Gina')

        with self.assertRaises(ProtectedError):
            self.owner.delete()

        self.assertTrue(Account.objects.filter(pk=self.owner.pk).exists())
        self.assertTrue(Listing.objects.filter(pk=self.listing.pk).exists())

    def test_owner_deletion_without_active_bookings(self):
        self.book(status=BookingStatus.CANCELLED)

        self.owner.delete()

        self.assertFalse(Listing.objects.exists())
        self.assertFalse(Booking.objects.exists())


class MessageAndReviewModelTests(TestCase):

    def setUp(self):
        self.owner = make_account('owner@example.com', role=Account.Role.STUDIO_OWNER)
        self.client_account = make_account('client@example.com')

    def test_guest_message_needs_a_name(self):
        with self.assertRaises(ValidationError):
            Message.objects.create(receiver=self.owner, content='Hello')

        message = Message.objects.create(receiver=self.owner, guest_name='Gina', content='Hello')
        self.assertIsNone(message.sender)

    def test_blank_content_rejected(self):
        with self.assertRaises(ValidationError):
            Message.objects.create(sender=self.client_account, receiver=self.owner, content='  ')

    def test_review_rating_bounds(self):
        listing = make_listing(self.owner)

        for rating in (0, 6):
            with self.assertRaises(ValidationError):
                Review.objects.create(listing=listing, author=self.client_account, rating=rating)

        self.assertFalse(Review.objects.exists())
