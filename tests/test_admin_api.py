"""
Tests for the administration endpoints.
"""

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from core.models import Account, Booking, BookingStatus, Visibility
from tests.factories import PASSWORD, client_for, make_account, make_listing

ADMIN_URLS = [
    '/api/admin/stats/',
    '/api/admin/listings/',
    '/api/admin/listings/pending/',
    '/api/admin/bookings/',
    '/api/admin/users/',
]


class AdminAPITestCase(TestCase):

    def setUp(self):
        self.admin = make_account('admin@example.com', role=Account.Role.ADMIN)
        self.owner = make_account('owner@example.com', role=Account.Role.STUDIO_OWNER)
        self.client_account = make_account('client@example.com')

        self.public = make_listing(self.owner, name='Blue Room')
        self.pending = make_listing(self.owner, name='New Room', visibility=Visibility.PENDING)
        self.suspended = make_listing(self.owner, name='Old Room', visibility=Visibility.SUSPENDED)

        self.book(self.public, BookingStatus.COMPLETED, '50.0000')
        self.book(self.public, BookingStatus.COMPLETED, '12.5000')
        self.book(self.public, BookingStatus.PENDING, '99.0000')

    def book(self, listing, status_, price):
        start = timezone.now() + timedelta(days=1)
        return Booking.objects.create(
            listing=listing,
            user=self.client_account,
            start=start,
            end=start + timedelta(hours=1),
            status=status_,
            total_price=Decimal(price),
        )


class AdminAccessTests(AdminAPITestCase):

    def test_non_admins_are_refused(self):
        for account in (self.owner, self.client_account):
            for url in ADMIN_URLS:
                response = client_for(account).get(url)
                self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, url)

    def test_anonymous_is_refused(self):
        for url in ADMIN_URLS:
            response = client_for().get(url)
            self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED, url)


class AdminReportTests(AdminAPITestCase):

    def test_stats(self):
        response = client_for(self.admin).get('/api/admin/stats/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data['listings'],
            {'total': 3, 'pending': 1, 'public': 1, 'suspended': 1}
        )
        self.assertEqual(response.data['accounts'], {'total': 3, 'owners': 1, 'clients': 1})
        self.assertEqual(response.data['bookings'], {'total': 3})
        self.assertEqual(Decimal(response.data['revenue']), Decimal('62.5'))
        self.assertEqual(len(response.data['recent_bookings']), 3)

    def test_stats_without_revenue(self):
        Booking.objects.all().delete()

        response = client_for(self.admin).get('/api/admin/stats/')

        self.assertEqual(response.data['revenue'], '0')
        self.assertEqual(response.data['recent_bookings'], [])

    def test_all_listings_with_booking_counts(self):
        response = client_for(self.admin).get('/api/admin/listings/')

        counts = {item['name']: item['booking_count'] for item in response.data}
        self.assertEqual(counts, {'Blue Room': 3, 'New Room': 0, 'Old Room': 0})
        self.assertEqual(response.data[0]['owner_email'], 'owner@example.com')

    def test_pending_queue(self):
        response = client_for(self.admin).get('/api/admin/listings/pending/')

        self.assertEqual([item['name'] for item in response.data], ['New Room'])

    def test_all_bookings(self):
        response = client_for(self.admin).get('/api/admin/bookings/')

        self.assertEqual(len(response.data), 3)


class AdminAccountTests(AdminAPITestCase):

    def test_users_with_counts(self):
        response = client_for(self.admin).get('/api/admin/users/')

        rows = {item['email']: item for item in response.data}
        self.assertEqual(set(rows), {'admin@example.com', 'owner@example.com', 'client@example.com'})
        self.assertEqual(rows['owner@example.com']['listing_count'], 3)
        self.assertEqual(rows['client@example.com']['booking_count'], 3)
        self.assertNotIn('password', rows['admin@example.com'])

    def test_users_filtered_by_role(self):
        response = client_for(self.admin).get('/api/admin/users/', {'role': 'studio_owner'})

        self.assertEqual([item['email'] for item in response.data], ['owner@example.com'])

    def test_admin_creates_another_admin(self):
        response = client_for(self.admin).post(
            '/api/admin/users/',
            {'email': 'second@example.com', 'password': PASSWORD, 'role': 'admin', 'name': 'Second'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'admin')
        created = Account.objects.get(email='second@example.com')
        self.assertTrue(created.check_password(PASSWORD))

    def test_create_with_existing_email(self):
        response = client_for(self.admin).post(
            '/api/admin/users/',
            {'email': 'OWNER@example.com', 'password': PASSWORD},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data['errors'])

    def test_owner_cannot_create_accounts(self):
        response = client_for(self.owner).post(
            '/api/admin/users/',
            {'email': 'sneaky@example.com', 'password': PASSWORD, 'role': 'admin'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Account.objects.filter(email='sneaky@example.com').exists())
