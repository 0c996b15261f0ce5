"""
Tests for reviews and the listing rating they maintain.
"""

from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from core.models import Account, Review
from tests.factories import client_for, make_account, make_listing


class ReviewAPITests(TestCase):

    def setUp(self):
        self.owner = make_account('owner@example.com', role=Account.Role.STUDIO_OWNER)
        self.alice = make_account('alice@example.com', name='Alice')
        self.bob = make_account('bob@example.com', name='Bob')
        self.listing = make_listing(self.owner)
        self.other_listing = make_listing(self.owner, name='Green Room')

    def review(self, account, rating, listing=None, comment=''):
        listing = listing or self.listing
        return client_for(account).post(
            '/api/reviews/',
            {'listing_id': str(listing.id), 'rating': rating, 'comment': comment},
            format='json'
        )

    def test_create_review_updates_listing_rating(self):
        response = self.review(self.alice, 5, comment='Great sound')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['author']['name'], 'Alice')
        self.assertEqual(response.data['listing_id'], str(self.listing.id))

        self.review(self.bob, 4)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.rating, Decimal('4.50'))
        self.assertEqual(self.listing.total_reviews, 2)

    def test_rating_rounds_to_two_places(self):
        for account, rating in ((self.alice, 5), (self.bob, 4), (self.owner, 4)):
            self.review(account, rating)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.rating, Decimal('4.33'))

    def test_deleting_a_review_recalculates(self):
        self.review(self.alice, 5)
        self.review(self.bob, 1)

        Review.objects.get(author=self.bob).delete()

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.rating, Decimal('5.00'))
        self.assertEqual(self.listing.total_reviews, 1)

    def test_rating_out_of_range(self):
        for rating in (0, 6):
            response = self.review(self.alice, rating)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn('rating', response.data['errors'])

        self.assertFalse(Review.objects.exists())

    def test_unknown_listing(self):
        response = client_for(self.alice).post(
            '/api/reviews/',
            {'listing_id': '00000000-0000-0000-0000-000000000000', 'rating': 4},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        response = self.review(None, 4)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_reviews_for_a_listing(self):
        self.review(self.alice, 5)
        self.review(self.bob, 3)
        self.review(self.alice, 2, listing=self.other_listing)

        response = client_for().get('/api/reviews/', {'listing': str(self.listing.id)})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['rating'] for item in response.data], [3, 5])

    def test_list_all_reviews(self):
        self.review(self.alice, 5)
        self.review(self.alice, 2, listing=self.other_listing)

        response = client_for().get('/api/reviews/')

        self.assertEqual(len(response.data), 2)
