from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIRequestFactory

from core.authentication import OptionalJWTAuthentication
from core.bookings import PermissiveTransitions, StrictTransitions, transition_policy_from_settings
from core.conf import marketplace_setting
from tests.factories import access_token, make_account


class MarketplaceSettingTests(SimpleTestCase):

    @override_settings(STUDIO_MARKETPLACE={})
    def test_defaults(self):
        self.assertFalse(marketplace_setting('STRICT_BOOKING_TRANSITIONS'))
        self.assertEqual(marketplace_setting('GUEST_PARTICIPANT_NAME'), 'Guest Client')
        self.assertEqual(marketplace_setting('ADMIN_LISTING_VISIBILITY'), 'public')

    @override_settings(STUDIO_MARKETPLACE={'GUEST_PARTICIPANT_NAME': 'Walk-in'})
    def test_override(self):
        self.assertEqual(marketplace_setting('GUEST_PARTICIPANT_NAME'), 'Walk-in')

    def test_unknown_setting(self):
        with self.assertRaises(KeyError):
            marketplace_setting('NOT_A_SETTING')

    @override_settings(STUDIO_MARKETPLACE={'STRICT_BOOKING_TRANSITIONS': True})
    def test_strict_policy_from_settings(self):
        self.assertIsInstance(transition_policy_from_settings(), StrictTransitions)

    @override_settings(STUDIO_MARKETPLACE={'STRICT_BOOKING_TRANSITIONS': False})
    def test_permissive_policy_from_settings(self):
        self.assertIsInstance(transition_policy_from_settings(), PermissiveTransitions)


class OptionalJWTAuthenticationTests(TestCase):

    def setUp(self):
        self.factory = APIRequestFactory()
        self.authentication = OptionalJWTAuthentication()

    def authenticate(self, header=None):
        extra = {'HTTP_AUTHORIZATION': header} if header else {}
        request = self.factory.get('/api/bookings/', **extra)
        return self.authentication.authenticate(request)

    def test_no_header_is_anonymous(self):
        self.assertIsNone(self.authenticate())

    def test_valid_token_identifies_the_account(self):
        account = make_account('client@example.com')

        user, _token = self.authenticate(f'Bearer {access_token(account)}')

        self.assertEqual(user, account)

    def test_invalid_token_is_anonymous(self):
        with self.assertLogs('core.authentication', level='INFO'):
            self.assertIsNone(self.authenticate('Bearer not-a-token'))

    def test_token_of_deleted_account_is_anonymous(self):
        account = make_account('gone@example.com')
        token = access_token(account)
        account.delete()

        self.assertIsNone(self.authenticate(f'Bearer {token}'))
