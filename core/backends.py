"""
Authentication backend for email-based login.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

Account = get_user_model()


class EmailBackend(ModelBackend):
    """
    Authenticates an account by email address (case-insensitive) and password.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        email = kwargs.get('email', username)

        if email is None or password is None:
            return None

        try:
            account = Account.objects.get(email__iexact=email.strip())
        except Account.DoesNotExist:
            # Run the default password hasher once to reduce the timing
            # difference between an existing and a nonexistent account
            Account().set_password(password)
            return None

        if account.check_password(password) and self.user_can_authenticate(account):
            return account

        return None
