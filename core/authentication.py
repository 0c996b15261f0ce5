"""
JWT authentication for routes that also serve anonymous guests.
"""

import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken

logger = logging.getLogger(__name__)


class OptionalJWTAuthentication(JWTAuthentication):
    """
    Identifies the caller when a valid bearer token is present.

    A missing, malformed or expired token leaves the request anonymous
    instead of failing it with 401.
    """

    def authenticate(self, request):
        try:
            return super().authenticate(request)
        except (InvalidToken, AuthenticationFailed) as e:
            logger.info(f"Ignoring invalid bearer token on optional-auth route: {e}")
            return None
