"""
Access to the ``STUDIO_MARKETPLACE`` settings dictionary with defaults.
"""

from django.conf import settings

DEFAULTS = {
    'STRICT_BOOKING_TRANSITIONS': False,
    'GUEST_PARTICIPANT_NAME': 'Guest Client',
    'ADMIN_LISTING_VISIBILITY': 'public',
}


def marketplace_setting(name):
    """
    Return a marketplace setting, falling back to the packaged default.

    Read on every call so ``override_settings`` in tests takes effect.
    """
    if name not in DEFAULTS:
        raise KeyError(f'Unknown marketplace setting: {name}')
    return getattr(settings, 'STUDIO_MARKETPLACE', {}).get(name, DEFAULTS[name])
