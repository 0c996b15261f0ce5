import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def reset_throttle_cache():
    """Login/refresh throttles keep their counters in the cache."""
    cache.clear()
    yield
    cache.clear()
