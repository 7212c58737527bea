"""
Shared fixtures for the watchlist tests.
"""

import pytest

from coinwatch.config import Settings
from coinwatch.rate_limit import RateLimiter
from coinwatch.service import WatchlistService
from coinwatch.watchlist_storage import WatchlistStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def settings():
    """Development settings with generous limits and no background jobs."""
    return Settings(
        rate_limit_read=10_000,
        rate_limit_write=10_000,
        rate_limit_cleanup_seconds=0,
    )


@pytest.fixture
def store():
    """Fresh, empty store."""
    return WatchlistStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


@pytest.fixture
def service(store, limiter, settings):
    return WatchlistService(store, limiter, settings)
