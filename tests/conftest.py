"""Global test configuration and fixtures.

Provides shared fixtures for all test levels: a throwaway SQLite store,
sample users and links, and a scripted geolocation provider.
"""

import asyncio
from datetime import UTC, datetime

import pytest

from shortbot.models import LocationResult, ShortLink, TelegramUser
from shortbot.services.geolocation import GeolocationResolver, LocationCache
from shortbot.services.store import SQLiteLinkStore


class FakeLocationProvider:
    """Location provider returning a fixed answer and counting calls."""

    def __init__(
        self,
        result: LocationResult | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.result = result or LocationResult(city="Berlin", region="Berlin", country="DE")
        self.delay = delay
        self.error = error
        self.calls: list[str] = []

    async def lookup(self, ip: str) -> LocationResult:
        self.calls.append(ip)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fixed_now():
    """Reference time used by relative-time assertions."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def sqlite_store(tmp_path):
    """Fresh SQLite store in a temporary directory."""
    return SQLiteLinkStore(str(tmp_path / "data" / "shortener.db"))


@pytest.fixture
def sample_user():
    return TelegramUser(id=12345, username="test_user", first_name="Test", last_name="User")


@pytest.fixture
def sample_link(sample_user):
    return ShortLink(
        id=1,
        alias="abc123",
        original_url="https://example.com",
        owner_id=sample_user.id,
        created_at=datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC),
    )


@pytest.fixture
def location_provider():
    return FakeLocationProvider()


@pytest.fixture
def location_cache():
    return LocationCache()


@pytest.fixture
def geolocation(location_cache, location_provider):
    return GeolocationResolver(location_cache, location_provider, timeout_seconds=1.0)


@pytest.fixture
def make_location_provider():
    """Factory for scripted location providers."""
    return FakeLocationProvider
