"""Tests for statistics aggregation and relative time formatting."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from shortbot.errors import LinkNotFoundError, StoreError
from shortbot.models import ClickEvent
from shortbot.services.device import classify_device
from shortbot.services.resolver import AliasResolver
from shortbot.services.statistics import StatisticsAggregator, format_time_ago

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_SAFARI = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


class TestFormatTimeAgo:
    """Relative time boundaries."""

    @pytest.mark.parametrize(
        "elapsed,expected",
        [
            (0, "just now"),
            (59, "just now"),
            (60, "1 minute ago"),
            (119, "1 minute ago"),
            (120, "2 minutes ago"),
            (3_599, "59 minutes ago"),
            (3_600, "1 hour ago"),
            (86_399, "23 hours ago"),
            (86_400, "1 day ago"),
            (604_800, "1 week ago"),
            (2_592_000, "1 month ago"),
            (31_536_000, "1 year ago"),
            (3 * 31_536_000, "3 years ago"),
        ],
    )
    def test_boundaries(self, fixed_now, elapsed, expected):
        assert format_time_ago(fixed_now - timedelta(seconds=elapsed), fixed_now) == expected

    def test_future_timestamp_is_just_now(self, fixed_now):
        assert format_time_ago(fixed_now + timedelta(hours=2), fixed_now) == "just now"

    def test_naive_timestamp_treated_as_utc(self, fixed_now):
        naive = (fixed_now - timedelta(minutes=5)).replace(tzinfo=None)
        assert format_time_ago(naive, fixed_now) == "5 minutes ago"


def _event(link_id, ip, user_agent, location, clicked_at):
    return ClickEvent(
        link_id=link_id,
        ip_address=ip,
        user_agent=user_agent,
        device=classify_device(user_agent),
        location=location,
        clicked_at=clicked_at,
    )


@pytest.fixture
def three_events(sample_link, fixed_now):
    """Three clicks from two IPs, newest first."""
    return [
        _event(1, "203.0.113.7", IPHONE_SAFARI, "Berlin, Berlin, DE", fixed_now - timedelta(minutes=1)),
        _event(1, "198.51.100.1", CHROME_WINDOWS, "Paris, Ile-de-France, FR", fixed_now - timedelta(hours=2)),
        _event(1, "203.0.113.7", CHROME_WINDOWS, "Berlin, Berlin, DE", fixed_now - timedelta(days=3)),
    ]


@pytest.fixture
def aggregator_store(sample_link, three_events):
    store = AsyncMock()
    store.get_link.return_value = sample_link.model_copy(update={"clicks": 3})
    store.list_clicks.return_value = three_events
    return store


class TestStatisticsAggregator:
    """Per-alias statistics derived from click events."""

    @pytest.mark.asyncio
    async def test_three_events_two_ips(self, aggregator_store, fixed_now):
        aggregator = StatisticsAggregator(aggregator_store, AliasResolver(aggregator_store))

        stats = await aggregator.get_stats("abc123", now=fixed_now)

        assert stats.total_clicks == 3
        assert stats.unique_clicks == 2
        assert sum(stats.devices.values()) == 3
        assert sum(stats.browsers.values()) == 3
        assert sum(stats.locations.values()) == 3
        assert stats.devices == {"Mobile": 1, "Desktop": 2}
        assert stats.browsers == {"Safari": 1, "Chrome": 2}
        assert stats.locations == {"Berlin, Berlin, DE": 2, "Paris, Ile-de-France, FR": 1}
        aggregator_store.list_clicks.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_recent_clicks_and_timestamps(self, aggregator_store, sample_link, three_events, fixed_now):
        aggregator = StatisticsAggregator(aggregator_store, AliasResolver(aggregator_store), recent_limit=2)

        stats = await aggregator.get_stats("abc123", now=fixed_now)

        assert len(stats.recent_clicks) == 2
        newest = stats.recent_clicks[0]
        assert newest.location == "Berlin, Berlin, DE"
        assert newest.device == "Mobile"
        assert newest.browser == "Safari"
        assert newest.time_ago == "1 minute ago"
        assert stats.recent_clicks[1].time_ago == "2 hours ago"
        assert stats.last_clicked == three_events[0].clicked_at
        assert stats.created == sample_link.created_at

    @pytest.mark.asyncio
    async def test_no_clicks(self, sample_link):
        store = AsyncMock()
        store.get_link.return_value = sample_link
        store.list_clicks.return_value = []
        aggregator = StatisticsAggregator(store, AliasResolver(store))

        stats = await aggregator.get_stats("abc123")

        assert stats.total_clicks == 0
        assert stats.unique_clicks == 0
        assert stats.recent_clicks == []
        assert stats.last_clicked is None
        assert stats.share(0) == 0

    @pytest.mark.asyncio
    async def test_unknown_alias(self):
        store = AsyncMock()
        store.get_link.return_value = None
        aggregator = StatisticsAggregator(store, AliasResolver(store))

        with pytest.raises(LinkNotFoundError):
            await aggregator.get_stats("missing")
        store.list_clicks.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, sample_link):
        store = AsyncMock()
        store.get_link.return_value = sample_link
        store.list_clicks.side_effect = StoreError("database is locked")
        aggregator = StatisticsAggregator(store, AliasResolver(store))

        with pytest.raises(StoreError):
            await aggregator.get_stats("abc123")

    @pytest.mark.asyncio
    async def test_totals_come_from_events_not_counter(self, aggregator_store, sample_link, fixed_now):
        aggregator_store.get_link.return_value = sample_link.model_copy(update={"clicks": 10})
        aggregator = StatisticsAggregator(aggregator_store, AliasResolver(aggregator_store))

        stats = await aggregator.get_stats("abc123", now=fixed_now)

        assert stats.total_clicks == 3

    def test_share_and_top_locations(self, sample_link, three_events, fixed_now):
        aggregator = StatisticsAggregator(AsyncMock(), AliasResolver(AsyncMock()))

        stats = aggregator.aggregate(sample_link, three_events, now=fixed_now)

        assert stats.share(2) == 67
        assert stats.top_locations(1) == [("Berlin, Berlin, DE", 2)]


class TestAliasResolver:
    """Exact alias lookups."""

    @pytest.mark.asyncio
    async def test_case_mismatch_is_not_found(self, sample_link):
        store = AsyncMock()
        store.get_link.return_value = sample_link
        resolver = AliasResolver(store)

        with pytest.raises(LinkNotFoundError):
            await resolver.resolve("ABC123")

    @pytest.mark.asyncio
    async def test_store_error_is_distinct_from_not_found(self):
        store = AsyncMock()
        store.get_link.side_effect = StoreError("connection refused")
        resolver = AliasResolver(store)

        with pytest.raises(StoreError):
            await resolver.resolve("abc123")
