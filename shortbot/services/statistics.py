"""Statistics aggregation over stored click events.

Click events are the source of truth: totals are computed from the event rows
rather than from the link's denormalized ``clicks`` counter.
"""

import logging
from collections import Counter
from datetime import UTC, datetime

from ..errors import StoreError
from ..models import ClickEvent, LinkStatistics, RecentClick, ShortLink
from .device import classify_browser
from .resolver import AliasResolver
from .store import LinkStore

logger = logging.getLogger(__name__)

# Seconds per unit, largest first.
TIME_UNITS: tuple[tuple[str, int], ...] = (
    ("year", 31_536_000),
    ("month", 2_592_000),
    ("week", 604_800),
    ("day", 86_400),
    ("hour", 3_600),
    ("minute", 60),
)


def format_time_ago(timestamp: datetime, now: datetime | None = None) -> str:
    """Format a timestamp relative to now, e.g. "3 hours ago".

    Naive datetimes are treated as UTC. Anything under a minute, including
    timestamps in the future, is "just now".

    Args:
        timestamp: Moment to describe.
        now: Reference time, defaults to the current UTC time.

    Returns:
        Relative time string.
    """
    if now is None:
        now = datetime.now(UTC)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    elapsed = int((now - timestamp).total_seconds())

    for unit, seconds in TIME_UNITS:
        count = elapsed // seconds
        if count >= 1:
            return f"{count} {unit}{'' if count == 1 else 's'} ago"

    return "just now"


class StatisticsAggregator:
    """Builds per-alias analytics reports from click events."""

    def __init__(self, store: LinkStore, resolver: AliasResolver, recent_limit: int = 5):
        """Initialize statistics aggregator.

        Args:
            store: Link store to read click events from.
            resolver: Alias resolver used to fetch the link first.
            recent_limit: Number of clicks in the recent-activity feed.
        """
        self.store = store
        self.resolver = resolver
        self.recent_limit = recent_limit

    async def get_stats(self, alias: str, now: datetime | None = None) -> LinkStatistics:
        """Compute statistics for a short link.

        Args:
            alias: Short alias to report on.
            now: Reference time for relative timestamps.

        Returns:
            LinkStatistics for the alias.

        Raises:
            LinkNotFoundError: If the alias does not exist.
            StoreError: If the store could not be queried.
        """
        link = await self.resolver.resolve(alias)
        if link.id is None:
            raise StoreError(f"Stored link {alias} has no id")
        events = await self.store.list_clicks(link.id)
        stats = self.aggregate(link, events, now=now)

        if stats.total_clicks != link.clicks:
            logger.warning(
                f"Click counter drift for {alias}: counter={link.clicks} events={stats.total_clicks}"
            )

        return stats

    def aggregate(
        self, link: ShortLink, events: list[ClickEvent], now: datetime | None = None
    ) -> LinkStatistics:
        """Aggregate click events of one link.

        Args:
            link: The short link the events belong to.
            events: Click events, newest first.
            now: Reference time for relative timestamps.

        Returns:
            Derived statistics.
        """
        devices: Counter[str] = Counter()
        browsers: Counter[str] = Counter()
        locations: Counter[str] = Counter()
        unique_ips: set[str] = set()

        for event in events:
            devices[event.device] += 1
            browsers[classify_browser(event.user_agent)] += 1
            locations[event.location] += 1
            unique_ips.add(event.ip_address)

        recent_clicks = [
            RecentClick(
                location=event.location,
                device=event.device,
                browser=classify_browser(event.user_agent),
                time_ago=format_time_ago(event.clicked_at, now),
            )
            for event in events[: self.recent_limit]
        ]

        return LinkStatistics(
            alias=link.alias,
            original_url=link.original_url,
            total_clicks=len(events),
            unique_clicks=len(unique_ips),
            devices=dict(devices),
            browsers=dict(browsers),
            locations=dict(locations),
            recent_clicks=recent_clicks,
            last_clicked=events[0].clicked_at if events else None,
            created=link.created_at,
        )

    async def list_links(self, owner_id: int) -> list[ShortLink]:
        """List a user's short links, newest first."""
        return await self.store.list_links(owner_id)
