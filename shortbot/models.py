"""Data models for the short link bot application.

Defines Pydantic models for all data structures used throughout the
application including short links, click events, geolocation lookups, the
request context captured on redirect, and derived link statistics.
"""

from collections.abc import Mapping
from datetime import UTC, datetime

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class TelegramUser(BaseModel):
    """Telegram account that owns short links.

    Attributes:
        id: Telegram user ID.
        username: Telegram username (if available).
        first_name: First name from the Telegram profile.
        last_name: Last name from the Telegram profile.
    """

    id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class ShortLink(BaseModel):
    """Mapping of a short alias to its original URL.

    The ``clicks`` counter is a display cache of the number of click events
    stored for the link; the store rewrites it from the event count whenever a
    click is recorded.

    Attributes:
        id: Store-assigned identifier, None until persisted.
        alias: Unique, case-preserving short alias.
        original_url: Target URL the alias redirects to.
        owner_id: Telegram user ID of the creator.
        created_at: When the link was created.
        clicks: Number of recorded clicks.
        last_clicked: Time of the most recent click, None if never clicked.
    """

    id: int | None = None
    alias: str
    original_url: str
    owner_id: int
    created_at: datetime = Field(default_factory=utc_now)
    clicks: int = 0
    last_clicked: datetime | None = None


class ClickEvent(BaseModel):
    """Single recorded visit to a short link.

    Attributes:
        id: Store-assigned identifier, None until persisted.
        link_id: Identifier of the visited ShortLink.
        ip_address: Best-effort client IP, "Unknown" if unavailable.
        user_agent: Raw User-Agent header, empty if absent.
        device: Derived device category (Desktop, Mobile, Tablet, Bot, Unknown).
        location: Derived "City, Region, Country" string.
        clicked_at: When the redirect was served.
    """

    id: int | None = None
    link_id: int
    ip_address: str = "Unknown"
    user_agent: str = ""
    device: str = "Unknown"
    location: str = "Unknown"
    clicked_at: datetime = Field(default_factory=utc_now)


class LocationResult(BaseModel):
    """Raw answer from the IP geolocation service.

    Attributes:
        city: City name (if resolved).
        region: Region or state name (if resolved).
        country: Country code or name (if resolved).
    """

    city: str | None = None
    region: str | None = None
    country: str | None = None

    def display_name(self) -> str:
        """Join the non-empty parts as "City, Region, Country".

        Returns:
            Location string, empty if nothing was resolved.
        """
        parts = [part.strip() for part in (self.city, self.region, self.country) if part]
        return ", ".join(part for part in parts if part)


class RequestContext(BaseModel):
    """Network details of an inbound redirect request.

    Attributes:
        headers: Request headers; lookups are case-insensitive.
        remote: Raw peer address of the connection.
    """

    headers: dict[str, str] = Field(default_factory=dict)
    remote: str | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str], remote: str | None) -> "RequestContext":
        """Build a context with lower-cased header names.

        Repeated headers, such as X-Forwarded-For added by several proxies,
        are joined with ", " in arrival order.
        """
        merged: dict[str, str] = {}
        for key, value in headers.items():
            key = key.lower()
            merged[key] = f"{merged[key]}, {value}" if key in merged else value
        return cls(headers=merged, remote=remote)

    def header(self, name: str) -> str | None:
        """Return header value by case-insensitive name."""
        return self.headers.get(name.lower())

    @property
    def user_agent(self) -> str:
        return self.header("user-agent") or ""


class RecentClick(BaseModel):
    """Condensed click entry shown in the recent-activity feed."""

    location: str
    device: str
    browser: str
    time_ago: str


class LinkStatistics(BaseModel):
    """Analytics computed from the click events of one short link.

    Attributes:
        alias: Short alias the statistics belong to.
        original_url: Target URL of the link.
        total_clicks: Number of click events.
        unique_clicks: Number of distinct client IPs.
        devices: Click count per device category.
        browsers: Click count per browser family.
        locations: Click count per location string.
        recent_clicks: Most recent clicks, newest first.
        last_clicked: Timestamp of the newest click, None if never clicked.
        created: When the link was created.
    """

    alias: str
    original_url: str
    total_clicks: int = 0
    unique_clicks: int = 0
    devices: dict[str, int] = Field(default_factory=dict)
    browsers: dict[str, int] = Field(default_factory=dict)
    locations: dict[str, int] = Field(default_factory=dict)
    recent_clicks: list[RecentClick] = Field(default_factory=list)
    last_clicked: datetime | None = None
    created: datetime

    def top_locations(self, limit: int) -> list[tuple[str, int]]:
        """Locations ordered by click count, most frequent first."""
        return sorted(self.locations.items(), key=lambda item: item[1], reverse=True)[:limit]

    def share(self, count: int) -> int:
        """Percentage of total clicks, rounded to an integer."""
        if self.total_clicks == 0:
            return 0
        return round(count / self.total_clicks * 100)
