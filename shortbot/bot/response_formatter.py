"""Response formatting for bot messages.

Turns short links, bulk results and link statistics into Telegram HTML
messages. Every user-supplied value is HTML-escaped.
"""

import logging
from datetime import datetime
from html import escape

from telegram.constants import MessageLimit

from ..config import RedirectConfig, StatsConfig, config
from ..models import LinkStatistics, ShortLink
from ..services.shortener import BulkResult
from ..services.statistics import format_time_ago
from .messages import (
    BULK_HEADER,
    BULK_ITEM_FAILED,
    BULK_ITEM_OK,
    BULK_SUMMARY,
    SHORTENED_MESSAGE,
    STATS_NEVER,
    STATS_NO_CLICKS,
    STATS_TITLE,
    URLS_EMPTY,
    URLS_MORE,
    URLS_TITLE,
)

logger = logging.getLogger(__name__)

ORIGINAL_URL_PREVIEW = 50


def _format_timestamp(value: datetime | None) -> str:
    if value is None:
        return STATS_NEVER
    return value.strftime("%Y-%m-%d %H:%M UTC")


def _by_count(counts: dict[str, int]) -> list[tuple[str, int]]:
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def _truncate(text: str, limit: int = ORIGINAL_URL_PREVIEW) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def split_message(text: str, limit: int = MessageLimit.MAX_TEXT_LENGTH) -> list[str]:
    """Split a message into chunks Telegram accepts.

    Splits on line boundaries so HTML tags, which never span lines in our
    templates, stay balanced. A single line longer than ``limit`` is cut.

    Args:
        text: Full message text.
        limit: Maximum chunk length.

    Returns:
        Non-empty list of chunks, each at most ``limit`` characters.
    """
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]

        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate

    if current or not chunks:
        chunks.append(current)
    return chunks


class ResponseFormatter:
    """Formats bot responses for created links, statistics and link lists."""

    def __init__(
        self,
        redirect_config: RedirectConfig | None = None,
        stats_config: StatsConfig | None = None,
    ):
        """Initialize response formatter.

        Args:
            redirect_config: Domain settings for building short URLs.
            stats_config: Report settings (top locations, listed links).
        """
        self.redirect = redirect_config or config.redirect
        self.stats = stats_config or config.stats

    def short_url(self, alias: str) -> str:
        return self.redirect.short_url(alias)

    def format_shortened(self, link: ShortLink) -> str:
        return SHORTENED_MESSAGE.format(
            original_url=escape(link.original_url),
            short_url=escape(self.redirect.display_url(link.alias)),
            alias=escape(link.alias),
        )

    def format_bulk(self, result: BulkResult) -> str:
        lines = [BULK_HEADER]
        for link in result.created:
            lines.append(
                BULK_ITEM_OK.format(
                    url=escape(_truncate(link.original_url)),
                    short_url=escape(self.redirect.display_url(link.alias)),
                )
            )
        for url in result.failed:
            lines.append(BULK_ITEM_FAILED.format(url=escape(_truncate(url))))
        lines.append("")
        lines.append(BULK_SUMMARY.format(created=len(result.created), total=result.total))
        return "\n".join(lines)

    def _format_distribution(self, stats: LinkStatistics, items: list[tuple[str, int]]) -> str:
        return "\n".join(
            f"   • {escape(name)}: {count} ({stats.share(count)}%)" for name, count in items
        )

    def format_statistics(self, stats: LinkStatistics) -> str:
        """Format a full statistics report for one link.

        Args:
            stats: Aggregated link statistics.

        Returns:
            HTML message with totals, distributions and recent activity.
        """
        lines = [
            STATS_TITLE,
            "",
            f"🔗 <b>Short URL:</b> <code>{escape(self.redirect.display_url(stats.alias))}</code>",
            f"🎯 <b>Original URL:</b> {escape(_truncate(stats.original_url))}",
            "",
            "📈 <b>Clicks:</b>",
            f"   • Total: {stats.total_clicks}",
            f"   • Unique: {stats.unique_clicks}",
        ]

        if stats.total_clicks == 0:
            lines += ["", STATS_NO_CLICKS]
        else:
            lines += [
                "",
                "🌐 <b>Browsers:</b>",
                self._format_distribution(stats, _by_count(stats.browsers)),
                "",
                "📱 <b>Devices:</b>",
                self._format_distribution(stats, _by_count(stats.devices)),
                "",
                "📍 <b>Top Locations:</b>",
                self._format_distribution(stats, stats.top_locations(self.stats.top_locations)),
                "",
                "🕒 <b>Recent Clicks:</b>",
                "\n".join(
                    f"   • {escape(click.location)} • {escape(click.browser)} • "
                    f"{escape(click.device)} • {click.time_ago}"
                    for click in stats.recent_clicks
                ),
            ]

        lines += [
            "",
            f"⏰ <b>Last Clicked:</b> {_format_timestamp(stats.last_clicked)}",
            f"🗓 <b>Created:</b> {_format_timestamp(stats.created)}",
        ]
        return "\n".join(lines)

    def build_url_list(
        self, links: list[ShortLink], now: datetime | None = None
    ) -> tuple[str, list[ShortLink]]:
        """Format the newest of a user's links as one message.

        At most ``url_list_limit`` links are listed and the text never exceeds
        Telegram's message length; the remainder is summarized in a footer.

        Args:
            links: The user's links, newest first.
            now: Reference time for relative timestamps.

        Returns:
            Tuple of message text and the links actually listed.
        """
        if not links:
            return URLS_EMPTY, []

        limit = MessageLimit.MAX_TEXT_LENGTH
        candidates = links[: max(self.stats.url_list_limit, 1)]
        text = URLS_TITLE
        shown: list[ShortLink] = []

        for index, link in enumerate(candidates, start=1):
            entry = (
                f"{index}. <code>{escape(self.redirect.display_url(link.alias))}</code>\n"
                f"   • Original: {escape(_truncate(link.original_url))}\n"
                f"   • Clicks: {link.clicks}\n"
                f"   • Created: {format_time_ago(link.created_at, now)}"
            )
            hidden = len(links) - len(shown) - 1
            footer = f"\n\n{URLS_MORE.format(hidden=hidden)}" if hidden else ""
            if len(text) + 2 + len(entry) + len(footer) > limit:
                break
            text = f"{text}\n\n{entry}"
            shown.append(link)

        hidden = len(links) - len(shown)
        if hidden:
            text = f"{text}\n\n{URLS_MORE.format(hidden=hidden)}"
        return text, shown

    def format_url_list(self, links: list[ShortLink], now: datetime | None = None) -> str:
        """Format a user's links, newest first."""
        return self.build_url_list(links, now)[0]


# Global formatter instance
response_formatter = ResponseFormatter()
