"""Supabase (PostgREST) link store.

Talks to a hosted Supabase project over its REST interface with aiohttp.
Uses the ``tg_users``, ``tg_shortened_urls`` and ``tg_click_events`` tables.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from ..errors import AliasTakenError, StoreError
from ..models import ClickEvent, ShortLink, TelegramUser
from .store import to_db_timestamp

logger = logging.getLogger(__name__)

LINKS_TABLE = "tg_shortened_urls"
CLICKS_TABLE = "tg_click_events"
USERS_TABLE = "tg_users"


class SupabaseLinkStore:
    """Link store backed by the Supabase REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 10.0,
    ):
        """Initialize Supabase store.

        Args:
            base_url: Supabase project URL.
            api_key: Supabase API key (service role key for statistics reads).
            session: Optional shared HTTP session, created lazily if omitted.
            timeout: Total timeout for a single REST call in seconds.
        """
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> tuple[int, Any, Mapping[str, str]]:
        """Perform a REST call and return status, decoded body and headers.

        Raises:
            StoreError: On network failure or an unexpected status code.
        """
        headers = self._headers
        if prefer:
            headers["Prefer"] = prefer

        url = f"{self.rest_url}/{table}"
        try:
            async with self._get_session().request(
                method, url, params=params, json=payload, headers=headers
            ) as response:
                if response.status == 409 and method == "POST" and table == LINKS_TABLE:
                    return response.status, None, response.headers
                if response.status >= 400:
                    error_text = await response.text()
                    logger.error(f"Supabase {method} {table} failed: {response.status} - {error_text}")
                    raise StoreError(f"Supabase returned {response.status} for {method} {table}")

                body = None
                if response.status != 204 and method != "HEAD":
                    body = await response.json(content_type=None)
                return response.status, body, response.headers

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Supabase {method} {table} unreachable: {e}")
            raise StoreError(str(e)) from e

    @staticmethod
    def _to_link(row: dict[str, Any]) -> ShortLink:
        return ShortLink(
            id=row["id"],
            alias=row["short_alias"],
            original_url=row["original_url"],
            owner_id=row["user_id"],
            created_at=row["created_at"],
            clicks=row.get("clicks") or 0,
            last_clicked=row.get("last_clicked"),
        )

    @staticmethod
    def _to_click(row: dict[str, Any]) -> ClickEvent:
        return ClickEvent(
            id=row.get("id"),
            link_id=row["url_id"],
            ip_address=row.get("ip_address") or "Unknown",
            user_agent=row.get("user_agent") or "",
            device=row.get("device_type") or "Unknown",
            location=row.get("location") or "Unknown",
            clicked_at=row["created_at"],
        )

    async def get_link(self, alias: str) -> ShortLink | None:
        _, rows, _ = await self._request(
            "GET", LINKS_TABLE, params={"short_alias": f"eq.{alias}", "select": "*"}
        )
        if not rows:
            return None
        return self._to_link(rows[0])

    async def alias_exists(self, alias: str) -> bool:
        _, rows, _ = await self._request(
            "GET", LINKS_TABLE, params={"short_alias": f"eq.{alias}", "select": "id"}
        )
        return bool(rows)

    async def create_link(self, link: ShortLink) -> ShortLink:
        status, rows, _ = await self._request(
            "POST",
            LINKS_TABLE,
            payload={
                "user_id": link.owner_id,
                "original_url": link.original_url,
                "short_alias": link.alias,
                "created_at": to_db_timestamp(link.created_at),
                "clicks": link.clicks,
                "last_clicked": None,
            },
            prefer="return=representation",
        )
        if status == 409:
            raise AliasTakenError(link.alias)

        created = self._to_link(rows[0])
        logger.info(f"Created short link {created.alias} for user {created.owner_id}")
        return created

    async def _count_clicks(self, link_id: int) -> int:
        _, _, headers = await self._request(
            "HEAD",
            CLICKS_TABLE,
            params={"url_id": f"eq.{link_id}", "select": "id"},
            prefer="count=exact",
        )
        # Content-Range looks like "0-24/25" or "*/0"
        content_range = headers.get("Content-Range", "*/0")
        total = content_range.rsplit("/", 1)[-1]
        return int(total) if total.isdigit() else 0

    async def record_click(self, event: ClickEvent) -> ClickEvent:
        clicked_at = to_db_timestamp(event.clicked_at)
        _, rows, _ = await self._request(
            "POST",
            CLICKS_TABLE,
            payload={
                "url_id": event.link_id,
                "ip_address": event.ip_address,
                "user_agent": event.user_agent,
                "device_type": event.device,
                "location": event.location,
                "created_at": clicked_at,
            },
            prefer="return=representation",
        )

        # Counter is rewritten from the event rows, never incremented in place.
        clicks = await self._count_clicks(event.link_id)
        await self._request(
            "PATCH",
            LINKS_TABLE,
            params={"id": f"eq.{event.link_id}"},
            payload={"clicks": clicks, "last_clicked": clicked_at},
            prefer="return=minimal",
        )

        return self._to_click(rows[0]) if rows else event

    async def list_clicks(self, link_id: int) -> list[ClickEvent]:
        _, rows, _ = await self._request(
            "GET",
            CLICKS_TABLE,
            params={"url_id": f"eq.{link_id}", "select": "*", "order": "created_at.desc"},
        )
        return [self._to_click(row) for row in rows or []]

    async def list_links(self, owner_id: int) -> list[ShortLink]:
        _, rows, _ = await self._request(
            "GET",
            LINKS_TABLE,
            params={"user_id": f"eq.{owner_id}", "select": "*", "order": "created_at.desc"},
        )
        return [self._to_link(row) for row in rows or []]

    async def ensure_user(self, user: TelegramUser) -> None:
        await self._request(
            "POST",
            USERS_TABLE,
            payload={
                "id": user.id,
                "username": user.username,
                "first_name": user.first_name,
                "last_name": user.last_name,
            },
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def close(self) -> None:
        """Close the owned HTTP session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            logger.info("Supabase session closed")
