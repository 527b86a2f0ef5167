"""Persistent storage for short links and click events.

Defines the ``LinkStore`` protocol the rest of the application depends on and
the default SQLite implementation. Every backend failure is reported as
``StoreError`` so callers can tell an outage apart from a missing alias.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from ..errors import AliasTakenError, StoreError
from ..models import ClickEvent, ShortLink, TelegramUser

logger = logging.getLogger(__name__)


def to_db_timestamp(value: datetime) -> str:
    """Serialize a datetime as a sortable UTC ISO-8601 string.

    Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class LinkStore(Protocol):
    """Interface implemented by every persistent store backend."""

    async def get_link(self, alias: str) -> ShortLink | None:
        """Fetch a short link by exact alias, None if absent."""
        ...

    async def alias_exists(self, alias: str) -> bool:
        """Check whether an alias is already taken."""
        ...

    async def create_link(self, link: ShortLink) -> ShortLink:
        """Insert a new short link.

        Raises:
            AliasTakenError: If the alias already exists.
        """
        ...

    async def record_click(self, event: ClickEvent) -> ClickEvent:
        """Insert a click event and refresh the link's click counters."""
        ...

    async def list_clicks(self, link_id: int) -> list[ClickEvent]:
        """List click events of a link, newest first."""
        ...

    async def list_links(self, owner_id: int) -> list[ShortLink]:
        """List links created by a user, newest first."""
        ...

    async def ensure_user(self, user: TelegramUser) -> None:
        """Create or refresh the owner record of a Telegram user."""
        ...


class SQLiteLinkStore:
    """SQLite-backed link store.

    Blocking sqlite3 calls run in a worker thread so the event loop serving
    redirects is never stalled. Each call opens its own connection.

    Attributes:
        db_path: Path to SQLite database file.
    """

    def __init__(self, db_path: str = "data/shortener.db"):
        """Initialize store and create the schema if needed.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = db_path

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()
        logger.info(f"Link store initialized with database: {db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Create users, links and click events tables if they don't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY,
                    username TEXT,
                    first_name TEXT,
                    last_name TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS links (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    alias TEXT NOT NULL UNIQUE,
                    original_url TEXT NOT NULL,
                    owner_id INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    clicks INTEGER NOT NULL DEFAULT 0,
                    last_clicked TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS click_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    link_id INTEGER NOT NULL REFERENCES links(id),
                    ip_address TEXT NOT NULL,
                    user_agent TEXT NOT NULL,
                    device TEXT NOT NULL,
                    location TEXT NOT NULL,
                    clicked_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_links_owner
                ON links(owner_id)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_click_events_link
                ON click_events(link_id, clicked_at)
            """)

    async def _run(self, func: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except AliasTakenError:
            raise
        except sqlite3.Error as e:
            logger.error(f"SQLite store failure in {func.__name__}: {e}")
            raise StoreError(str(e)) from e

    @staticmethod
    def _row_to_link(row: sqlite3.Row) -> ShortLink:
        return ShortLink(**dict(row))

    def _get_link(self, alias: str) -> ShortLink | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM links WHERE alias = ?", (alias,)
            ).fetchone()
        return self._row_to_link(row) if row else None

    async def get_link(self, alias: str) -> ShortLink | None:
        return await self._run(self._get_link, alias)

    async def alias_exists(self, alias: str) -> bool:
        return await self.get_link(alias) is not None

    def _create_link(self, link: ShortLink) -> ShortLink:
        try:
            with self._connect() as conn:
                cursor = conn.execute("""
                    INSERT INTO links (alias, original_url, owner_id, created_at, clicks, last_clicked)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    link.alias,
                    link.original_url,
                    link.owner_id,
                    to_db_timestamp(link.created_at),
                    link.clicks,
                    to_db_timestamp(link.last_clicked) if link.last_clicked else None,
                ))
        except sqlite3.IntegrityError as e:
            raise AliasTakenError(link.alias) from e

        return link.model_copy(update={"id": cursor.lastrowid})

    async def create_link(self, link: ShortLink) -> ShortLink:
        created = await self._run(self._create_link, link)
        logger.info(f"Created short link {created.alias} for user {created.owner_id}")
        return created

    def _record_click(self, event: ClickEvent) -> ClickEvent:
        clicked_at = to_db_timestamp(event.clicked_at)
        with self._connect() as conn:
            cursor = conn.execute("""
                INSERT INTO click_events
                (link_id, ip_address, user_agent, device, location, clicked_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                event.link_id,
                event.ip_address,
                event.user_agent,
                event.device,
                event.location,
                clicked_at,
            ))

            # Counter always mirrors the event rows.
            conn.execute("""
                UPDATE links
                SET clicks = (SELECT COUNT(*) FROM click_events WHERE link_id = ?),
                    last_clicked = (SELECT MAX(clicked_at) FROM click_events WHERE link_id = ?)
                WHERE id = ?
            """, (event.link_id, event.link_id, event.link_id))

        return event.model_copy(update={"id": cursor.lastrowid})

    async def record_click(self, event: ClickEvent) -> ClickEvent:
        return await self._run(self._record_click, event)

    def _list_clicks(self, link_id: int) -> list[ClickEvent]:
        with self._connect() as conn:
            rows = conn.execute("""
                SELECT * FROM click_events
                WHERE link_id = ?
                ORDER BY clicked_at DESC, id DESC
            """, (link_id,)).fetchall()
        return [ClickEvent(**dict(row)) for row in rows]

    async def list_clicks(self, link_id: int) -> list[ClickEvent]:
        return await self._run(self._list_clicks, link_id)

    def _list_links(self, owner_id: int) -> list[ShortLink]:
        with self._connect() as conn:
            rows = conn.execute("""
                SELECT * FROM links
                WHERE owner_id = ?
                ORDER BY created_at DESC, id DESC
            """, (owner_id,)).fetchall()
        return [self._row_to_link(row) for row in rows]

    async def list_links(self, owner_id: int) -> list[ShortLink]:
        return await self._run(self._list_links, owner_id)

    def _ensure_user(self, user: TelegramUser) -> None:
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO users (id, username, first_name, last_name)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    username = excluded.username,
                    first_name = excluded.first_name,
                    last_name = excluded.last_name
            """, (user.id, user.username, user.first_name, user.last_name))

    async def ensure_user(self, user: TelegramUser) -> None:
        await self._run(self._ensure_user, user)
