"""Short link creation: URL validation, alias generation and persistence."""

from __future__ import annotations

import ipaddress
import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from typing import Final
from urllib.parse import urlparse

from ..errors import AliasTakenError, InvalidAliasError, InvalidURLError
from ..models import ShortLink, TelegramUser
from .store import LinkStore

logger = logging.getLogger(__name__)

ALIAS_ALPHABET: Final = string.ascii_lowercase + string.digits
ALIAS_LENGTH: Final = 6
MAX_ALIAS_LENGTH: Final = 32
MAX_URL_LENGTH: Final = 2048
MAX_GENERATION_ATTEMPTS: Final = 5

ALIAS_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]+$")
HOSTNAME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?=.{1,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z][a-z0-9-]{0,62}$",
    re.IGNORECASE,
)


def validate_and_format_url(url: str | None) -> str:
    """Normalize user input into a shortenable http(s) URL.

    Adds ``https://`` when no scheme is given.

    Args:
        url: Raw text sent by the user.

    Returns:
        The formatted URL.

    Raises:
        InvalidURLError: If the text is not a valid http(s) URL.
    """
    formatted = (url or "").strip()
    if not formatted:
        raise InvalidURLError("Empty URL")
    if len(formatted) > MAX_URL_LENGTH:
        raise InvalidURLError("URL is too long")
    if any(char.isspace() for char in formatted):
        raise InvalidURLError(f"URL contains whitespace: {formatted}")

    if not formatted.lower().startswith(("http://", "https://")):
        formatted = f"https://{formatted}"

    try:
        parsed = urlparse(formatted)
        hostname = parsed.hostname
        _ = parsed.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidURLError(f"Malformed URL: {formatted}") from e

    if parsed.scheme not in ("http", "https") or not hostname:
        raise InvalidURLError(f"Unsupported URL: {formatted}")

    if hostname != "localhost" and not HOSTNAME_PATTERN.match(hostname):
        try:
            ipaddress.ip_address(hostname)
        except ValueError as e:
            raise InvalidURLError(f"Invalid host: {hostname}") from e

    return formatted


def validate_alias(alias: str | None) -> str:
    """Check a custom alias and return it stripped.

    Aliases are case-preserving and may contain letters, digits, ``-`` and ``_``.

    Raises:
        InvalidAliasError: If the alias is empty, too long or has other characters.
    """
    alias = (alias or "").strip()
    if not alias or len(alias) > MAX_ALIAS_LENGTH or not ALIAS_PATTERN.match(alias):
        raise InvalidAliasError(f"Invalid alias: {alias!r}")
    return alias


def generate_alias(length: int = ALIAS_LENGTH) -> str:
    """Random lowercase alphanumeric alias."""
    return "".join(secrets.choice(ALIAS_ALPHABET) for _ in range(length))


@dataclass
class BulkResult:
    """Outcome of shortening several URLs at once."""

    created: list[ShortLink] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.failed)


class ShortenerService:
    """Creates short links on behalf of Telegram users."""

    def __init__(self, store: LinkStore):
        self.store = store

    async def shorten(self, url: str, owner: TelegramUser) -> ShortLink:
        """Create a short link with a generated alias.

        Args:
            url: URL as typed by the user.
            owner: Telegram user creating the link.

        Returns:
            The persisted ShortLink.

        Raises:
            InvalidURLError: If the URL is not valid.
            StoreError: If the store failed.
        """
        formatted = validate_and_format_url(url)
        await self.store.ensure_user(owner)

        for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
            alias = generate_alias()
            try:
                return await self.store.create_link(
                    ShortLink(alias=alias, original_url=formatted, owner_id=owner.id)
                )
            except AliasTakenError:
                logger.debug(f"Alias collision on attempt {attempt}: {alias}")

        raise AliasTakenError(alias)

    async def shorten_custom(self, url: str, alias: str, owner: TelegramUser) -> ShortLink:
        """Create a short link with a user-chosen alias.

        Raises:
            InvalidURLError: If the URL is not valid.
            InvalidAliasError: If the alias format is not allowed.
            AliasTakenError: If the alias already exists.
            StoreError: If the store failed.
        """
        formatted = validate_and_format_url(url)
        alias = validate_alias(alias)

        if await self.store.alias_exists(alias):
            raise AliasTakenError(alias)

        await self.store.ensure_user(owner)
        return await self.store.create_link(
            ShortLink(alias=alias, original_url=formatted, owner_id=owner.id)
        )

    async def shorten_bulk(self, text: str, owner: TelegramUser) -> BulkResult:
        """Shorten every whitespace-separated URL in a message.

        Invalid URLs and per-URL store failures are collected in ``failed``
        rather than aborting the batch.
        """
        result = BulkResult()
        for url in text.split():
            try:
                result.created.append(await self.shorten(url, owner))
            except Exception as e:
                logger.warning(f"Bulk shorten failed for {url}: {e}")
                result.failed.append(url)
        return result
