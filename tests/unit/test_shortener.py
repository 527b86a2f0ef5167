"""Tests for URL validation, alias rules and the shortening service."""

from unittest.mock import AsyncMock, patch

import pytest

from shortbot.errors import AliasTakenError, InvalidAliasError, InvalidURLError
from shortbot.services.shortener import (
    ALIAS_ALPHABET,
    ShortenerService,
    generate_alias,
    validate_alias,
    validate_and_format_url,
)


class TestValidateAndFormatUrl:
    """URL normalization rules."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("example.com", "https://example.com"),
            ("  example.com/path?q=1  ", "https://example.com/path?q=1"),
            ("http://example.com", "http://example.com"),
            ("HTTPS://Example.com/A", "HTTPS://Example.com/A"),
            ("https://sub.domain.co.uk:8443/x", "https://sub.domain.co.uk:8443/x"),
            ("localhost:3000/test", "https://localhost:3000/test"),
            ("http://192.168.1.10/admin", "http://192.168.1.10/admin"),
        ],
    )
    def test_valid_urls(self, raw, expected):
        assert validate_and_format_url(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            None,
            "   ",
            "not a url",
            "justtext",
            "ftp://example.com",
            "https://",
            "https://example.com:99999",
            "https://exa mple.com",
            "https://" + "a" * 2050 + ".com",
        ],
    )
    def test_invalid_urls(self, raw):
        with pytest.raises(InvalidURLError):
            validate_and_format_url(raw)


class TestAliases:
    """Custom alias rules and generated aliases."""

    @pytest.mark.parametrize("alias", ["mylink123", "My-Link_2", "a", "x" * 32])
    def test_valid_aliases_preserve_case(self, alias):
        assert validate_alias(alias) == alias

    @pytest.mark.parametrize("alias", ["", None, "has space", "emoji🙂", "slash/", "x" * 33])
    def test_invalid_aliases(self, alias):
        with pytest.raises(InvalidAliasError):
            validate_alias(alias)

    def test_generated_alias_format(self):
        for _ in range(20):
            alias = generate_alias()
            assert len(alias) == 6
            assert set(alias) <= set(ALIAS_ALPHABET)


class TestShortenerService:
    """Link creation on top of the store."""

    @pytest.mark.asyncio
    async def test_shorten_creates_link(self, sqlite_store, sample_user):
        service = ShortenerService(sqlite_store)

        link = await service.shorten("example.com", sample_user)

        assert link.id is not None
        assert link.original_url == "https://example.com"
        assert link.owner_id == sample_user.id
        assert (await sqlite_store.get_link(link.alias)) is not None

    @pytest.mark.asyncio
    async def test_shorten_retries_on_collision(self, sqlite_store, sample_user):
        service = ShortenerService(sqlite_store)
        await service.shorten_custom("example.com", "aaaaaa", sample_user)

        with patch(
            "shortbot.services.shortener.generate_alias", side_effect=["aaaaaa", "bbbbbb"]
        ):
            link = await service.shorten("example.org", sample_user)

        assert link.alias == "bbbbbb"

    @pytest.mark.asyncio
    async def test_shorten_gives_up_after_attempts(self, sample_user):
        store = AsyncMock()
        store.create_link.side_effect = AliasTakenError("aaaaaa")
        service = ShortenerService(store)

        with pytest.raises(AliasTakenError):
            await service.shorten("example.com", sample_user)
        assert store.create_link.await_count == 5

    @pytest.mark.asyncio
    async def test_shorten_invalid_url_touches_nothing(self, sample_user):
        store = AsyncMock()
        service = ShortenerService(store)

        with pytest.raises(InvalidURLError):
            await service.shorten("not a url", sample_user)
        store.ensure_user.assert_not_awaited()
        store.create_link.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_custom_alias_taken(self, sqlite_store, sample_user):
        service = ShortenerService(sqlite_store)
        await service.shorten_custom("example.com", "MyLink", sample_user)

        with pytest.raises(AliasTakenError):
            await service.shorten_custom("example.org", "MyLink", sample_user)

        # Case-preserving: a different case is a different alias
        other = await service.shorten_custom("example.org", "mylink", sample_user)
        assert other.alias == "mylink"

    @pytest.mark.asyncio
    async def test_bulk_collects_failures(self, sqlite_store, sample_user):
        service = ShortenerService(sqlite_store)

        result = await service.shorten_bulk("example.com  not_a_url\nexample.org/page", sample_user)

        assert [link.original_url for link in result.created] == [
            "https://example.com",
            "https://example.org/page",
        ]
        assert result.failed == ["not_a_url"]
        assert result.total == 3
