"""Tests for the Supabase REST link store with a mocked HTTP session."""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from shortbot.errors import AliasTakenError, StoreError
from shortbot.models import ClickEvent, ShortLink
from shortbot.services.supabase_store import CLICKS_TABLE, LINKS_TABLE, SupabaseLinkStore

LINK_ROW = {
    "id": 1,
    "short_alias": "abc123",
    "original_url": "https://example.com",
    "user_id": 12345,
    "created_at": "2024-05-01T12:00:00+00:00",
    "clicks": 2,
    "last_clicked": None,
}


def _response(status=200, body=None, headers=None):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value="error details")
    response.headers = headers or {}

    context = MagicMock()
    context.__aenter__.return_value = response
    context.__aexit__.return_value = False
    return context


def _store(*responses):
    session = MagicMock()
    session.closed = False
    session.request.side_effect = list(responses)
    return SupabaseLinkStore("https://project.supabase.co/", "service-key", session=session), session


class TestSupabaseLinkStore:
    """Mapping between the REST tables and the application models."""

    @pytest.mark.asyncio
    async def test_get_link_maps_row(self):
        store, session = _store(_response(body=[LINK_ROW]))

        link = await store.get_link("abc123")

        assert link.alias == "abc123"
        assert link.owner_id == 12345
        assert link.clicks == 2
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "GET"
        assert url == f"https://project.supabase.co/rest/v1/{LINKS_TABLE}"
        assert kwargs["params"]["short_alias"] == "eq.abc123"
        assert kwargs["headers"]["apikey"] == "service-key"

    @pytest.mark.asyncio
    async def test_get_missing_link(self):
        store, _ = _store(_response(body=[]))

        assert await store.get_link("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_alias(self):
        store, _ = _store(_response(status=409))
        link = ShortLink(alias="abc123", original_url="https://example.com", owner_id=12345)

        with pytest.raises(AliasTakenError):
            await store.create_link(link)

    @pytest.mark.asyncio
    async def test_server_error_is_store_error(self):
        store, _ = _store(_response(status=503))

        with pytest.raises(StoreError):
            await store.get_link("abc123")

    @pytest.mark.asyncio
    async def test_network_error_is_store_error(self):
        store, session = _store()
        session.request.side_effect = aiohttp.ClientConnectionError("refused")

        with pytest.raises(StoreError):
            await store.list_links(12345)

    @pytest.mark.asyncio
    async def test_record_click_rewrites_counter(self):
        event_row = {
            "id": 9,
            "url_id": 1,
            "ip_address": "203.0.113.7",
            "user_agent": "curl/8.4.0",
            "device_type": "Desktop",
            "location": "Berlin, Berlin, DE",
            "created_at": "2024-05-02T09:00:00+00:00",
        }
        store, session = _store(
            _response(status=201, body=[event_row]),
            _response(status=200, headers={"Content-Range": "0-2/3"}),
            _response(status=204),
        )
        event = ClickEvent(link_id=1, ip_address="203.0.113.7", user_agent="curl/8.4.0", device="Desktop")

        saved = await store.record_click(event)

        assert saved.id == 9
        assert saved.location == "Berlin, Berlin, DE"
        methods = [call.args[0] for call in session.request.call_args_list]
        tables = [call.args[1].rsplit("/", 1)[-1] for call in session.request.call_args_list]
        assert methods == ["POST", "HEAD", "PATCH"]
        assert tables == [CLICKS_TABLE, CLICKS_TABLE, LINKS_TABLE]
        patch_payload = session.request.call_args_list[2].kwargs["json"]
        assert patch_payload["clicks"] == 3

    @pytest.mark.asyncio
    async def test_list_clicks_newest_first_query(self):
        store, session = _store(_response(body=[]))

        assert await store.list_clicks(1) == []
        assert session.request.call_args.kwargs["params"]["order"] == "created_at.desc"
