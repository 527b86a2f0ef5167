"""HTTP redirect server for short links.

Runs as an aiohttp web server in the same asyncio event loop as the Telegram
bot. Resolves aliases, answers with a permanent redirect and records the
click in a detached background task so tracking never delays the redirect.

Endpoints:
  GET /health   -> {"status": "ok"}
  GET /         -> landing page
  GET /{alias}  -> 301 to the original URL, 404 or 500 page otherwise
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Coroutine
from datetime import UTC, datetime
from typing import Any

from aiohttp import web

from ..config import GeolocationConfig, config
from ..errors import LinkNotFoundError, StoreError
from ..models import RequestContext
from ..services.click_recorder import ClickRecorder
from ..services.geolocation import LocationCache
from ..services.resolver import AliasResolver
from .pages import error_page, landing_page, not_found_page

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Holds strong references to fire-and-forget tasks until they finish."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task {task.get_name()} failed: {error}")

    async def join(self) -> None:
        """Wait until every task spawned so far has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def cancel_all(self) -> int:
        """Cancel pending tasks and wait for them to unwind.

        Returns:
            Number of tasks that were still pending.
        """
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)

    def __len__(self) -> int:
        return len(self._tasks)


RESOLVER_KEY = web.AppKey("resolver", AliasResolver)
RECORDER_KEY = web.AppKey("recorder", ClickRecorder)
CACHE_KEY = web.AppKey("location_cache", LocationCache)
BACKGROUND_TASKS_KEY = web.AppKey("background_tasks", BackgroundTasks)
CLEAR_INTERVAL_KEY = web.AppKey("cache_clear_interval", float)
BOT_USERNAME_KEY = web.AppKey("bot_username", str)


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def handle_landing(request: web.Request) -> web.Response:
    return web.Response(text=landing_page(request.app[BOT_USERNAME_KEY]), content_type="text/html")


async def handle_redirect(request: web.Request) -> web.StreamResponse:
    """Resolve the alias and redirect, tracking the click in the background.

    The redirect response is sent before the tracking task is spawned.
    """
    alias = request.match_info["alias"]
    resolver = request.app[RESOLVER_KEY]

    try:
        link = await resolver.resolve(alias)
    except LinkNotFoundError:
        logger.info(f"Alias not found: {alias}")
        return web.Response(
            status=404,
            text=not_found_page(request.app[BOT_USERNAME_KEY]),
            content_type="text/html",
        )
    except StoreError as e:
        logger.error(f"Redirect failed for {alias} at {datetime.now(UTC).isoformat()}: {e}")
        return web.Response(status=500, text=error_page(), content_type="text/html")

    response = web.Response(status=301, headers={"Location": link.original_url})
    await response.prepare(request)
    await response.write_eof()

    context = RequestContext.from_headers(request.headers, request.remote)
    recorder = request.app[RECORDER_KEY]
    request.app[BACKGROUND_TASKS_KEY].spawn(
        recorder.record_safely(context, link), name=f"track-{alias}"
    )

    return response


async def _periodic_cache_clear(app: web.Application) -> AsyncIterator[None]:
    cache = app[CACHE_KEY]
    task = asyncio.create_task(cache.run_periodic_clear(app[CLEAR_INTERVAL_KEY]))
    yield
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


async def _cancel_tracking(app: web.Application) -> None:
    dropped = await app[BACKGROUND_TASKS_KEY].cancel_all()
    if dropped:
        logger.warning(f"Cancelled {dropped} pending click tracking tasks on shutdown")


def create_redirect_app(
    resolver: AliasResolver,
    recorder: ClickRecorder,
    cache: LocationCache,
    tracking_config: GeolocationConfig | None = None,
    bot_username: str | None = None,
) -> web.Application:
    """Build the redirect web application.

    Args:
        resolver: Alias resolver backed by the link store.
        recorder: Click recorder used for background tracking.
        cache: Location cache cleared periodically while the app runs.
        tracking_config: Geolocation settings, defaults to the global config.
        bot_username: Bot linked from the HTML pages, defaults to the global config.

    Returns:
        Configured aiohttp application.
    """
    tracking_config = tracking_config or config.geolocation

    app = web.Application()
    app[RESOLVER_KEY] = resolver
    app[RECORDER_KEY] = recorder
    app[CACHE_KEY] = cache
    app[BACKGROUND_TASKS_KEY] = BackgroundTasks()
    app[CLEAR_INTERVAL_KEY] = float(tracking_config.cache_clear_interval_seconds)
    app[BOT_USERNAME_KEY] = bot_username or config.bot.bot_username

    app.router.add_get("/health", handle_health)
    app.router.add_get("/", handle_landing)
    app.router.add_get("/{alias}", handle_redirect)

    app.cleanup_ctx.append(_periodic_cache_clear)
    app.on_shutdown.append(_cancel_tracking)
    return app


async def start_redirect_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Start the web server. Returns the runner so the caller can shut it down."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Redirect server listening on {host}:{port}")
    return runner
