"""Dependency-injection container.

This module defines a dependency-injection (DI) container that wires the
link store, geolocation, tracking and statistics services together with the
bot's conversation state.
"""

from dependency_injector import containers, providers

from shortbot.bot.session import SessionStore
from shortbot.services.click_recorder import ClickRecorder
from shortbot.services.export import ExportService
from shortbot.services.geolocation import GeolocationResolver, IpInfoProvider, LocationCache
from shortbot.services.resolver import AliasResolver
from shortbot.services.shortener import ShortenerService
from shortbot.services.statistics import StatisticsAggregator
from shortbot.services.store import SQLiteLinkStore
from shortbot.services.supabase_store import SupabaseLinkStore


class Container(containers.DeclarativeContainer):
    """DI container for the application."""

    config = providers.Configuration()

    # Storage
    store = providers.Selector(
        config.store.backend,
        sqlite=providers.Singleton(SQLiteLinkStore, db_path=config.store.db_path),
        supabase=providers.Singleton(
            SupabaseLinkStore,
            base_url=config.store.supabase_url,
            api_key=config.store.supabase_key,
        ),
    )

    # Geolocation
    location_cache = providers.Singleton(LocationCache)
    location_provider = providers.Singleton(
        IpInfoProvider,
        api_token=config.geolocation.api_token,
        base_url=config.geolocation.base_url,
        timeout_seconds=config.geolocation.timeout_seconds,
    )
    geolocation_resolver = providers.Singleton(
        GeolocationResolver,
        cache=location_cache,
        provider=location_provider,
        timeout_seconds=config.geolocation.timeout_seconds,
    )

    # Services
    alias_resolver = providers.Singleton(AliasResolver, store=store)
    click_recorder = providers.Singleton(
        ClickRecorder, store=store, geolocation=geolocation_resolver
    )
    statistics_aggregator = providers.Singleton(
        StatisticsAggregator,
        store=store,
        resolver=alias_resolver,
        recent_limit=config.stats.recent_limit,
    )
    shortener_service = providers.Singleton(ShortenerService, store=store)
    export_service = providers.Singleton(ExportService, store=store, resolver=alias_resolver)

    # Bot components
    session_store = providers.Singleton(SessionStore)


def build_container(app_config) -> Container:
    """Create a container configured from the application config.

    Args:
        app_config: The global ``shortbot.config.Config`` instance.

    Returns:
        Configured container.
    """
    container = Container()
    container.config.from_dict(
        {
            "store": app_config.store.model_dump(),
            "geolocation": app_config.geolocation.model_dump(),
            "stats": app_config.stats.model_dump(),
        }
    )
    return container
