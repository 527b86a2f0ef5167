"""Configuration management for the short link bot.

Handles all application configuration including environment variables, the
YAML tracking config file, and default settings. Provides structured
configuration classes for different aspects of the application (bot, redirect
server, store, geolocation, statistics).
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


class BotConfig(BaseSettings):
    """Main Telegram bot configuration.

    Attributes:
        bot_token: Telegram bot API token from environment.
        bot_username: Public bot username, used in links on HTML pages.
        port: Server port for webhook mode.
        webhook_domain: Public domain for webhooks, None for polling mode.
        listen_host: Interface the webhook server binds to.
        webhook_secret: Secret token Telegram echoes back on webhook calls.
        log_level: Root logging level name.
    """
    bot_token: str | None = Field(default=None, validation_alias="BOT_TOKEN")
    bot_username: str = Field(default="MidgetURLShortnerBot", validation_alias="BOT_USERNAME")
    port: int = Field(default=8000, validation_alias="PORT")
    webhook_domain: str | None = Field(default=None, validation_alias="WEBHOOK_DOMAIN")
    listen_host: str = Field(default="127.0.0.1", validation_alias="BOT_LISTEN_HOST")
    webhook_secret: str | None = Field(default=None, validation_alias="WEBHOOK_SECRET")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def use_webhook(self) -> bool:
        """Determine if webhook mode should be used.

        Returns:
            True if webhook domain is configured, False for polling mode.
        """
        return bool(self.webhook_domain)


class RedirectConfig(BaseSettings):
    """HTTP redirect server configuration.

    Attributes:
        host: Interface the redirect server binds to.
        port: Port the redirect server listens on.
        short_domain: Public domain short links are issued under.
        short_protocol: Scheme used when building clickable short links.
    """
    host: str = Field(default="0.0.0.0", validation_alias="REDIRECT_HOST")
    port: int = Field(default=3000, validation_alias="REDIRECT_PORT")
    short_domain: str = Field(default="localhost:3000", validation_alias="SHORT_DOMAIN")
    short_protocol: str = Field(default="https", validation_alias="SHORT_PROTOCOL")

    def display_url(self, alias: str) -> str:
        """Short link without scheme, as shown to users."""
        return f"{self.short_domain}/{alias}"

    def short_url(self, alias: str) -> str:
        """Fully qualified short link."""
        return f"{self.short_protocol}://{self.short_domain}/{alias}"


STORE_BACKENDS = ("sqlite", "supabase")


class StoreConfig(BaseSettings):
    """Persistent store configuration.

    Attributes:
        backend: Store implementation, "sqlite" or "supabase".
        db_path: Path to SQLite database file.
        supabase_url: Supabase project URL for the hosted backend.
        supabase_key: Supabase API key for the hosted backend.
    """
    backend: str = Field(default="sqlite", validation_alias="STORE_BACKEND")
    db_path: str = Field(default="data/shortener.db", validation_alias="STORE_DB_PATH")
    supabase_url: str | None = Field(default=None, validation_alias="SUPABASE_URL")
    supabase_key: str | None = Field(default=None, validation_alias="SUPABASE_KEY")

    def check_backend(self) -> None:
        """Verify the selected backend has everything it needs.

        Raises:
            RuntimeError: If the backend is unknown or its settings are missing.
        """
        if self.backend not in STORE_BACKENDS:
            raise RuntimeError(
                f"Unknown STORE_BACKEND {self.backend!r}, expected one of: {', '.join(STORE_BACKENDS)}"
            )
        if self.backend == "supabase" and not (self.supabase_url and self.supabase_key):
            raise RuntimeError("Set SUPABASE_URL and SUPABASE_KEY environment variables")


class GeolocationConfig(BaseSettings):
    """IP geolocation lookup settings.

    Attributes:
        api_token: ipinfo.io bearer token; lookups are skipped without it.
        base_url: Geolocation service base URL.
        timeout_seconds: Hard timeout for a single lookup.
        cache_clear_interval_seconds: How often the location cache is wiped.
    """
    api_token: str | None = Field(default=None, validation_alias="IPINFO_TOKEN")
    base_url: str = "https://ipinfo.io"
    timeout_seconds: float = 5.0
    cache_clear_interval_seconds: int = 3600


class StatsConfig(BaseSettings):
    """Statistics report settings.

    Attributes:
        recent_limit: Number of most recent clicks included in a report.
        top_locations: Number of locations listed in the bot report.
        url_list_limit: Number of newest links shown by /urls.
    """
    recent_limit: int = 5
    top_locations: int = 5
    url_list_limit: int = 10


class Config:
    """Application configuration manager.

    Centralizes loading and management of all configuration sources including
    environment variables, the tracking YAML file, and default values.
    """

    def __init__(self, config_dir: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_dir: Path to configuration directory, defaults to shortbot/config.
        """
        if config_dir is None:
            config_dir = Path(__file__).parent / "config"

        self.config_dir = Path(config_dir)

        self.bot = BotConfig()
        self.redirect = RedirectConfig()
        self.store = StoreConfig()

        tracking_data = self._load_tracking_config()

        geo_data = tracking_data.get("geolocation", {})
        self.geolocation = GeolocationConfig(
            base_url=geo_data.get("base_url", "https://ipinfo.io"),
            timeout_seconds=geo_data.get("timeout_seconds", 5.0),
            cache_clear_interval_seconds=geo_data.get("cache_clear_interval_seconds", 3600),
        )

        stats_data = tracking_data.get("stats", {})
        self.stats = StatsConfig(
            recent_limit=stats_data.get("recent_limit", 5),
            top_locations=stats_data.get("top_locations", 5),
            url_list_limit=stats_data.get("url_list_limit", 10),
        )

    def _load_tracking_config(self) -> dict[str, Any]:
        """Load tracking tunables from YAML configuration.

        Returns:
            Parsed YAML mapping, empty if the file is missing.
        """
        tracking_path = self.config_dir / "tracking.yml"
        if not tracking_path.exists():
            return {}

        with open(tracking_path) as f:
            data = yaml.safe_load(f)

        return data or {}


# Global configuration instance
config = Config()
