"""Application entry point.

Initializes and runs the Telegram bot together with the HTTP redirect server
on the same event loop. Handles both webhook mode (when a public domain is
configured) and polling mode (for local development). Configures logging,
builds the DI container and registers bot handlers.
"""

import logging

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from .bot.handlers import (
    CONTAINER_KEY,
    bulk_command,
    custom_command,
    export_command,
    handle_callback,
    handle_text,
    help_command,
    shorten_command,
    start,
    track_command,
    urls_command,
)
from .config import config
from .core.container import Container, build_container
from .web.redirect import create_redirect_app, start_redirect_server

# Logging
logging.basicConfig(
    format="%(asctime)s - %(levelname)s - %(message)s",
    level=getattr(logging, config.bot.log_level.upper(), logging.INFO),
)
# httpx logs every Telegram API request at INFO, including the bot token in the URL
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

REDIRECT_RUNNER_KEY = "redirect_runner"


async def initialize_resources(application: Application) -> None:
    """Start the redirect server next to the bot."""
    container: Container = application.bot_data[CONTAINER_KEY]

    redirect_app = create_redirect_app(
        resolver=container.alias_resolver(),
        recorder=container.click_recorder(),
        cache=container.location_cache(),
        tracking_config=config.geolocation,
        bot_username=config.bot.bot_username,
    )
    application.bot_data[REDIRECT_RUNNER_KEY] = await start_redirect_server(
        redirect_app, config.redirect.host, config.redirect.port
    )
    logger.info(f"Short links are served at {config.redirect.short_url('<alias>')}")


async def cleanup_resources(application: Application) -> None:
    """Stop the redirect server and close HTTP sessions."""
    runner = application.bot_data.pop(REDIRECT_RUNNER_KEY, None)
    if runner is not None:
        await runner.cleanup()
        logger.info("Redirect server stopped")

    container: Container = application.bot_data[CONTAINER_KEY]
    try:
        await container.location_provider().close()
        store = container.store()
        close = getattr(store, "close", None)
        if close is not None:
            await close()
    except Exception as e:
        logger.warning(f"Error during cleanup: {e}")


def register_handlers(app: Application) -> None:
    app.add_handler(CommandHandler("start", start))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("shorten", shorten_command))
    app.add_handler(CommandHandler("custom", custom_command))
    app.add_handler(CommandHandler("bulk", bulk_command))
    app.add_handler(CommandHandler("track", track_command))
    app.add_handler(CommandHandler("urls", urls_command))
    app.add_handler(CommandHandler("export", export_command))

    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))


def main() -> None:
    """Main application entry point.

    Raises:
        RuntimeError: If BOT_TOKEN is not set or the store backend is misconfigured.
    """
    if not config.bot.bot_token:
        raise RuntimeError("Set BOT_TOKEN environment variable")
    config.store.check_backend()

    app = (
        Application.builder()
        .token(config.bot.bot_token)
        .post_init(initialize_resources)
        .post_shutdown(cleanup_resources)
        .build()
    )
    app.bot_data[CONTAINER_KEY] = build_container(config)

    register_handlers(app)

    # Run in webhook or polling mode
    if config.bot.use_webhook:
        path = f"/{config.bot.bot_token}"
        webhook_url = f"https://{config.bot.webhook_domain}{path}"
        logger.info(f"Starting webhook on {config.bot.listen_host}:{config.bot.port}")

        app.run_webhook(
            listen=config.bot.listen_host,
            port=config.bot.port,
            url_path=path,
            webhook_url=webhook_url,
            secret_token=config.bot.webhook_secret,
        )
    else:
        logger.warning("No public domain found; falling back to long-polling")
        app.run_polling()


if __name__ == "__main__":
    main()
