"""Telegram bot handlers.

Commands, menu buttons, multi-step conversations and inline button callbacks.
Handlers delegate to the services held by the DI container stored in
``application.bot_data["container"]`` and catch failures at the handler
boundary, replying with a user-facing error message.
"""

import logging
from html import escape

from telegram import InlineKeyboardMarkup, Message, Update
from telegram.constants import ParseMode
from telegram.error import BadRequest
from telegram.ext import ContextTypes

from ..core.container import Container
from ..errors import (
    AliasTakenError,
    InvalidAliasError,
    InvalidURLError,
    LinkNotFoundError,
)
from ..models import TelegramUser
from ..services.shortener import validate_and_format_url
from .keyboards import (
    COPY_PREFIX,
    REFRESH_URLS,
    TRACK_PREFIX,
    link_actions,
    main_menu,
    refresh_stats,
    url_list,
)
from .messages import (
    BUTTON_BULK_SHORTEN,
    BUTTON_CUSTOM_ALIAS,
    BUTTON_HELP,
    BUTTON_MY_URLS,
    BUTTON_QUICK_SHORTEN,
    BUTTON_TRACK_URL,
    COPY_ANSWER,
    ERROR_ALIAS_TAKEN,
    ERROR_GENERIC,
    ERROR_INVALID_ALIAS,
    ERROR_INVALID_URL,
    ERROR_LINK_NOT_FOUND,
    ERROR_STATS,
    EXPORT_CAPTION,
    HELP_MESSAGE,
    NO_URLS_DETECTED,
    PROMPT_BULK,
    PROMPT_CUSTOM_ALIAS,
    PROMPT_CUSTOM_URL,
    PROMPT_TRACK,
    PROMPT_URL,
    START_MESSAGE,
    USAGE_CUSTOM,
    USAGE_EXPORT,
    USAGE_TRACK,
)
from .response_formatter import response_formatter, split_message
from .session import SessionStep

logger = logging.getLogger(__name__)

CONTAINER_KEY = "container"


def _container(context: ContextTypes.DEFAULT_TYPE) -> Container:
    return context.application.bot_data[CONTAINER_KEY]


def _telegram_user(update: Update) -> TelegramUser | None:
    user = update.effective_user
    if user is None:
        return None
    return TelegramUser(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
    )


async def _reply(message: Message, text: str, **kwargs) -> Message:
    return await message.reply_text(
        text, parse_mode=ParseMode.HTML, disable_web_page_preview=True, **kwargs
    )


async def _reply_error(message: Message, error: Exception, alias: str | None = None) -> None:
    """Translate a service error into a reply; unexpected errors are logged."""
    if isinstance(error, InvalidURLError):
        await _reply(message, ERROR_INVALID_URL)
    elif isinstance(error, InvalidAliasError):
        await _reply(message, ERROR_INVALID_ALIAS)
    elif isinstance(error, AliasTakenError):
        await _reply(message, ERROR_ALIAS_TAKEN)
    elif isinstance(error, LinkNotFoundError):
        await _reply(message, ERROR_LINK_NOT_FOUND.format(alias=escape(alias or error.alias)))
    else:
        logger.error(f"Handler error (alias={alias}): {error}")
        await _reply(message, ERROR_GENERIC)


# Link creation


async def _shorten(message: Message, context: ContextTypes.DEFAULT_TYPE, user: TelegramUser, url: str) -> None:
    try:
        link = await _container(context).shortener_service().shorten(url, user)
    except Exception as e:
        await _reply_error(message, e)
        return

    logger.info(f"User {user.id} shortened {link.original_url} -> {link.alias}")
    await _reply(message, response_formatter.format_shortened(link), reply_markup=link_actions(link.alias))


async def _shorten_custom(
    message: Message, context: ContextTypes.DEFAULT_TYPE, user: TelegramUser, url: str, alias: str
) -> bool:
    """Create a custom alias link. Returns True when the link was created."""
    try:
        link = await _container(context).shortener_service().shorten_custom(url, alias, user)
    except Exception as e:
        await _reply_error(message, e, alias=alias)
        return False

    logger.info(f"User {user.id} created custom alias {link.alias}")
    await _reply(message, response_formatter.format_shortened(link), reply_markup=link_actions(link.alias))
    return True


async def _shorten_bulk(message: Message, context: ContextTypes.DEFAULT_TYPE, user: TelegramUser, text: str) -> None:
    if not text.split():
        await _reply(message, NO_URLS_DETECTED)
        return

    try:
        result = await _container(context).shortener_service().shorten_bulk(text, user)
    except Exception as e:
        await _reply_error(message, e)
        return

    logger.info(f"User {user.id} bulk shortened {len(result.created)}/{result.total} URLs")
    for chunk in split_message(response_formatter.format_bulk(result)):
        await _reply(message, chunk)


# Reports


async def _send_stats(message: Message, context: ContextTypes.DEFAULT_TYPE, alias: str) -> None:
    try:
        stats = await _container(context).statistics_aggregator().get_stats(alias)
    except Exception as e:
        await _reply_error(message, e, alias=alias)
        return

    await _reply(message, response_formatter.format_statistics(stats), reply_markup=refresh_stats(alias))


async def _url_list_message(
    context: ContextTypes.DEFAULT_TYPE, owner_id: int
) -> tuple[str, InlineKeyboardMarkup]:
    links = await _container(context).statistics_aggregator().list_links(owner_id)
    text, shown = response_formatter.build_url_list(links)
    return text, url_list([link.alias for link in shown])


async def _send_url_list(message: Message, context: ContextTypes.DEFAULT_TYPE, owner_id: int) -> None:
    try:
        text, keyboard = await _url_list_message(context, owner_id)
        await _reply(message, text, reply_markup=keyboard)
    except Exception as e:
        await _reply_error(message, e)


# Commands


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command.

    Resets any pending conversation and shows the main menu keyboard.
    """
    if not update.message or not update.effective_chat:
        return

    _container(context).session_store().clear(update.effective_chat.id)
    await update.message.reply_text(START_MESSAGE, parse_mode=ParseMode.HTML, reply_markup=main_menu())


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if update.message:
        await _reply(update.message, HELP_MESSAGE)


async def shorten_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /shorten <url>; without an argument, ask for the URL."""
    user = _telegram_user(update)
    if not update.message or not update.effective_chat or user is None:
        return

    if not context.args:
        _container(context).session_store().start(update.effective_chat.id, SessionStep.WAITING_FOR_URL)
        await _reply(update.message, PROMPT_URL)
        return

    await _shorten(update.message, context, user, context.args[0])


async def custom_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /custom.

    ``/custom <url> <alias>`` creates the link directly; a bare ``/custom``
    starts the two-step conversation (URL first, then alias).
    """
    user = _telegram_user(update)
    if not update.message or not update.effective_chat or user is None:
        return

    args = context.args or []
    if not args:
        _container(context).session_store().start(
            update.effective_chat.id, SessionStep.WAITING_FOR_CUSTOM_URL
        )
        await _reply(update.message, PROMPT_CUSTOM_URL)
        return

    if len(args) != 2:
        await _reply(update.message, USAGE_CUSTOM)
        return

    url, alias = args
    await _shorten_custom(update.message, context, user, url, alias)


async def bulk_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /bulk [urls...]; without arguments, ask for the URLs."""
    user = _telegram_user(update)
    if not update.message or not update.effective_chat or user is None:
        return

    if not context.args:
        _container(context).session_store().start(update.effective_chat.id, SessionStep.WAITING_FOR_URLS)
        await _reply(update.message, PROMPT_BULK)
        return

    await _shorten_bulk(update.message, context, user, " ".join(context.args))


async def track_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /track <alias> command."""
    if not update.message:
        return

    if not context.args:
        await _reply(update.message, USAGE_TRACK)
        return

    await _send_stats(update.message, context, context.args[0])


async def urls_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /urls command."""
    if not update.message or not update.effective_user:
        return

    await _send_url_list(update.message, context, update.effective_user.id)


async def export_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export <alias>: send the link's click history as a CSV document.

    Only the owner of the link may export it.
    """
    message = update.message
    if message is None or not update.effective_user:
        return

    if not context.args:
        await _reply(message, USAGE_EXPORT)
        return

    alias = context.args[0]
    try:
        filename, content = await _container(context).export_service().export_clicks_csv(
            alias, update.effective_user.id
        )
    except Exception as e:
        await _reply_error(message, e, alias=alias)
        return

    await message.reply_document(
        document=content,
        filename=filename,
        caption=EXPORT_CAPTION.format(alias=escape(alias)),
        parse_mode=ParseMode.HTML,
    )


# Plain text


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle menu buttons and replies to pending conversation steps.

    Menu buttons always win over a pending step, so tapping a button
    abandons the previous flow.
    """
    user = _telegram_user(update)
    message = update.message
    if message is None or not update.effective_chat or user is None:
        return

    chat_id = update.effective_chat.id
    sessions = _container(context).session_store()
    text = (message.text or "").strip()

    if text == BUTTON_QUICK_SHORTEN:
        sessions.start(chat_id, SessionStep.WAITING_FOR_URL)
        await _reply(message, PROMPT_URL)
    elif text == BUTTON_BULK_SHORTEN:
        sessions.start(chat_id, SessionStep.WAITING_FOR_URLS)
        await _reply(message, PROMPT_BULK)
    elif text == BUTTON_CUSTOM_ALIAS:
        sessions.start(chat_id, SessionStep.WAITING_FOR_CUSTOM_URL)
        await _reply(message, PROMPT_CUSTOM_URL)
    elif text == BUTTON_TRACK_URL:
        sessions.clear(chat_id)
        await _reply(message, PROMPT_TRACK)
    elif text == BUTTON_MY_URLS:
        sessions.clear(chat_id)
        await _send_url_list(message, context, user.id)
    elif text == BUTTON_HELP:
        sessions.clear(chat_id)
        await _reply(message, HELP_MESSAGE)
    else:
        await _continue_session(message, context, user, chat_id, text)


async def _continue_session(
    message: Message,
    context: ContextTypes.DEFAULT_TYPE,
    user: TelegramUser,
    chat_id: int,
    text: str,
) -> None:
    sessions = _container(context).session_store()
    session = sessions.get(chat_id)
    if session is None:
        return

    if session.step is SessionStep.WAITING_FOR_URL:
        sessions.clear(chat_id)
        await _shorten(message, context, user, text)

    elif session.step is SessionStep.WAITING_FOR_URLS:
        sessions.clear(chat_id)
        await _shorten_bulk(message, context, user, text)

    elif session.step is SessionStep.WAITING_FOR_CUSTOM_URL:
        try:
            url = validate_and_format_url(text)
        except InvalidURLError:
            await _reply(message, ERROR_INVALID_URL)
            return
        sessions.start(chat_id, SessionStep.WAITING_FOR_CUSTOM_ALIAS, url=url)
        await _reply(message, PROMPT_CUSTOM_ALIAS)

    elif session.step is SessionStep.WAITING_FOR_CUSTOM_ALIAS:
        # On failure the chat stays on this step so another alias can be sent
        if await _shorten_custom(message, context, user, session.url or "", text):
            sessions.clear(chat_id)


# Inline buttons


async def _edit_url_list(message: Message, text: str, keyboard: InlineKeyboardMarkup) -> None:
    try:
        await message.edit_text(
            text,
            parse_mode=ParseMode.HTML,
            disable_web_page_preview=True,
            reply_markup=keyboard,
        )
    except BadRequest as e:
        if "not modified" not in str(e).lower():
            raise
        logger.debug("URL list unchanged, nothing to refresh")


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle inline keyboard callbacks: track_<alias>, copy_<alias>, refresh_urls."""
    query = update.callback_query
    if query is None or not query.data:
        return

    data = query.data
    message = query.message if isinstance(query.message, Message) else None

    try:
        if data == REFRESH_URLS:
            text, keyboard = await _url_list_message(context, query.from_user.id)
            await query.answer()
            if message is not None:
                await _edit_url_list(message, text, keyboard)

        elif data.startswith(TRACK_PREFIX):
            await query.answer()
            if message is not None:
                await _send_stats(message, context, data.removeprefix(TRACK_PREFIX))

        elif data.startswith(COPY_PREFIX):
            alias = data.removeprefix(COPY_PREFIX)
            await query.answer(
                text=COPY_ANSWER.format(short_url=response_formatter.short_url(alias)),
                show_alert=True,
            )

        else:
            logger.warning(f"Unknown callback data: {data}")
            await query.answer()

    except Exception as e:
        logger.error(f"Callback query error ({data}): {e}")
        await query.answer(text=ERROR_STATS, show_alert=True)
