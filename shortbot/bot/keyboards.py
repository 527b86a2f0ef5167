"""Reply and inline keyboards used by the bot."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup

from .messages import (
    BUTTON_BULK_SHORTEN,
    BUTTON_COPY,
    BUTTON_CUSTOM_ALIAS,
    BUTTON_HELP,
    BUTTON_MY_URLS,
    BUTTON_QUICK_SHORTEN,
    BUTTON_REFRESH_STATS,
    BUTTON_REFRESH_URLS,
    BUTTON_TRACK,
    BUTTON_TRACK_URL,
)

# Callback data prefixes
TRACK_PREFIX = "track_"
COPY_PREFIX = "copy_"
REFRESH_URLS = "refresh_urls"


def main_menu() -> ReplyKeyboardMarkup:
    """Persistent menu shown after /start."""
    return ReplyKeyboardMarkup(
        [
            [BUTTON_QUICK_SHORTEN, BUTTON_BULK_SHORTEN],
            [BUTTON_CUSTOM_ALIAS, BUTTON_TRACK_URL],
            [BUTTON_MY_URLS, BUTTON_HELP],
        ],
        resize_keyboard=True,
    )


def link_actions(alias: str) -> InlineKeyboardMarkup:
    """Copy and Track buttons attached to a freshly created link."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(BUTTON_COPY, callback_data=f"{COPY_PREFIX}{alias}"),
                InlineKeyboardButton(BUTTON_TRACK, callback_data=f"{TRACK_PREFIX}{alias}"),
            ]
        ]
    )


def refresh_stats(alias: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(BUTTON_REFRESH_STATS, callback_data=f"{TRACK_PREFIX}{alias}")]]
    )


def url_list(aliases: list[str]) -> InlineKeyboardMarkup:
    """One Track button per listed link plus a Refresh button."""
    rows = [
        [InlineKeyboardButton(f"{BUTTON_TRACK} {alias}", callback_data=f"{TRACK_PREFIX}{alias}")]
        for alias in aliases
    ]
    rows.append([InlineKeyboardButton(BUTTON_REFRESH_URLS, callback_data=REFRESH_URLS)])
    return InlineKeyboardMarkup(rows)
