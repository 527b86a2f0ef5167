"""User-agent classification into device categories and browser families.

Both functions are pure and never raise; an absent or empty user agent maps to
``"Unknown"``.

Device precedence is Bot, then Tablet, then Mobile, then Desktop. Googlebot
smartphone carries mobile tokens, and iPad and Android tablet UAs match the
generic mobile patterns as well.
"""

import re
from typing import Final

UNKNOWN: Final = "Unknown"

BOT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"bot|crawler|crawling|spider|slurp|facebookexternalhit", re.IGNORECASE
)
TABLET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"tablet|ipad|playbook|silk|kindle|android(?!.*mobile)", re.IGNORECASE
)
MOBILE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"mobile|android|iphone|ipod|webos|blackberry|opera mini|iemobile", re.IGNORECASE
)

# Order matters: Edge and Opera embed "Chrome", Chrome embeds "Safari".
BROWSER_TOKENS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    ("Edge", ("Edg/", "Edge/", "EdgA/", "EdgiOS/")),
    ("Opera", ("OPR/", "Opera")),
    ("Firefox", ("Firefox", "FxiOS")),
    ("Chrome", ("Chrome", "CriOS")),
    ("Safari", ("Safari",)),
)


def classify_device(user_agent: str | None) -> str:
    """Classify a user agent into a device category.

    Args:
        user_agent: Raw User-Agent header value.

    Returns:
        One of "Bot", "Tablet", "Mobile", "Desktop" or "Unknown".
    """
    if not user_agent or not user_agent.strip():
        return UNKNOWN

    if BOT_PATTERN.search(user_agent):
        return "Bot"
    if TABLET_PATTERN.search(user_agent):
        return "Tablet"
    if MOBILE_PATTERN.search(user_agent):
        return "Mobile"
    return "Desktop"


def classify_browser(user_agent: str | None) -> str:
    """Classify a user agent into a browser family.

    Args:
        user_agent: Raw User-Agent header value.

    Returns:
        Browser family name, "Other" if unrecognised, "Unknown" if absent.
    """
    if not user_agent or not user_agent.strip():
        return UNKNOWN

    for browser, tokens in BROWSER_TOKENS:
        if any(token in user_agent for token in tokens):
            return browser
    return "Other"
