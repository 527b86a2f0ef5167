"""HTML pages served by the redirect server."""

from html import escape

_STYLE = """
    body {
        font-family: -apple-system, system-ui, sans-serif;
        max-width: 640px;
        margin: 40px auto;
        padding: 0 20px;
        line-height: 1.6;
        color: #333;
        text-align: center;
    }
    .error { color: #dc3545; margin: 20px 0; font-size: 1.2em; }
    .features { margin-top: 2rem; text-align: left; }
    .button {
        display: inline-block;
        padding: 12px 24px;
        background: #0088cc;
        color: white;
        text-decoration: none;
        border-radius: 6px;
        font-weight: 500;
        margin-top: 20px;
    }
    .button:hover { background: #006699; }
"""

_LAYOUT = """<!DOCTYPE html>
<html>
    <head>
        <meta charset="utf-8">
        <title>{title}</title>
        <style>{style}</style>
    </head>
    <body>
{body}
    </body>
</html>
"""


def _bot_link(bot_username: str) -> str:
    return f"https://t.me/{escape(bot_username)}"


def _render(title: str, body: str) -> str:
    return _LAYOUT.format(title=escape(title), style=_STYLE, body=body)


def landing_page(bot_username: str) -> str:
    """Home page advertising the Telegram bot."""
    body = f"""
        <h1>🔗 URL Shortener</h1>
        <p>Create and track shortened URLs with our Telegram bot.</p>
        <a href="{_bot_link(bot_username)}" class="button">Open in Telegram</a>
        <div class="features">
            <h2>Features:</h2>
            <ul>
                <li>Quickly shorten any URL</li>
                <li>Track clicks and analytics</li>
                <li>Create custom aliases</li>
                <li>Bulk URL shortening</li>
            </ul>
        </div>"""
    return _render("URL Shortener", body)


def not_found_page(bot_username: str) -> str:
    """Page shown for aliases that do not exist."""
    body = f"""
        <h1>🔍 Link Not Found</h1>
        <p class="error">This shortened URL doesn't exist.</p>
        <p>The link you're trying to access was never created.</p>
        <a href="/" class="button">Go to Homepage</a>
        <p style="margin-top: 30px;">
            <small>Want to create your own short links?
            <a href="{_bot_link(bot_username)}">Try our Telegram Bot</a></small>
        </p>"""
    return _render("Link Not Found - URL Shortener", body)


def error_page() -> str:
    """Page shown when the store is unavailable."""
    body = """
        <h1>⚠️ Oops! Something went wrong</h1>
        <p class="error">The service is temporarily unavailable. Please try again later.</p>
        <a href="/" class="button">Go Back</a>"""
    return _render("Error - URL Shortener", body)
