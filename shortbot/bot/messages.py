"""Telegram bot message templates and constants.

Contains all user-facing message templates, menu button labels and error
messages. Templates are formatted with Telegram HTML markup; any value coming
from users must be escaped before it is substituted.
"""

# Menu buttons
BUTTON_QUICK_SHORTEN = "🔗 Quick Shorten"
BUTTON_BULK_SHORTEN = "📚 Bulk Shorten"
BUTTON_CUSTOM_ALIAS = "🎯 Custom Alias"
BUTTON_TRACK_URL = "📊 Track URL"
BUTTON_MY_URLS = "📋 My URLs"
BUTTON_HELP = "ℹ️ Help"

# Inline buttons
BUTTON_COPY = "🔗 Copy URL"
BUTTON_TRACK = "📊 Track"
BUTTON_REFRESH_STATS = "🔄 Refresh Stats"
BUTTON_REFRESH_URLS = "🔄 Refresh"

# Commands
START_MESSAGE = "👋 <b>Welcome to URL Shortener Bot!</b>\n\nChoose an option:"

HELP_MESSAGE = (
    "<b>Available Commands:</b>\n\n"
    "🔗 Quick Shorten or /shorten &lt;url&gt; - Simple URL shortening\n"
    "📚 Bulk Shorten or /bulk - Multiple URLs at once\n"
    "🎯 Custom Alias or /custom &lt;url&gt; &lt;alias&gt; - Choose your own alias\n"
    "📊 /track &lt;alias&gt; - View URL statistics\n"
    "📋 /urls - List your shortened URLs\n"
    "📄 /export &lt;alias&gt; - Download click history as CSV"
)

# Prompts
PROMPT_URL = "📝 <b>Send me the URL to shorten:</b>"
PROMPT_BULK = "<b>Bulk URL Shortener</b>\n\nSend multiple URLs separated by spaces:"
PROMPT_CUSTOM_URL = (
    "🎯 <b>Custom URL Creation</b>\n\n"
    "1️⃣ First, send me the URL you want to shorten\n"
    "2️⃣ Then, I'll ask for your custom alias\n\n"
    "Please send the URL now:"
)
PROMPT_CUSTOM_ALIAS = (
    "✅ URL received\n\n"
    "Enter your custom alias:\n"
    "• Use letters, numbers, - and _\n"
    "Example: <code>mylink123</code>"
)
PROMPT_TRACK = (
    "<b>URL Tracking</b>\n\n"
    "Send the alias of the URL you want to track:\n"
    "Example: <code>/track your-alias</code>"
)

# Results
SHORTENED_MESSAGE = (
    "✅ <b>URL shortened successfully!</b>\n\n"
    "🔗 <b>Original URL:</b>\n<code>{original_url}</code>\n\n"
    "✨ <b>Short URL:</b>\n<code>{short_url}</code>\n\n"
    "📊 Use <code>/track {alias}</code> to view statistics"
)
BULK_HEADER = "🔗 <b>Shortened URLs:</b>\n"
BULK_ITEM_OK = "✅ {url}\n➜ <code>{short_url}</code>"
BULK_ITEM_FAILED = "❌ Invalid URL: {url}"
BULK_SUMMARY = "📊 Successfully shortened: {created}/{total}"
COPY_ANSWER = "📋 {short_url}"
EXPORT_CAPTION = "📄 Click history for <code>{alias}</code>"

# Statistics
STATS_TITLE = "📊 <b>URL Statistics</b>"
STATS_NO_CLICKS = "No clicks yet."
STATS_NEVER = "Never"

# URL list
URLS_TITLE = "📋 <b>Your Shortened URLs:</b>"
URLS_EMPTY = "You haven't shortened any URLs yet. Send /shorten &lt;url&gt; to create one."
URLS_MORE = "…and {hidden} more. Use <code>/track &lt;alias&gt;</code> for any of them."

# Usage errors
USAGE_CUSTOM = (
    "❌ <b>Usage:</b> <code>/custom &lt;url&gt; &lt;custom-alias&gt;</code>\n"
    "Example: <code>/custom example.com my-link</code>"
)
USAGE_TRACK = "❌ <b>Usage:</b> <code>/track &lt;alias&gt;</code>"
USAGE_EXPORT = "❌ <b>Usage:</b> <code>/export &lt;alias&gt;</code>"
NO_URLS_DETECTED = "❌ <b>No URLs detected</b>\n\nSend multiple URLs separated by spaces:"

# Validation errors
ERROR_INVALID_URL = "❌ Invalid URL format.\n\nPlease send a valid URL (e.g., <code>https://example.com</code>):"
ERROR_INVALID_ALIAS = (
    "❌ Invalid alias format.\n\n"
    "Please use at most 32 of:\n"
    "• Letters (a-z, A-Z)\n"
    "• Numbers (0-9)\n"
    "• Hyphens (-) and underscores (_)"
)
ERROR_ALIAS_TAKEN = "❌ This alias is already taken!\nPlease choose a different alias:"
ERROR_LINK_NOT_FOUND = "❌ Short URL <code>{alias}</code> not found."

# Generic errors
ERROR_GENERIC = "❌ An error occurred. Please try again."
ERROR_STATS = "❌ An error occurred while fetching statistics"
