"""Short Link Bot Application Package.

A Telegram bot that creates short aliases for URLs, together with an HTTP
redirect service that resolves aliases and records click analytics (device,
browser, approximate location) for every visit.

The application follows a modular architecture with separate concerns for:
- Bot handlers, conversation state and message formatting
- Alias resolution and the aiohttp redirect server
- Click tracking, IP geolocation and statistics aggregation
- Persistent storage (SQLite or a hosted Supabase database)
"""
