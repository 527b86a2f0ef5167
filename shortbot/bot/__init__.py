"""Telegram bot implementation package.

Contains the command and message handlers, reply and inline keyboards,
message templates, response formatting and per-chat conversation state
used to create and inspect short links from Telegram.
"""
