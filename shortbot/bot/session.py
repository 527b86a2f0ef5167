"""Per-chat conversation state for multi-step bot flows.

Quick Shorten, Bulk Shorten and Custom Alias wait for the user's next
message. The pending step (and, for custom aliases, the URL collected in the
first step) is kept here, keyed by chat id.
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class SessionStep(str, Enum):
    """What the bot expects as the next message in a chat."""

    WAITING_FOR_URL = "waiting_for_url"
    WAITING_FOR_URLS = "waiting_for_urls"
    WAITING_FOR_CUSTOM_URL = "waiting_for_custom_url"
    WAITING_FOR_CUSTOM_ALIAS = "waiting_for_custom_alias"


@dataclass
class ChatSession:
    """Pending conversation step of one chat."""

    step: SessionStep
    url: str | None = None


class SessionStore:
    """In-memory conversation state, lost on restart."""

    def __init__(self) -> None:
        self._sessions: dict[int, ChatSession] = {}

    def get(self, chat_id: int) -> ChatSession | None:
        return self._sessions.get(chat_id)

    def start(self, chat_id: int, step: SessionStep, url: str | None = None) -> ChatSession:
        """Put a chat into ``step``, replacing any pending flow."""
        session = ChatSession(step=step, url=url)
        self._sessions[chat_id] = session
        logger.debug(f"Chat {chat_id} is now {step.value}")
        return session

    def clear(self, chat_id: int) -> None:
        self._sessions.pop(chat_id, None)

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
