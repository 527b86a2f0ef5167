"""Alias resolution against the link store."""

import logging

from ..errors import LinkNotFoundError
from ..models import ShortLink
from .store import LinkStore

logger = logging.getLogger(__name__)


class AliasResolver:
    """Maps a short alias to its stored ShortLink."""

    def __init__(self, store: LinkStore):
        self.store = store

    async def resolve(self, alias: str) -> ShortLink:
        """Look up a short link by exact, case-preserving alias.

        Args:
            alias: Short alias taken from the request path or a bot command.

        Returns:
            The matching ShortLink.

        Raises:
            LinkNotFoundError: If no link has this alias.
            StoreError: If the store could not be queried.
        """
        link = await self.store.get_link(alias)

        # Hosted backends may compare case-insensitively
        if link is None or link.alias != alias:
            logger.debug(f"Alias not found: {alias}")
            raise LinkNotFoundError(alias)

        return link
