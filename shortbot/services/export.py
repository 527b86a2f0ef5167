"""CSV export of click events for link owners."""

import logging
from datetime import UTC, datetime

from ..errors import LinkNotFoundError, StoreError
from .device import classify_browser
from .resolver import AliasResolver
from .store import LinkStore

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["clicked_at", "ip_address", "device", "browser", "location", "user_agent"]


class ExportService:
    """Builds CSV exports of a link's click history."""

    def __init__(self, store: LinkStore, resolver: AliasResolver):
        self.store = store
        self.resolver = resolver

    async def export_clicks_csv(self, alias: str, owner_id: int) -> tuple[str, bytes]:
        """Export all click events of a link owned by ``owner_id``.

        Args:
            alias: Short alias to export.
            owner_id: Telegram user requesting the export.

        Returns:
            Tuple of suggested filename and CSV content.

        Raises:
            LinkNotFoundError: If the alias does not exist or belongs to someone else.
            StoreError: If the store could not be queried.
        """
        import pandas as pd

        link = await self.resolver.resolve(alias)
        if link.owner_id != owner_id:
            logger.warning(f"User {owner_id} tried to export foreign link {alias}")
            raise LinkNotFoundError(alias)
        if link.id is None:
            raise StoreError(f"Stored link {alias} has no id")

        events = await self.store.list_clicks(link.id)
        rows = [
            {
                "clicked_at": event.clicked_at.isoformat(),
                "ip_address": event.ip_address,
                "device": event.device,
                "browser": classify_browser(event.user_agent),
                "location": event.location,
                "user_agent": event.user_agent,
            }
            for event in events
        ]

        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        content = df.to_csv(index=False).encode("utf-8")

        filename = f"clicks_{alias}_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}.csv"
        logger.info(f"Exported {len(df)} clicks for {alias}")
        return filename, content
