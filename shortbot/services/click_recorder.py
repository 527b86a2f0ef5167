"""Click tracking for redirect requests.

Builds a ClickEvent from the request context (client IP, user agent, derived
device and location) and persists it through the link store, which also
refreshes the link's click counters.

Recording is not idempotent: every call is a new click. Callers make a single
attempt per redirect and never retry.
"""

import logging
from datetime import UTC, datetime

from ..errors import TrackingError
from ..models import ClickEvent, RequestContext, ShortLink
from .device import classify_device
from .geolocation import GeolocationResolver, normalize_ip
from .store import LinkStore

logger = logging.getLogger(__name__)

UNKNOWN_IP = "Unknown"


def extract_client_ip(context: RequestContext) -> str:
    """Pick the best-effort client IP from a request.

    Order: first X-Forwarded-For entry, then X-Real-IP, then the peer address.

    Args:
        context: Captured request headers and peer address.

    Returns:
        Normalized client IP, "Unknown" if none is available.
    """
    forwarded_for = context.header("x-forwarded-for")
    if forwarded_for:
        first = normalize_ip(forwarded_for.split(",")[0])
        if first:
            return first

    real_ip = normalize_ip(context.header("x-real-ip"))
    if real_ip:
        return real_ip

    remote = normalize_ip(context.remote)
    if remote:
        return remote

    return UNKNOWN_IP


class ClickRecorder:
    """Records click events for resolved short links.

    Responsibilities:
    - Extract the client IP with proxy header fallbacks
    - Classify the client device from the user agent
    - Resolve approximate location via the geolocation resolver
    - Persist the click and refresh the link's counters
    """

    def __init__(self, store: LinkStore, geolocation: GeolocationResolver):
        """Initialize click recorder."""
        self.store = store
        self.geolocation = geolocation

    async def record(self, context: RequestContext, link: ShortLink) -> ClickEvent:
        """Record one click on a short link.

        Args:
            context: Network details of the redirect request.
            link: The resolved short link.

        Returns:
            The persisted ClickEvent.

        Raises:
            TrackingError: If any step of tracking failed.
        """
        if link.id is None:
            raise TrackingError(f"Short link {link.alias} has no store id")

        try:
            ip_address = extract_client_ip(context)
            user_agent = context.user_agent
            device = classify_device(user_agent)
            location = await self.geolocation.resolve(ip_address)

            event = ClickEvent(
                link_id=link.id,
                ip_address=ip_address,
                user_agent=user_agent,
                device=device,
                location=location,
                clicked_at=datetime.now(UTC),
            )
            saved = await self.store.record_click(event)
        except Exception as e:
            raise TrackingError(f"Failed to record click for {link.alias}: {e}") from e

        logger.info(
            f"Click tracked: alias={link.alias} ip={ip_address} device={device} location={location}"
        )
        return saved

    async def record_safely(self, context: RequestContext, link: ShortLink) -> ClickEvent | None:
        """Record a click, logging and absorbing every failure.

        This is the error boundary used by the redirect path.

        Returns:
            The persisted ClickEvent, None if tracking failed.
        """
        try:
            return await self.record(context, link)
        except Exception as e:
            logger.error(f"Click tracking error: alias={link.alias} link_id={link.id} error={e}")
            return None
