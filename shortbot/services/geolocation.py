"""IP geolocation with an in-process location cache.

Resolves client IP addresses to a human readable "City, Region, Country"
string through ipinfo.io. Lookups are best effort: every failure degrades to
``"Unknown"`` and is only logged, so click tracking never fails because of the
geolocation service.

The cache has no per-entry expiry. The whole map is dropped on a fixed
interval by ``LocationCache.run_periodic_clear``.
"""

import asyncio
import ipaddress
import logging
from typing import Final, Protocol

import aiohttp

from ..models import LocationResult

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION: Final = "Unknown"
LOCAL_DEVELOPMENT: Final = "Local Development"
IPV4_MAPPED_PREFIX: Final = "::ffff:"


def normalize_ip(ip: str | None) -> str:
    """Strip whitespace and the IPv6-mapped IPv4 prefix.

    Args:
        ip: Raw address as taken from headers or the socket.

    Returns:
        Normalized address, empty string if nothing usable.
    """
    if not ip:
        return ""
    ip = ip.strip()
    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        ip = ip[len(IPV4_MAPPED_PREFIX):]
    return ip


def _parse_ip(ip: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(ip)
    except ValueError:
        pass

    # "203.0.113.7:51234" as sent by some proxies
    host, sep, port = ip.rpartition(":")
    if sep and "." in host and port.isdigit():
        try:
            return ipaddress.ip_address(host)
        except ValueError:
            return None
    return None


def is_loopback(ip: str) -> bool:
    """Check whether a normalized address points at the local machine."""
    if ip.lower() == "localhost":
        return True
    parsed = _parse_ip(ip)
    return bool(parsed and parsed.is_loopback)


class LocationCache:
    """Process-wide IP to location string cache.

    Reads and writes happen on the event loop thread. ``clear`` swaps in a new
    dict instead of mutating the old one, so a lookup running alongside a clear
    only ever sees a complete map.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, ip: str) -> str | None:
        return self._entries.get(ip)

    def set(self, ip: str, location: str) -> None:
        self._entries[ip] = location

    def clear(self) -> int:
        """Drop every cached entry.

        Returns:
            Number of entries that were dropped.
        """
        dropped = len(self._entries)
        self._entries = {}
        return dropped

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, ip: object) -> bool:
        return ip in self._entries

    async def run_periodic_clear(self, interval_seconds: float) -> None:
        """Clear the cache every ``interval_seconds`` until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            dropped = self.clear()
            logger.info(f"Location cache cleared ({dropped} entries)")


class LocationProvider(Protocol):
    """External IP geolocation service."""

    async def lookup(self, ip: str) -> LocationResult:
        """Resolve an IP address.

        Raises:
            Exception: Any network or decoding failure.
        """
        ...


class IpInfoProvider:
    """ipinfo.io client authenticated with a bearer token."""

    def __init__(
        self,
        api_token: str | None,
        base_url: str = "https://ipinfo.io",
        timeout_seconds: float = 5.0,
        session: aiohttp.ClientSession | None = None,
    ):
        """Initialize ipinfo.io client.

        Args:
            api_token: ipinfo.io API token; lookups are skipped without it.
            base_url: Service base URL.
            timeout_seconds: Total timeout for one HTTP call.
            session: Optional shared HTTP session, created lazily if omitted.
        """
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def lookup(self, ip: str) -> LocationResult:
        if not self.api_token:
            logger.debug("IPINFO_TOKEN not configured, skipping geolocation")
            return LocationResult()

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Accept": "application/json",
        }
        url = f"{self.base_url}/{ip}/json"

        async with self._get_session().get(url, headers=headers, timeout=self.timeout) as response:
            if response.status != 200:
                error_text = await response.text()
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=error_text[:200],
                )
            data = await response.json(content_type=None)

        if not isinstance(data, dict):
            raise ValueError(f"Unexpected geolocation payload: {data!r}")

        logger.debug(f"ipinfo response for {ip}: {data}")
        return LocationResult(
            city=data.get("city") or None,
            region=data.get("region") or None,
            country=data.get("country") or None,
        )

    async def close(self) -> None:
        """Close the owned HTTP session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()


class GeolocationResolver:
    """Resolves client IPs to location strings with caching.

    Concurrent misses for the same IP share one provider call, so a burst of
    clicks from one visitor costs a single lookup.

    Attributes:
        cache: Shared location cache.
        provider: External geolocation service.
        timeout_seconds: Upper bound on a single provider call.
    """

    def __init__(self, cache: LocationCache, provider: LocationProvider, timeout_seconds: float = 5.0):
        self.cache = cache
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self._pending: dict[str, asyncio.Task[str]] = {}

    async def resolve(self, ip: str | None) -> str:
        """Resolve an IP to "City, Region, Country" (any non-empty subset).

        Args:
            ip: Client IP address, possibly IPv6-mapped or padded.

        Returns:
            Location string, "Local Development" for loopback addresses,
            "Unknown" when nothing could be resolved.
        """
        ip = normalize_ip(ip)
        if not ip or ip == UNKNOWN_LOCATION:
            return UNKNOWN_LOCATION

        if is_loopback(ip):
            return LOCAL_DEVELOPMENT

        cached = self.cache.get(ip)
        if cached is not None:
            logger.debug(f"Location cache hit for {ip}: {cached}")
            return cached

        parsed = _parse_ip(ip)
        if parsed is None:
            logger.warning(f"Cannot geolocate malformed IP address: {ip!r}")
            return UNKNOWN_LOCATION

        pending = self._pending.get(ip)
        if pending is None:
            pending = asyncio.create_task(self._lookup(ip, str(parsed)), name=f"geolocate-{ip}")
            self._pending[ip] = pending
            pending.add_done_callback(lambda _: self._pending.pop(ip, None))
        else:
            logger.debug(f"Joining in-flight geolocation lookup for {ip}")

        # A cancelled caller must not cancel the lookup other callers wait on
        return await asyncio.shield(pending)

    async def _lookup(self, ip: str, address: str) -> str:
        try:
            result = await asyncio.wait_for(self.provider.lookup(address), self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Geolocation lookup timed out for {ip} after {self.timeout_seconds}s")
            return UNKNOWN_LOCATION
        except Exception as e:
            logger.warning(f"Geolocation lookup failed for {ip}: {e}")
            return UNKNOWN_LOCATION

        location = result.display_name()
        if not location:
            return UNKNOWN_LOCATION

        self.cache.set(ip, location)
        logger.debug(f"Location resolved for {ip}: {location}")
        return location
