"""Network reachability checks."""

from typing import Protocol

import httpx
import structlog

from geo_weather.config import Settings

logger = structlog.get_logger()


class ConnectivityChecker(Protocol):
    """Reports whether the network is currently reachable."""

    async def is_connected(self) -> bool: ...


class StaticConnectivity:
    """Connectivity checker with a fixed answer."""

    def __init__(self, connected: bool = True) -> None:
        self.connected = connected

    async def is_connected(self) -> bool:
        return self.connected


class HttpConnectivityChecker:
    """Probe a URL with a HEAD request.

    Any HTTP response counts as reachable, whatever its status. Only a
    transport failure means offline.
    """

    def __init__(self, settings: Settings) -> None:
        self._url = settings.connectivity_probe_url
        self._timeout = settings.connectivity_probe_timeout_seconds

    async def is_connected(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                await client.head(self._url)
        except httpx.RequestError as e:
            logger.info("Connectivity probe failed", url=self._url, error=str(e))
            return False
        return True
