"""
Geocoding collaborator.

Resolves a free-text address into coordinates. The admin API only defines
the seam and ships a client for Nominatim-compatible search endpoints;
tests replace it through ``app.dependency_overrides[get_geocoder]``.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from proposals_admin.core.config import settings

logger = logging.getLogger(__name__)

Coordinates = tuple[float, float]


class Geocoder(Protocol):
    async def coordinates(self, address: str) -> Coordinates | None:
        """Return ``(latitude, longitude)`` for ``address`` or None if it cannot be found."""
        ...


class NominatimGeocoder:
    """Geocoder backed by a Nominatim-compatible ``/search`` endpoint."""

    def __init__(
        self,
        url: str | None = None,
        *,
        timeout: float | None = None,
        user_agent: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url or settings.geocoding_url
        self.timeout = timeout if timeout is not None else settings.geocoding_timeout_seconds
        self.user_agent = user_agent or settings.geocoding_user_agent
        self._client = client

    async def coordinates(self, address: str) -> Coordinates | None:
        params = {"q": address, "format": "jsonv2", "limit": 1}
        headers = {"User-Agent": self.user_agent}

        try:
            if self._client is not None:
                response = await self._client.get(
                    self.url, params=params, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.url, params=params, headers=headers)
            response.raise_for_status()
            results = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Geocoding request failed: {e}", extra={"address": address})
            return None

        if not results:
            logger.info("Address could not be geocoded", extra={"address": address})
            return None

        first = results[0]
        try:
            return float(first["lat"]), float(first["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Unexpected geocoding payload", extra={"address": address})
            return None


_geocoder: Geocoder | None = None


def get_geocoder() -> Geocoder:
    """FastAPI dependency returning the shared geocoder."""
    global _geocoder
    if _geocoder is None:
        _geocoder = NominatimGeocoder()
    return _geocoder
