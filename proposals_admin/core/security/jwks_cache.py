"""
JWKS cache with TTL support for Auth0 token verification.

Caches the JWKS response to avoid fetching it on every token verification.
Keys are automatically refreshed when the cache expires (default 1 hour).
When a refresh fails, the last known key set is served until Auth0 is
reachable again.
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from proposals_admin.core.config import settings
from proposals_admin.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)

_async_http: httpx.AsyncClient | None = None


def get_async_http_client() -> httpx.AsyncClient:
    """Get or create the async HTTP client singleton."""
    global _async_http
    if _async_http is None:
        _async_http = httpx.AsyncClient(timeout=httpx.Timeout(10.0))
    return _async_http


async def close_async_http_client() -> None:
    """Close the async HTTP client (for graceful shutdown)."""
    global _async_http
    if _async_http is not None:
        await _async_http.aclose()
        _async_http = None


class JWKSCache:
    """In-memory cache for Auth0 JWKS with time-to-live (TTL) support."""

    def __init__(self, ttl_seconds: int = 3600, jwks_url: str | None = None):
        """
        Initialize the JWKS cache.

        Args:
            ttl_seconds: Time-to-live for cached keys in seconds (default 1 hour)
            jwks_url: Override for the key set location
        """
        self._cache: dict[str, Any] | None = None
        self._cache_time: datetime | None = None
        self._ttl_seconds = ttl_seconds
        self._jwks_url = jwks_url or f"https://{settings.auth0_domain}/.well-known/jwks.json"
        self._lock = asyncio.Lock()

    def _is_cache_valid(self, now: datetime) -> bool:
        return (
            self._cache is not None
            and self._cache_time is not None
            and now - self._cache_time < timedelta(seconds=self._ttl_seconds)
        )

    async def get_jwks(self, client: httpx.AsyncClient | None = None) -> dict[str, Any]:
        """
        Get JWKS from cache or fetch from Auth0.

        Args:
            client: HTTP client to use (defaults to the shared client)

        Returns:
            JWKS dictionary containing signing keys

        Raises:
            UnauthorizedError: If JWKS fetch fails and no cache is available
        """
        now = datetime.now(UTC)

        async with self._lock:
            if self._is_cache_valid(now):
                logger.debug("Using cached JWKS")
                return self._cache

            logger.info(f"Fetching JWKS from {self._jwks_url}")
            http = client or get_async_http_client()
            try:
                response = await http.get(self._jwks_url)
                response.raise_for_status()
                jwks = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Failed to fetch JWKS: {e}")
                if self._cache is not None:
                    logger.warning("Using stale JWKS cache as fallback")
                    return self._cache
                raise UnauthorizedError(
                    "Unable to verify token: authentication service unavailable"
                ) from e

            self._cache = jwks
            self._cache_time = now
            logger.info("JWKS cache refreshed successfully")
            return self._cache

    def clear(self) -> None:
        """Clear the JWKS cache (useful for testing)."""
        self._cache = None
        self._cache_time = None
        logger.debug("JWKS cache cleared")


_jwks_cache = JWKSCache(ttl_seconds=settings.jwks_cache_ttl_seconds)


async def get_jwks_async() -> dict[str, Any]:
    """
    Fetch Auth0's JSON Web Key Set (JWKS) for token verification.

    Returns:
        JWKS dictionary containing public keys

    Raises:
        UnauthorizedError: If JWKS endpoint is unreachable
    """
    return await _jwks_cache.get_jwks()


def clear_jwks_cache() -> None:
    """Clear the shared JWKS cache."""
    _jwks_cache.clear()
