"""
Tests for JWKS cache functionality.
"""

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from proposals_admin.core.errors import UnauthorizedError
from proposals_admin.core.security.jwks_cache import JWKSCache

JWKS_URL = "https://test.auth0.com/.well-known/jwks.json"
JWKS = {"keys": [{"kid": "test", "kty": "RSA"}]}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class CountingHandler:
    def __init__(self, response: httpx.Response | None = None):
        self.calls = 0
        self.response = response or httpx.Response(200, json=JWKS)
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.response


class TestJWKSCache:
    @pytest.mark.anyio
    async def test_get_jwks_caches_response(self):
        cache = JWKSCache(ttl_seconds=3600, jwks_url=JWKS_URL)
        handler = CountingHandler()

        async with _client(handler) as client:
            result1 = await cache.get_jwks(client)
            result2 = await cache.get_jwks(client)

        assert result1 == JWKS
        assert result2 == JWKS
        assert handler.calls == 1

    @pytest.mark.anyio
    async def test_get_jwks_requests_configured_url(self):
        cache = JWKSCache(jwks_url=JWKS_URL)
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=JWKS)

        async with _client(handler) as client:
            await cache.get_jwks(client)

        assert seen == [JWKS_URL]

    @pytest.mark.anyio
    async def test_get_jwks_fallback_to_stale_cache_on_error(self):
        cache = JWKSCache(ttl_seconds=0, jwks_url=JWKS_URL)
        handler = CountingHandler()

        async with _client(handler) as client:
            await cache.get_jwks(client)
            handler.error = httpx.ConnectError("Network error")

            result = await cache.get_jwks(client)

        assert result == JWKS
        assert handler.calls == 2

    @pytest.mark.anyio
    async def test_get_jwks_without_cache_raises_unauthorized(self):
        cache = JWKSCache(jwks_url=JWKS_URL)
        handler = CountingHandler()
        handler.error = httpx.ConnectError("Network error")

        async with _client(handler) as client:
            with pytest.raises(UnauthorizedError) as exc_info:
                await cache.get_jwks(client)

        assert "authentication service unavailable" in str(exc_info.value)

    @pytest.mark.anyio
    async def test_jwks_cache_error_response(self):
        cache = JWKSCache(jwks_url=JWKS_URL)
        handler = CountingHandler(httpx.Response(500, text="boom"))

        async with _client(handler) as client:
            with pytest.raises(UnauthorizedError):
                await cache.get_jwks(client)

    @pytest.mark.anyio
    async def test_jwks_cache_invalid_json(self):
        cache = JWKSCache(jwks_url=JWKS_URL)
        handler = CountingHandler(httpx.Response(200, text="not json"))

        async with _client(handler) as client:
            with pytest.raises(UnauthorizedError):
                await cache.get_jwks(client)

    @pytest.mark.anyio
    async def test_jwks_cache_ttl_expiration(self):
        cache = JWKSCache(ttl_seconds=60, jwks_url=JWKS_URL)
        handler = CountingHandler()

        async with _client(handler) as client:
            await cache.get_jwks(client)
            cache._cache_time = datetime.now(UTC) - timedelta(seconds=120)

            result = await cache.get_jwks(client)

        assert result == JWKS
        assert handler.calls == 2

    @pytest.mark.anyio
    async def test_clear_cache(self):
        cache = JWKSCache()
        cache._cache = {"test": "data"}
        cache._cache_time = datetime.now(UTC)
        cache.clear()
        assert cache._cache is None
        assert cache._cache_time is None

    @pytest.mark.anyio
    async def test_default_url_uses_auth0_domain(self):
        cache = JWKSCache()
        assert cache._jwks_url.endswith("/.well-known/jwks.json")
        assert cache._jwks_url.startswith("https://")


class TestJWKSCacheEdgeCases:
    @pytest.mark.anyio
    async def test_cache_valid_with_none_cache(self):
        cache = JWKSCache()
        cache._cache = None
        cache._cache_time = None

        now = datetime.now(UTC)
        assert cache._is_cache_valid(now) is False

    @pytest.mark.anyio
    async def test_cache_valid_with_expired_cache(self):
        cache = JWKSCache(ttl_seconds=60)
        cache._cache = {"keys": []}
        cache._cache_time = datetime.now(UTC) - timedelta(seconds=120)

        now = datetime.now(UTC)
        assert cache._is_cache_valid(now) is False

    @pytest.mark.anyio
    async def test_cache_valid_with_fresh_cache(self):
        cache = JWKSCache(ttl_seconds=60)
        cache._cache = {"keys": []}
        cache._cache_time = datetime.now(UTC)

        assert cache._is_cache_valid(datetime.now(UTC)) is True
