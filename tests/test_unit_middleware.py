"""
Tests for RequestSizeLimitMiddleware and SecurityHeadersMiddleware.

Tests cover:
- Content-Length header validation
- Actual body size validation for POST/PUT/PATCH
- The buffered body is still readable by the endpoint
- Invalid Content-Length header handling
- Security headers on API and docs responses
"""

import pytest
from fastapi import FastAPI, Request, status
from fastapi.testclient import TestClient

from proposals_admin.core.middleware import RequestSizeLimitMiddleware
from proposals_admin.core.security_middleware import SecurityHeadersMiddleware


def _size_limited_app(max_size_mb: int = 1) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_size_mb=max_size_mb)

    @app.post("/echo")
    async def echo(request: Request):
        body = await request.body()
        return {"size": len(body)}

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


class TestRequestSizeLimitMiddlewareInit:
    @pytest.mark.anyio
    async def test_init_default_max_size(self):
        middleware = RequestSizeLimitMiddleware(app=None)
        assert middleware.max_size_bytes == 15 * 1024 * 1024

    @pytest.mark.anyio
    async def test_init_custom_max_size(self):
        middleware = RequestSizeLimitMiddleware(app=None, max_size_mb=5)
        assert middleware.max_size_bytes == 5 * 1024 * 1024


class TestRequestBodySize:
    @pytest.mark.anyio
    async def test_body_exceeding_limit_returns_413(self):
        client = TestClient(_size_limited_app())

        response = client.post("/echo", json={"data": "x" * (2 * 1024 * 1024)})

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error"] == "RequestTooLarge"

    @pytest.mark.anyio
    async def test_body_within_limit_reaches_endpoint(self):
        client = TestClient(_size_limited_app())

        response = client.post("/echo", content=b"x" * 1024)

        assert response.status_code == 200
        assert response.json() == {"size": 1024}

    @pytest.mark.anyio
    async def test_declared_content_length_exceeding_limit_returns_413(self):
        client = TestClient(_size_limited_app())

        response = client.get("/ping", headers={"Content-Length": str(2 * 1024 * 1024)})

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

    @pytest.mark.anyio
    async def test_invalid_content_length_is_ignored(self):
        client = TestClient(_size_limited_app())

        response = client.get("/ping", headers={"Content-Length": "not-a-number"})

        assert response.status_code == 200

    @pytest.mark.anyio
    async def test_get_requests_pass_through(self):
        client = TestClient(_size_limited_app())

        response = client.get("/ping")

        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestSecurityHeadersMiddleware:
    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware, hsts_max_age=600)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        return TestClient(app)

    @pytest.mark.anyio
    async def test_api_responses_are_locked_down(self, client):
        response = client.get("/ping")

        assert response.headers["Strict-Transport-Security"] == "max-age=600; includeSubDomains"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")

    @pytest.mark.anyio
    async def test_docs_allow_their_assets(self, client):
        response = client.get("/docs")

        assert response.status_code == 200
        assert "X-Frame-Options" not in response.headers
        assert "https://cdn.jsdelivr.net" in response.headers["Content-Security-Policy"]

    @pytest.mark.anyio
    async def test_hsts_without_subdomains(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware, include_subdomains=False)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        response = TestClient(app).get("/ping")

        assert response.headers["Strict-Transport-Security"] == "max-age=31536000"
