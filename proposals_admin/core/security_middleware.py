"""
Security headers middleware for FastAPI.

The admin API only serves JSON (plus the interactive docs), so every
non-docs response gets a locked-down Content-Security-Policy.
"""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

# Paths that should have relaxed security (docs, OpenAPI schema)
DOCS_PATHS = {"/docs", "/redoc", "/openapi.json"}

_DOCS_CSP = (
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
    "img-src 'self' data: https:",
    "font-src 'self' data: https://cdn.jsdelivr.net",
    "connect-src 'self'",
)

_API_CSP = (
    "default-src 'none'",
    "frame-ancestors 'none'",
    "base-uri 'none'",
    "form-action 'none'",
)

_STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
    "Cross-Origin-Opener-Policy": "same-origin",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds HSTS, framing, CSP and content-sniffing headers to every response."""

    def __init__(
        self,
        app: ASGIApp,
        hsts_max_age: int = 31536000,
        include_subdomains: bool = True,
    ) -> None:
        super().__init__(app)
        hsts_value = f"max-age={hsts_max_age}"
        if include_subdomains:
            hsts_value += "; includeSubDomains"
        self.hsts_value = hsts_value

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        is_docs_path = request.url.path in DOCS_PATHS

        response.headers["Strict-Transport-Security"] = self.hsts_value
        if not is_docs_path:
            response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = "; ".join(
            _DOCS_CSP if is_docs_path else _API_CSP
        )
        for name, value in _STATIC_HEADERS.items():
            response.headers[name] = value

        return response
