"""Security middleware for FastAPI application."""

import logging
from collections.abc import Callable

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

_TOO_LARGE_BODY = (
    '{"error":"RequestTooLarge","message":"Request body exceeds maximum allowed size"}'
)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware to limit request body size.

    Attachments are uploaded base64-encoded inside JSON bodies, so the limit
    must stay above the attachment size limit.

    SECURITY: Validates both Content-Length header AND actual body size
    to prevent bypass via missing/falsified headers.
    """

    def __init__(self, app, max_size_mb: int = 15):
        """
        Initialize middleware with max request size.

        Args:
            app: FastAPI application
            max_size_mb: Maximum request size in megabytes
        """
        super().__init__(app)
        self.max_size_bytes = max_size_mb * 1024 * 1024

    def _reject(self, request: Request, size: int, source: str) -> Response:
        logger.warning(
            f"Request size {size} bytes ({source}) exceeds limit {self.max_size_bytes} bytes",
            extra={"path": request.url.path},
        )
        return Response(
            content=_TOO_LARGE_BODY,
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            media_type="application/json",
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                size = 0
            if size > self.max_size_bytes:
                return self._reject(request, size, "from header")

        if request.method in ("POST", "PUT", "PATCH"):
            body = await request.body()
            if len(body) > self.max_size_bytes:
                return self._reject(request, len(body), "actual")

            async def receive():
                return {"type": "http.request", "body": body}

            request._receive = receive

        return await call_next(request)
