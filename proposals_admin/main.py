import hmac
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from proposals_admin.api.routes.health import router as health_router
from proposals_admin.api.routes.proposals import router as proposals_router
from proposals_admin.core.config import settings
from proposals_admin.core.db import reset_async_engine
from proposals_admin.core.errors import ProposalsAdminError, get_status_code
from proposals_admin.core.middleware import RequestSizeLimitMiddleware
from proposals_admin.core.observability import (
    ObservabilityMiddleware,
    configure_structured_logging,
    extract_request_context,
    metrics_endpoint,
)
from proposals_admin.core.security import close_async_http_client
from proposals_admin.core.security_middleware import SecurityHeadersMiddleware

# Configure structured logging before creating logger
if settings.observability_structured_logs:
    configure_structured_logging(settings.app_log_level)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _sanitize_error_details(details: dict[str, Any]) -> dict[str, Any]:
    """
    Sanitize error details to prevent information leakage in production.

    Removes file paths, SQL statements and schema references.

    Args:
        details: Original error details dictionary

    Returns:
        Sanitized details dictionary
    """
    if settings.app_env != "prod":
        return details

    sanitized = {}
    sensitive_patterns = [
        r"[/\\][\w/-]+\.py",  # File paths
        r"SELECT.*FROM.*WHERE",
        r"INSERT INTO.*VALUES",
        r"UPDATE.*SET.*WHERE",
        r"DELETE FROM.*WHERE",
        r"table\s*[:=]\s*\w+",
    ]

    for key, value in details.items():
        if isinstance(value, str):
            for pattern in sensitive_patterns:
                if re.search(pattern, value, re.IGNORECASE):
                    sanitized[key] = "[REDACTED]"
                    break
            else:
                sanitized[key] = value
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_error_details(value)
        elif isinstance(value, list):
            sanitized[key] = [
                _sanitize_error_details(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            sanitized[key] = value

    return sanitized


def _log_security_event(
    request: Request,
    event_type: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> None:
    """Log an authentication or authorization failure for the audit trail."""
    logger.warning(
        f"Security event: {event_type}",
        extra={
            "security_event": True,
            "event_type": event_type,
            "client_ip": request.client.host if request.client else "unknown",
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "details": details or {},
            **extract_request_context(request),
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Release the shared HTTP client and the database engine on shutdown."""
    yield
    await close_async_http_client()
    await reset_async_engine()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Sets up:
    - Structured logging with correlation IDs
    - Observability middleware (metrics, request tracking)
    - Security headers, CORS and request size limits
    - Exception handlers for domain errors
    - API routers
    - Metrics endpoint for Prometheus scraping
    """
    app = FastAPI(
        title="Proposals Admin API",
        description="Administration of official proposals of participatory spaces",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Observability Middleware (must be first for correlation tracking)

    if settings.observability_enabled:
        app.add_middleware(
            ObservabilityMiddleware,
            request_id_header=settings.observability_request_id_header,
        )

    # Security Headers Middleware (must be before CORS)

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS Configuration

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security Middleware

    # Attachments travel base64-encoded, so the limit is larger than a plain JSON API
    app.add_middleware(RequestSizeLimitMiddleware, max_size_mb=settings.max_request_size_mb)

    # Exception Handlers

    @app.exception_handler(ProposalsAdminError)
    async def proposals_admin_error_handler(
        request: Request, exc: ProposalsAdminError
    ) -> JSONResponse:
        """
        Handle domain-specific errors.

        Maps domain exceptions to HTTP status codes and returns structured
        error responses.
        """
        status_code = get_status_code(exc)

        context = {
            "details": exc.details,
            "path": request.url.path,
            **extract_request_context(request),
        }

        if status_code == 401:
            _log_security_event(request, "AUTH_FAILURE", status_code, {"reason": exc.message})
        elif status_code == 403:
            _log_security_event(request, "AUTHZ_FAILURE", status_code, {"reason": exc.message})
        elif status_code >= 500:
            logger.error(f"{exc.__class__.__name__}: {exc.message}", extra=context)
        else:
            logger.warning(f"{exc.__class__.__name__}: {exc.message}", extra=context)

        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.__class__.__name__,
                "message": exc.message,
                "details": _sanitize_error_details(exc.details),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed request payloads, before any form or command runs."""
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "RequestValidationError",
                "message": "Request validation failed",
                "details": {"errors": errors},
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """
        Handle FastAPI HTTP exceptions (including auth errors).

        Provides consistent error response format for all HTTP exceptions.
        """
        if exc.status_code == 401:
            _log_security_event(request, "AUTH_FAILURE", 401, {"reason": str(exc.detail)})
        elif exc.status_code == 403:
            _log_security_event(request, "AUTHZ_FAILURE", 403, {"reason": str(exc.detail)})
        elif exc.status_code >= 500:
            logger.error(
                f"HTTP {exc.status_code}: {exc.detail}",
                extra={"path": request.url.path, **extract_request_context(request)},
            )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "HTTPException",
                "message": exc.detail,
                "details": {},
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Catch-all handler for unexpected exceptions.

        Logs the full exception and returns a generic 500 error to the client
        without exposing internal implementation details.
        """
        logger.error(
            f"Unhandled exception: {exc}",
            exc_info=True,
            extra={"path": request.url.path, **extract_request_context(request)},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
                "details": {},
            },
        )

    # Router Registration

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(proposals_router, prefix=API_PREFIX)

    # Metrics Endpoint (Prometheus) - Token Protected

    async def protected_metrics(request: Request) -> Response:
        """
        Protected Prometheus metrics endpoint.

        Always requires the X-Metrics-Token header.
        """
        expected_token = settings.metrics_token
        if not expected_token:
            logger.error(
                "Metrics endpoint accessed but METRICS_TOKEN not configured",
                extra={"security_event": True, "event_type": "METRICS_NOT_CONFIGURED"},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Metrics token not configured. Set METRICS_TOKEN environment variable.",
            )

        metrics_token = request.headers.get("X-Metrics-Token")
        if not hmac.compare_digest(metrics_token or "", expected_token):
            logger.warning(
                "Unauthorized metrics access attempt",
                extra={
                    "security_event": True,
                    "event_type": "METRICS_ACCESS_DENIED",
                    "client_ip": request.client.host if request.client else "unknown",
                },
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid metrics token",
            )

        return metrics_endpoint()

    if settings.observability_enabled:
        app.add_route("/metrics", protected_metrics)

    return app


app = create_app()
