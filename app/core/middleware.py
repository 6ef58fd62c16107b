"""
HTTP Middleware

- RequestLoggingMiddleware: one log line per request, with a request id
- SecurityHeadersMiddleware: hardening headers on every response
- ErrorHandlingMiddleware: unhandled exceptions become a JSON 500 inside the
  stack, so the request id and security headers still reach the client
"""

import logging
import time
import uuid
from typing import Any, Callable, Iterable, Mapping

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.config import Settings, get_settings
from app.schemas import ErrorResponse

logger = logging.getLogger("app.http")
error_logger = logging.getLogger("app.errors")

GENERIC_ERROR_DETAIL = "An unexpected error occurred"

REQUEST_ID_HEADER = "X-Request-ID"

# Keys removed (not masked) before anything reaches the logs
REDACTED_KEYS = frozenset({"authorization", "password", "pass", "token"})


def redact(data: Mapping[str, Any], keys: Iterable[str] = REDACTED_KEYS) -> dict[str, Any]:
    """Copy of ``data`` without sensitive keys, recursing into nested mappings."""
    blocked = {k.lower() for k in keys}
    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        if str(key).lower() in blocked:
            continue
        cleaned[key] = redact(value, blocked) if isinstance(value, Mapping) else value
    return cleaned


def level_for(status_code: int, failed: bool = False) -> int:
    """Log level for a finished request."""
    if failed or status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        context: dict[str, Any] = {
            "req": {
                "id": request_id,
                "method": request.method,
                "url": request.url.path,
                "query": redact(dict(request.query_params)),
                "headers": redact(dict(request.headers)),
                "remote": request.client.host if request.client else None,
            },
        }

        try:
            response = await call_next(request)
        except Exception:
            context["responseTime"] = round((time.perf_counter() - started) * 1000, 2)
            context["res"] = {"statusCode": 500}
            logger.exception("request errored", extra={"context": context})
            raise

        elapsed = round((time.perf_counter() - started) * 1000, 2)
        context["res"] = {"statusCode": response.status_code}
        context["responseTime"] = elapsed

        logger.log(
            level_for(response.status_code),
            f"{request.method} {request.url.path} {response.status_code} {elapsed}ms",
            extra={"context": context},
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# Swagger UI assets come from jsdelivr, the welcome page loads Google Fonts
# and ReDoc starts its search worker from a blob: URL
CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "base-uri 'self'",
    "font-src 'self' https: data:",
    "form-action 'self'",
    "frame-ancestors 'self'",
    "img-src 'self' data: https://fastapi.tiangolo.com",
    "object-src 'none'",
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
    "script-src-attr 'none'",
    "worker-src 'self' blob:",
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net https://fonts.googleapis.com",
])

SECURITY_HEADERS = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds SECURITY_HEADERS unless the handler already set them."""

    def __init__(self, app: ASGIApp, headers: Mapping[str, str] = SECURITY_HEADERS) -> None:
        super().__init__(app)
        self.headers = dict(headers)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            if name not in response.headers:
                response.headers[name] = value
        return response


# =============================================================================
# ERROR HANDLING
# =============================================================================

def error_response(exc: Exception, settings: Settings) -> JSONResponse:
    """500 payload; the exception message is hidden in production."""
    error = ErrorResponse(
        error="Internal Server Error",
        detail=GENERIC_ERROR_DETAIL if settings.is_production else str(exc),
    )
    return JSONResponse(status_code=500, content=error.model_dump())


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Turns exceptions escaping the routes into the standard error response.

    Registered inside the logging and security header middleware so the 500
    is logged with its request id and carries the same headers as any other
    response.
    """

    def __init__(
        self,
        app: ASGIApp,
        settings_getter: Callable[[], Settings] = get_settings,
    ) -> None:
        super().__init__(app)
        self.settings_getter = settings_getter

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", None)
            error_logger.exception(
                f"Unhandled exception: {e}",
                extra={"context": {"req": {"id": request_id, "url": request.url.path}}},
            )
            return error_response(e, self.settings_getter())
