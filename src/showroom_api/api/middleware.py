"""CORS, rate limiting, security headers and API-error auditing middleware."""

import time
from collections import defaultdict
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from showroom_api.core.config import Settings
from showroom_api.lib.audit.events import AuditEventType
from showroom_api.lib.audit.facade import AuditLogger

_DEFAULT_TRUSTED_HEADERS = ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"]


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Extract the real client IP from proxy headers or direct connection.

    Checks headers in priority order. For X-Forwarded-For, uses the
    leftmost (client-supplied) IP. Falls back to request.client.host.

    Args:
        request: The incoming Starlette request.
        trusted_headers: Ordered list of header names to check.
            Defaults to ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"].

    Returns:
        The client IP address string, or "unknown" if not determinable.
    """
    headers = trusted_headers if trusted_headers is not None else _DEFAULT_TRUSTED_HEADERS

    for header in headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()
        return value

    if request.client:
        return request.client.host
    return "unknown"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        kwargs["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiting middleware.

    Limits requests per IP address with a sliding window approach.  The
    first rejected request of an IP within a window is recorded as a
    ``RATE_LIMIT_EXCEEDED`` audit event; further rejections in the same
    window are not recorded again.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        trusted_proxy_headers: list[str] | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.trusted_proxy_headers = trusted_proxy_headers
        self.audit = audit
        self._request_counts: dict[str, list[float]] = defaultdict(list)
        self._reported_at: dict[str, float] = {}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = get_client_ip(request, self.trusted_proxy_headers)
        now = time.time()
        window_start = now - 60.0

        # Clean old entries
        self._request_counts[client_ip] = [t for t in self._request_counts[client_ip] if t > window_start]

        if len(self._request_counts[client_ip]) >= self.requests_per_minute:
            if self.audit is not None and self._reported_at.get(client_ip, 0.0) <= window_start:
                self._reported_at[client_ip] = now
                self.audit.log_security_event(
                    "Rate limit exceeded",
                    event_type=AuditEventType.RATE_LIMIT_EXCEEDED,
                    context={
                        "method": request.method,
                        "path": request.url.path,
                        "limit_per_minute": self.requests_per_minute,
                    },
                    network_origin=client_ip,
                    user_agent=request.headers.get("user-agent"),
                )
            return Response(
                content='{"detail":"Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
            )

        self._request_counts[client_ip].append(now)
        return await call_next(request)


class ApiErrorAuditMiddleware(BaseHTTPMiddleware):
    """Record every failed request as an ``API_ERROR`` audit event.

    Responses with a 4xx/5xx status and requests that raise are recorded
    with method, path, status, a short error text and the duration.  The
    acting principal is read from ``request.state.actor_id`` when a route
    dependency resolved one.
    """

    def __init__(
        self,
        app: ASGIApp,
        audit: AuditLogger,
        trusted_proxy_headers: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.audit = audit
        self.trusted_proxy_headers = trusted_proxy_headers

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            self._record(request, 500, type(exc).__name__, started)
            raise

        if response.status_code >= 400:
            self._record(request, response.status_code, _status_phrase(response.status_code), started)
        return response

    def _record(self, request: Request, status_code: int, error: str, started: float) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        self.audit.log_api_error(
            method=request.method,
            url=request.url.path,
            status_code=status_code,
            error=error,
            duration_ms=duration_ms,
            actor_id=getattr(request.state, "actor_id", None),
            network_origin=get_client_ip(request, self.trusted_proxy_headers),
        )
        logger.debug(f"{request.method} {request.url.path} -> {status_code} ({duration_ms} ms)")


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return f"HTTP {status_code}"
