"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from showroom_api.api.middleware import (
    ApiErrorAuditMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    setup_cors,
)
from showroom_api.core.config import Settings
from showroom_api.lib.audit.facade import AuditLogger


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from showroom_api.api.v1.admin_audit import admin_audit_router
    from showroom_api.api.v1.uploads import uploads_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(uploads_router)
    root_router.include_router(admin_audit_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings, audit: AuditLogger) -> None:
    """Register all middleware on the FastAPI app.

    Middleware added last runs first: the rate limiter sees every request,
    and the error auditor wraps the routes directly.

    Args:
        app: The FastAPI application.
        settings: Application settings.
        audit: Facade receiving API error and rate limit records.
    """
    trusted = settings.trusted_proxy_header_list
    app.add_middleware(ApiErrorAuditMiddleware, audit=audit, trusted_proxy_headers=trusted)
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
        trusted_proxy_headers=trusted,
        audit=audit,
    )
