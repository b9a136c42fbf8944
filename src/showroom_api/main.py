"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.  ``create_app`` is the composition root: it builds
the audit writer, audit facade, reader, upload storage and upload gate
once and keeps them on ``app.state``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from showroom_api.core.background import PeriodicTask
from showroom_api.core.config import Settings, get_settings
from showroom_api.core.logging import setup_logging
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.reader import AuditLogReader
from showroom_api.lib.audit.writer import AuditLogWriter
from showroom_api.lib.uploads.gate import UploadGate
from showroom_api.lib.uploads.storage import CategoryFileStorage
from showroom_api.services.audit_service import rotate_audit_log


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Open the audit log and schedule rotation on startup; close both on shutdown."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_dir)

    writer: AuditLogWriter = app.state.audit_writer
    writer.open()

    rotation = PeriodicTask(
        "audit-rotation",
        settings.audit_rotation_interval_seconds,
        lambda: rotate_audit_log(writer),
    )
    rotation.start()
    logger.info(f"Showroom API started ({settings.environment}); audit log in {writer.log_dir}")

    yield

    await rotation.stop()
    writer.close()
    logger.info("Showroom API stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Showroom API",
        description="Audited file uploads and security audit log administration",
        version="0.1.0",
        lifespan=lifespan,
    )

    writer = AuditLogWriter(
        settings.audit_log_dir,
        settings.audit_max_files,
        console_output=settings.audit_console_output,
    )
    audit = AuditLogger(writer)
    storage = CategoryFileStorage(settings.upload_root)

    app.state.settings = settings
    app.state.audit_writer = writer
    app.state.audit = audit
    app.state.audit_reader = AuditLogReader(settings.audit_log_dir)
    app.state.upload_storage = storage
    app.state.upload_gate = UploadGate(
        storage,
        audit,
        max_filename_length=settings.upload_filename_max_length,
    )

    # Register exception handlers
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Register middleware and routers
    from showroom_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings, audit)
    app.include_router(create_router(settings))

    return app
