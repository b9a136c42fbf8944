"""Administrative audit log endpoints: search, partitions, security views, purge."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from showroom_api.core.config import Settings
from showroom_api.core.dependencies import (
    Actor,
    get_app_settings,
    get_audit_logger,
    get_audit_reader,
    get_audit_writer,
    require_role,
)
from showroom_api.lib.audit.events import AuditEventType, Severity
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.reader import AuditLogReader
from showroom_api.lib.audit.writer import AuditLogWriter
from showroom_api.schemas.audit import (
    AuditLogListResponse,
    AuditPartitionListResponse,
    AuditPartitionResponse,
    AuditPurgeResponse,
    SecurityEventListResponse,
    SecurityStatsResponse,
)
from showroom_api.schemas.common import PaginationMeta
from showroom_api.services.audit_service import (
    get_security_events,
    get_security_stats,
    list_partitions,
    purge_audit_logs,
    query_audit_logs,
)

admin_audit_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_audit_router.get("/audit-logs", response_model=AuditLogListResponse)
async def search_audit_logs(
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    event_type: AuditEventType | None = None,
    actor_id: str | None = None,
    severity: Severity | None = None,
    success: bool | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=100, ge=1, le=1000),
    reader: AuditLogReader = Depends(get_audit_reader),
    _admin: Actor = Depends(require_role("admin")),
) -> AuditLogListResponse:
    """Search audit records (admin only)."""
    try:
        result = await query_audit_logs(
            reader,
            start_time=start_time,
            end_time=end_time,
            event_type=event_type,
            actor_id=actor_id,
            severity=severity,
            success=success,
            page=page,
            page_size=page_size,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return AuditLogListResponse(
        items=result.items,
        pagination=PaginationMeta(
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.pages,
        ),
    )


@admin_audit_router.get("/audit-logs/partitions", response_model=AuditPartitionListResponse)
async def get_partitions(
    writer: AuditLogWriter = Depends(get_audit_writer),
    _admin: Actor = Depends(require_role("admin")),
) -> AuditPartitionListResponse:
    """List audit partitions, most recently modified first (admin only)."""
    items = [AuditPartitionResponse.model_validate(info) for info in list_partitions(writer)]
    return AuditPartitionListResponse(items=items, max_files=writer.max_files)


@admin_audit_router.delete("/audit-logs", response_model=AuditPurgeResponse)
async def purge_partitions(
    older_than_days: int | None = Query(default=None, ge=0),
    writer: AuditLogWriter = Depends(get_audit_writer),
    audit: AuditLogger = Depends(get_audit_logger),
    settings: Settings = Depends(get_app_settings),
    admin: Actor = Depends(require_role("admin")),
) -> AuditPurgeResponse:
    """Delete audit partitions older than ``older_than_days`` (admin only)."""
    days = settings.audit_purge_default_days if older_than_days is None else older_than_days
    removed = purge_audit_logs(
        writer,
        audit,
        older_than_days=days,
        actor_id=admin.id,
        network_origin=admin.network_origin,
    )
    return AuditPurgeResponse(older_than_days=days, deleted_count=len(removed), deleted_files=removed)


@admin_audit_router.get("/security-stats", response_model=SecurityStatsResponse)
async def security_stats(
    day: date | None = None,
    reader: AuditLogReader = Depends(get_audit_reader),
    _admin: Actor = Depends(require_role("admin")),
) -> SecurityStatsResponse:
    """Security counters and hourly histogram for one day (admin only)."""
    stats = await get_security_stats(reader, day)
    return SecurityStatsResponse.model_validate(stats)


@admin_audit_router.get("/security-events", response_model=SecurityEventListResponse)
async def security_events(
    limit: int = Query(default=50, ge=1, le=500),
    days: int = Query(default=3, ge=1, le=31),
    reader: AuditLogReader = Depends(get_audit_reader),
    _admin: Actor = Depends(require_role("admin")),
) -> SecurityEventListResponse:
    """Most recent security-relevant audit records (admin only)."""
    items = await get_security_events(reader, limit=limit, days=days)
    return SecurityEventListResponse(items=items, count=len(items))
