"""Audit log service: administrative queries and maintenance over partitions."""

from datetime import date, datetime

from loguru import logger

from showroom_api.lib.audit.events import AuditEventType, Severity
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.reader import AuditLogPage, AuditLogQuery, AuditLogReader, SecurityStats
from showroom_api.lib.audit.writer import AuditLogWriter, PartitionInfo


async def query_audit_logs(
    reader: AuditLogReader,
    *,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    event_type: AuditEventType | None = None,
    actor_id: str | None = None,
    severity: Severity | None = None,
    success: bool | None = None,
    page: int = 1,
    page_size: int = 100,
) -> AuditLogPage:
    """Query audit records with optional filters.

    Args:
        reader: Reader over the partition directory.
        start_time: Only records at or after this instant.
        end_time: Only records at or before this instant.
        event_type: Filter by event type.
        actor_id: Filter by acting principal.
        severity: Filter by severity.
        success: Filter by outcome.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        One page of matching records, newest first.

    Raises:
        ValueError: If the pagination or date range is invalid.
    """
    query = AuditLogQuery(
        start=start_time,
        end=end_time,
        event_type=event_type,
        actor_id=actor_id,
        severity=severity,
        success=success,
        page=page,
        page_size=page_size,
    )
    result = await reader.search(query)
    logger.info(f"Audit log query matched {result.total} record(s)")
    return result


def list_partitions(writer: AuditLogWriter) -> list[PartitionInfo]:
    """List audit partitions, most recently modified first."""
    return writer.list_partitions()


async def get_security_stats(reader: AuditLogReader, day: date | None = None) -> SecurityStats:
    """Security counters for one day (today by default)."""
    return await reader.security_stats(day)


async def get_security_events(reader: AuditLogReader, *, limit: int = 50, days: int = 3) -> list[dict]:
    """Most recent security-relevant records from the last ``days`` partitions."""
    return await reader.security_events(limit=limit, days=days)


def rotate_audit_log(writer: AuditLogWriter) -> bool:
    """Run one rotation check (used by the scheduled task and the CLI)."""
    rotated = writer.rotate()
    if not rotated:
        writer.cleanup()
    return rotated


def purge_audit_logs(
    writer: AuditLogWriter,
    audit: AuditLogger,
    *,
    older_than_days: int,
    actor_id: str | None = None,
    network_origin: str | None = None,
) -> list[str]:
    """Delete partitions older than ``older_than_days`` and record the purge.

    Args:
        writer: The writer owning the partition directory.
        audit: Facade used to record the purge itself.
        older_than_days: Age threshold in days.
        actor_id: Administrator requesting the purge.
        network_origin: Caller address.

    Returns:
        Names of the deleted partition files.
    """
    removed = [path.name for path in writer.purge_older_than(older_than_days)]
    audit.log_log_purge(
        older_than_days=older_than_days,
        deleted_files=removed,
        actor_id=actor_id,
        network_origin=network_origin,
    )
    return removed
