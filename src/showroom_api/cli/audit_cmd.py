"""CLI commands for audit log administration.

Provides search, partition listing, a manual rotation check and the
age-based purge.
"""

import asyncio
import json
from datetime import datetime

import typer

from showroom_api.lib.audit.events import AuditEventType, Severity
from showroom_api.lib.audit.writer import AuditLogWriter

audit_app = typer.Typer()


def _open_writer() -> AuditLogWriter:
    from showroom_api.core.config import get_settings

    settings = get_settings()
    return AuditLogWriter(settings.audit_log_dir, settings.audit_max_files)


@audit_app.command("search")
def search(
    event_type: AuditEventType | None = typer.Option(None, "--event-type", help="Filter by event type"),
    actor_id: str | None = typer.Option(None, "--actor", help="Filter by acting principal"),
    severity: Severity | None = typer.Option(None, "--severity", help="Filter by severity"),
    start: datetime | None = typer.Option(None, "--start", help="Only records at or after this time (UTC)"),
    end: datetime | None = typer.Option(None, "--end", help="Only records at or before this time (UTC)"),
    page: int = typer.Option(1, "--page", min=1, help="Page number"),
    page_size: int = typer.Option(50, "--page-size", min=1, help="Records per page"),
) -> None:
    """Print matching audit records as JSON lines, newest first."""
    asyncio.run(_search_impl(event_type, actor_id, severity, start, end, page, page_size))


async def _search_impl(
    event_type: AuditEventType | None,
    actor_id: str | None,
    severity: Severity | None,
    start: datetime | None,
    end: datetime | None,
    page: int,
    page_size: int,
) -> None:
    """Async implementation of the search command."""
    from showroom_api.core.config import get_settings
    from showroom_api.lib.audit.reader import AuditLogReader
    from showroom_api.services.audit_service import query_audit_logs

    settings = get_settings()
    reader = AuditLogReader(settings.audit_log_dir)
    try:
        result = await query_audit_logs(
            reader,
            start_time=start,
            end_time=end,
            event_type=event_type,
            actor_id=actor_id,
            severity=severity,
            page=page,
            page_size=page_size,
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    for entry in result.items:
        typer.echo(json.dumps(entry))
    typer.echo(f"\nShowing {len(result.items)} of {result.total} (page {result.page}/{max(result.pages, 1)})")


@audit_app.command("partitions")
def partitions() -> None:
    """List audit partitions, most recently modified first."""
    from showroom_api.services.audit_service import list_partitions

    writer = _open_writer()
    infos = list_partitions(writer)
    typer.echo(f"{'Partition':<26} {'Size':>10}  {'Modified (UTC)':<20}")
    typer.echo("-" * 58)
    for info in infos:
        typer.echo(f"{info.name:<26} {info.size:>10}  {info.modified_at:%Y-%m-%d %H:%M:%S}")
    typer.echo(f"\nTotal: {len(infos)} (retention keeps {writer.max_files})")


@audit_app.command("rotate")
def rotate() -> None:
    """Open today's partition and apply count-based retention."""
    from showroom_api.services.audit_service import rotate_audit_log

    writer = _open_writer()
    try:
        rotate_audit_log(writer)
        active = writer.active_path
    finally:
        writer.close()
    typer.echo(f"Active partition: {active.name if active else '(none)'}")


@audit_app.command("purge")
def purge(
    older_than_days: int | None = typer.Option(
        None,
        "--older-than-days",
        min=0,
        help="Delete partitions older than this [default: AUDIT_PURGE_DEFAULT_DAYS]",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete audit partitions last modified more than N days ago."""
    from showroom_api.lib.audit.facade import AuditLogger
    from showroom_api.services.audit_service import purge_audit_logs

    if older_than_days is None:
        from showroom_api.core.config import get_settings

        older_than_days = get_settings().audit_purge_default_days

    if not yes:
        typer.confirm(f"Delete audit partitions older than {older_than_days} days?", abort=True)

    writer = _open_writer()
    writer.open()
    try:
        removed = purge_audit_logs(
            writer,
            AuditLogger(writer),
            older_than_days=older_than_days,
            actor_id="cli",
            network_origin="localhost",
        )
    finally:
        writer.close()

    for name in removed:
        typer.echo(f"  Deleted: {name}")
    typer.echo(f"\nPurge complete: {len(removed)} partition(s) removed")
