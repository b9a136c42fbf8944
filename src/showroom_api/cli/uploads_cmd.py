"""CLI commands for uploaded files.

``verify`` runs the magic-number check on a local file; ``cleanup`` sweeps
stored uploads older than a threshold and records each removal.
"""

from pathlib import Path

import typer

uploads_app = typer.Typer()


@uploads_app.command("verify")
def verify(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="File to check"),
    mime_type: str = typer.Option(..., "--type", help="Declared MIME type, e.g. image/png"),
) -> None:
    """Check that a file's leading bytes match the declared MIME type."""
    from showroom_api.lib.uploads.policy import normalize_mime_type
    from showroom_api.lib.uploads.signatures import has_signature
    from showroom_api.lib.uploads.signatures import verify as verify_signature

    declared = normalize_mime_type(mime_type)
    content = path.read_bytes()

    if not has_signature(declared):
        typer.echo(f"No signature registered for {declared}; content accepted unchecked")
        return
    if verify_signature(content, declared):
        typer.echo(f"OK: {path.name} matches {declared}")
        return
    typer.echo(f"MISMATCH: {path.name} is not {declared}", err=True)
    raise typer.Exit(code=1)


@uploads_app.command("cleanup")
def cleanup(
    older_than_days: int = typer.Option(..., "--older-than-days", min=0, help="Delete uploads older than this"),
) -> None:
    """Delete stored uploads last modified more than N days ago."""
    from showroom_api.core.config import get_settings
    from showroom_api.lib.audit.facade import AuditLogger
    from showroom_api.lib.audit.writer import AuditLogWriter
    from showroom_api.lib.uploads.maintenance import cleanup_stale_uploads
    from showroom_api.lib.uploads.storage import CategoryFileStorage

    settings = get_settings()
    storage = CategoryFileStorage(settings.upload_root)
    with AuditLogWriter(settings.audit_log_dir, settings.audit_max_files) as writer:
        removed = cleanup_stale_uploads(storage, AuditLogger(writer), older_than_days)

    for path in removed:
        typer.echo(f"  Deleted: {path.parent.name}/{path.name}")
    typer.echo(f"\nCleanup complete: {len(removed)} file(s) removed")
