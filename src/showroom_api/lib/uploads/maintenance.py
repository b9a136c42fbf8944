"""Housekeeping for stored uploads."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

from loguru import logger

from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.uploads.policy import UploadCategory
from showroom_api.lib.uploads.storage import CategoryFileStorage


def cleanup_stale_uploads(
    storage: CategoryFileStorage,
    audit: AuditLogger,
    max_age_days: int,
    now: datetime | None = None,
) -> list[Path]:
    """Delete stored uploads last modified more than ``max_age_days`` ago.

    Each removal is recorded as one ``FILE_CLEANUP`` audit record.  A file
    that disappears concurrently is skipped silently; one that cannot be
    deleted is logged and skipped without stopping the sweep.

    Args:
        storage: The upload storage to sweep.
        audit: Facade receiving the cleanup records.
        max_age_days: Age threshold in days.
        now: Reference time; defaults to the current UTC time.

    Returns:
        Paths removed by this sweep.
    """
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=max_age_days)
    removed: list[Path] = []

    for category in UploadCategory:
        for path in storage.iter_files(category):
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
                if modified >= cutoff:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError:
                logger.exception(f"Could not remove stale upload {path}")
                continue
            removed.append(path)
            audit.log_file_cleanup(
                file_name=path.name,
                category=category.value,
                age_days=(now - modified).total_seconds() / 86400,
            )

    logger.info(f"Stale upload cleanup removed {len(removed)} file(s) older than {max_age_days} days")
    return removed
