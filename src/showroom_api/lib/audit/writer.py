"""Append-only audit log sink partitioned by calendar day.

Records are written as line-delimited JSON to
``<log_dir>/audit-YYYY-MM-DD.log`` (UTC date).  The writer owns the single
open partition handle; rotation swaps that handle for the current day's
partition and then applies count-based retention.  An on-demand, age-based
purge is available separately for administrators.

I/O failures never propagate out of :meth:`AuditLogWriter.append`: the
request that triggered an audit event must not fail because the audit log
could not be written.  They are reported through Loguru instead.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import IO, Self

from loguru import logger

from showroom_api.lib.audit.events import Severity
from showroom_api.lib.audit.record import AuditRecord

PARTITION_PREFIX = "audit-"
PARTITION_SUFFIX = ".log"
DEFAULT_MAX_FILES = 30

_CONSOLE_LEVELS = {
    Severity.LOW: "INFO",
    Severity.MEDIUM: "WARNING",
    Severity.HIGH: "ERROR",
    Severity.CRITICAL: "CRITICAL",
}


def partition_name(day: date) -> str:
    """Return the file name of the partition holding ``day``'s records."""
    return f"{PARTITION_PREFIX}{day.isoformat()}{PARTITION_SUFFIX}"


def parse_partition_day(name: str) -> date | None:
    """Extract the date from a partition file name.

    Args:
        name: A file name such as ``audit-2026-03-01.log``.

    Returns:
        The partition date, or None if the name is not a partition name.
    """
    if not (name.startswith(PARTITION_PREFIX) and name.endswith(PARTITION_SUFFIX)):
        return None
    stem = name[len(PARTITION_PREFIX) : -len(PARTITION_SUFFIX)]
    try:
        return date.fromisoformat(stem)
    except ValueError:
        return None


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PartitionInfo:
    """A partition file found in the log directory."""

    name: str
    path: Path
    day: date | None
    size: int
    modified_at: datetime


class AuditLogWriter:
    """Append-only, date-partitioned writer for audit records.

    Args:
        log_dir: Directory that holds the partitions.
        max_files: Number of partitions kept by :meth:`cleanup`.
        console_output: Also echo each record through Loguru.
        clock: Source of the current time (UTC); injectable for tests.
    """

    def __init__(
        self,
        log_dir: str | Path,
        max_files: int = DEFAULT_MAX_FILES,
        *,
        console_output: bool = False,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if max_files <= 0:
            msg = "max_files must be positive"
            raise ValueError(msg)
        self._log_dir = Path(log_dir)
        self._max_files = max_files
        self._console_output = console_output
        self._clock = clock
        self._handle: IO[str] | None = None
        self._active_day: date | None = None
        self._closed = False

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    @property
    def max_files(self) -> int:
        return self._max_files

    @property
    def active_path(self) -> Path | None:
        """Path of the partition currently open for appends."""
        if self._active_day is None or self._handle is None:
            return None
        return self._log_dir / partition_name(self._active_day)

    def __enter__(self) -> Self:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        """Create the log directory and open today's partition."""
        self._closed = False
        self.rotate()

    def append(self, record: AuditRecord) -> None:
        """Append one record to the active partition.

        Records from one writer land in call order.  Opens a partition on
        first use and rotates when the date has moved on since the last
        write.  Failures are logged, never raised.

        Args:
            record: The record to persist.
        """
        if self._console_output:
            self._echo(record)

        if self._closed:
            logger.warning("Audit log writer is closed; dropped {} record", record.event_type)
            return

        if self._handle is None or self._today() != self._active_day:
            self.rotate()
        if self._handle is None:
            logger.error("No audit partition available; dropped {} record", record.event_type)
            return

        try:
            self._handle.write(record.to_line())
        except (OSError, ValueError):
            logger.exception("Failed to append {} record to {}", record.event_type, self.active_path)

    def rotate(self) -> bool:
        """Switch to the partition for the current date if it changed.

        On a switch the previous handle is closed and retention
        (:meth:`cleanup`) runs.

        Returns:
            True if a new partition became active, False otherwise.
        """
        day = self._today()
        if self._handle is not None and day == self._active_day:
            return False

        path = self._log_dir / partition_name(day)
        try:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            handle = path.open("a", encoding="utf-8", buffering=1)
        except OSError:
            logger.exception("Could not open audit partition {}", path)
            return False

        previous = self._handle
        self._handle = handle
        self._active_day = day
        if previous is not None:
            self._close_handle(previous)
        logger.debug("Audit partition {} is now active", path.name)

        self.cleanup()
        return True

    def cleanup(self) -> list[Path]:
        """Apply count-based retention.

        Partitions are ranked newest first by modification time and every
        partition past ``max_files`` is deleted.  Each deletion is isolated:
        a file that cannot be removed is logged and skipped, and a file that
        is already gone counts as removed by someone else.

        Returns:
            Paths actually deleted by this call.
        """
        removed: list[Path] = []
        active = self.active_path
        for info in self.list_partitions()[self._max_files :]:
            if info.path == active:
                continue
            if self._remove(info.path):
                removed.append(info.path)
        if removed:
            logger.info("Audit retention removed {} partition(s)", len(removed))
        return removed

    def purge_older_than(self, days: int) -> list[Path]:
        """Delete partitions last modified more than ``days`` days ago.

        This is the administrative, age-based purge; it is not part of
        automatic rotation.  The active partition is never deleted.

        Args:
            days: Age threshold in days.

        Returns:
            Paths actually deleted by this call.

        Raises:
            ValueError: If ``days`` is negative.
        """
        if days < 0:
            msg = "days must not be negative"
            raise ValueError(msg)
        cutoff = self._clock() - timedelta(days=days)
        active = self.active_path
        removed: list[Path] = []
        for info in self.list_partitions():
            if info.path == active or info.modified_at >= cutoff:
                continue
            if self._remove(info.path):
                removed.append(info.path)
        logger.info("Audit purge removed {} partition(s) older than {} days", len(removed), days)
        return removed

    def list_partitions(self) -> list[PartitionInfo]:
        """List partition files, newest modification time first."""
        if not self._log_dir.is_dir():
            return []
        partitions: list[PartitionInfo] = []
        for path in self._log_dir.glob(f"{PARTITION_PREFIX}*{PARTITION_SUFFIX}"):
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Skipping unreadable audit partition {}: {}", path.name, exc)
                continue
            partitions.append(
                PartitionInfo(
                    name=path.name,
                    path=path,
                    day=parse_partition_day(path.name),
                    size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                )
            )
        partitions.sort(key=lambda p: p.modified_at, reverse=True)
        return partitions

    def flush(self) -> None:
        """Flush buffered records of the active partition to disk."""
        if self._handle is None:
            return
        try:
            self._handle.flush()
        except (OSError, ValueError):
            logger.exception("Failed to flush audit partition {}", self.active_path)

    def close(self) -> None:
        """Flush and close the active partition.  Safe to call twice."""
        self._closed = True
        if self._handle is None:
            return
        handle = self._handle
        self._handle = None
        self._active_day = None
        self._close_handle(handle)

    def _today(self) -> date:
        return self._clock().astimezone(UTC).date()

    @staticmethod
    def _close_handle(handle: IO[str]) -> None:
        try:
            handle.flush()
            handle.close()
        except (OSError, ValueError):
            logger.exception("Failed to close audit partition {}", getattr(handle, "name", "?"))

    @staticmethod
    def _remove(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.exception("Could not delete audit partition {}", path)
            return False
        return True

    @staticmethod
    def _echo(record: AuditRecord) -> None:
        logger.bind(
            audit=True,
            event_type=str(record.event_type),
            actor_id=record.actor_id,
            network_origin=record.network_origin,
        ).log(
            _CONSOLE_LEVELS[record.severity],
            "[AUDIT] {}: {}",
            record.event_type,
            record.message,
        )
