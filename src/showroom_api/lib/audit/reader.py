"""Read-only queries over the audit log partitions.

The partitions written by :class:`~showroom_api.lib.audit.writer.AuditLogWriter`
are the only store: searching means reading the relevant day files, parsing
each JSON line and filtering in memory.  Lines that do not parse are skipped.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import aiofiles
from loguru import logger

from showroom_api.lib.audit.events import SECURITY_EVENTS, AuditEventType, Severity, is_security_relevant
from showroom_api.lib.audit.writer import PARTITION_PREFIX, PARTITION_SUFFIX, parse_partition_day, partition_name


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def _entry_time(entry: dict[str, Any]) -> datetime | None:
    raw = entry.get("timestamp")
    if not isinstance(raw, str):
        return None
    try:
        return _as_utc(datetime.fromisoformat(raw))
    except ValueError:
        return None


@dataclass(frozen=True)
class AuditLogQuery:
    """Filters and pagination for :meth:`AuditLogReader.search`.

    ``start`` and ``end`` are inclusive; naive datetimes are taken as UTC.
    """

    start: datetime | None = None
    end: datetime | None = None
    event_type: AuditEventType | None = None
    actor_id: str | None = None
    severity: Severity | None = None
    success: bool | None = None
    page: int = 1
    page_size: int = 100

    def __post_init__(self) -> None:
        if self.page < 1:
            msg = "page must be >= 1"
            raise ValueError(msg)
        if self.page_size < 1:
            msg = "page_size must be >= 1"
            raise ValueError(msg)
        if self.start is not None and self.end is not None and _as_utc(self.start) > _as_utc(self.end):
            msg = "start must not be after end"
            raise ValueError(msg)

    def covers_day(self, day: date) -> bool:
        if self.start is not None and day < _as_utc(self.start).date():
            return False
        return not (self.end is not None and day > _as_utc(self.end).date())

    def matches(self, entry: dict[str, Any], when: datetime) -> bool:
        if self.start is not None and when < _as_utc(self.start):
            return False
        if self.end is not None and when > _as_utc(self.end):
            return False
        if self.event_type is not None and entry.get("eventType") != self.event_type:
            return False
        if self.actor_id is not None and entry.get("actorId") != self.actor_id:
            return False
        if self.severity is not None and entry.get("severity") != self.severity:
            return False
        return self.success is None or entry.get("success") is self.success


@dataclass(frozen=True)
class AuditLogPage:
    """One page of search results, newest first."""

    items: list[dict[str, Any]]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


@dataclass(frozen=True)
class HourlyCount:
    hour: int
    count: int = 0
    failed_logins: int = 0
    security_events: int = 0


@dataclass(frozen=True)
class SecurityStats:
    """Security counters for one day's partition."""

    day: date
    total_events: int = 0
    security_events: int = 0
    failed_logins: int = 0
    successful_logins: int = 0
    file_uploads: int = 0
    critical_events: int = 0
    by_hour: list[HourlyCount] = field(default_factory=list)


class AuditLogReader:
    """Query surface over the partitions in ``log_dir``."""

    def __init__(self, log_dir: str | Path) -> None:
        self._log_dir = Path(log_dir)

    def partitions(self) -> list[tuple[date, Path]]:
        """Return ``(day, path)`` for every partition, most recent day first."""
        if not self._log_dir.is_dir():
            return []
        found: list[tuple[date, Path]] = []
        for path in self._log_dir.glob(f"{PARTITION_PREFIX}*{PARTITION_SUFFIX}"):
            day = parse_partition_day(path.name)
            if day is not None:
                found.append((day, path))
        found.sort(key=lambda item: item[0], reverse=True)
        return found

    async def read_partition(self, path: Path) -> list[dict[str, Any]]:
        """Parse every well-formed line of one partition, in file order.

        A partition deleted between listing and reading yields no entries.
        """
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning("Skipping unreadable audit partition {}: {}", path.name, exc)
            return []

        entries: list[dict[str, Any]] = []
        for lineno, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping malformed audit line {}:{}", path.name, lineno)
                continue
            if isinstance(entry, dict):
                entries.append(entry)
        return entries

    async def search(self, query: AuditLogQuery) -> AuditLogPage:
        """Filter and paginate records across the partitions the query covers.

        Args:
            query: Filters and page selection.

        Returns:
            The requested page, newest records first, with the total match count.
        """
        matched: list[tuple[datetime, dict[str, Any]]] = []
        for day, path in self.partitions():
            if not query.covers_day(day):
                continue
            for entry in await self.read_partition(path):
                when = _entry_time(entry)
                if when is not None and query.matches(entry, when):
                    matched.append((when, entry))

        # Stable ascending sort then reverse, so records sharing a timestamp
        # come back in reverse append order.
        matched.sort(key=lambda item: item[0])
        matched.reverse()
        offset = (query.page - 1) * query.page_size
        items = [entry for _, entry in matched[offset : offset + query.page_size]]
        return AuditLogPage(items=items, total=len(matched), page=query.page, page_size=query.page_size)

    async def security_events(self, limit: int = 50, days: int = 3) -> list[dict[str, Any]]:
        """Return the most recent security-relevant records.

        Args:
            limit: Maximum number of records returned.
            days: Number of most recent partitions scanned.

        Returns:
            Records newest first.
        """
        events: list[tuple[datetime, dict[str, Any]]] = []
        for _, path in self.partitions()[:days]:
            for entry in await self.read_partition(path):
                when = _entry_time(entry)
                if when is None:
                    continue
                if is_security_relevant(str(entry.get("eventType", "")), str(entry.get("severity", ""))):
                    events.append((when, entry))
        events.sort(key=lambda item: item[0])
        events.reverse()
        return [entry for _, entry in events[:limit]]

    async def security_stats(self, day: date | None = None) -> SecurityStats:
        """Compute security counters and an hourly histogram for one day.

        Args:
            day: The partition date; defaults to today (UTC).

        Returns:
            Counters for that day; all zero when no partition exists.
        """
        day = day or datetime.now(UTC).date()
        entries = await self.read_partition(self._log_dir / partition_name(day))

        hourly = [{"count": 0, "failed_logins": 0, "security_events": 0} for _ in range(24)]
        totals = {
            "security_events": 0,
            "failed_logins": 0,
            "successful_logins": 0,
            "file_uploads": 0,
            "critical_events": 0,
        }
        counted = 0
        for entry in entries:
            when = _entry_time(entry)
            if when is None:
                continue
            counted += 1
            event_type = entry.get("eventType")
            severity = entry.get("severity")
            is_security = event_type in SECURITY_EVENTS
            bucket = hourly[when.hour]
            bucket["count"] += 1
            if is_security:
                totals["security_events"] += 1
                bucket["security_events"] += 1
            if event_type == AuditEventType.LOGIN_FAILURE:
                totals["failed_logins"] += 1
                bucket["failed_logins"] += 1
            elif event_type == AuditEventType.LOGIN_SUCCESS:
                totals["successful_logins"] += 1
            elif event_type == AuditEventType.FILE_UPLOAD:
                totals["file_uploads"] += 1
            if severity in (Severity.HIGH, Severity.CRITICAL):
                totals["critical_events"] += 1

        return SecurityStats(
            day=day,
            total_events=counted,
            by_hour=[HourlyCount(hour=hour, **counts) for hour, counts in enumerate(hourly)],
            **totals,
        )
