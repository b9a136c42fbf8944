"""Audit logging: typed events, the append-only partition writer, and queries.

Public API:
    - ``AuditEventType``, ``Severity``: the closed event and severity sets
    - ``AuditRecord``: one immutable audit entry
    - ``AuditLogWriter``: day-partitioned line-delimited JSON sink
    - ``AuditLogger``: typed entry points used by the rest of the application
    - ``AuditLogReader``, ``AuditLogQuery``: administrative read interface
"""

from showroom_api.lib.audit.events import AuditEventType, Severity
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.reader import AuditLogPage, AuditLogQuery, AuditLogReader, SecurityStats
from showroom_api.lib.audit.record import AuditRecord
from showroom_api.lib.audit.writer import AuditLogWriter, PartitionInfo, partition_name

__all__ = [
    "AuditEventType",
    "AuditLogPage",
    "AuditLogQuery",
    "AuditLogReader",
    "AuditLogWriter",
    "AuditLogger",
    "AuditRecord",
    "PartitionInfo",
    "SecurityStats",
    "Severity",
    "partition_name",
]
