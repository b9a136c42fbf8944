"""Typed entry points that turn domain events into audit records.

Call sites never build raw log lines.  Each ``log_*`` method takes the
payload of one event family, derives the severity and message, and hands
the finished :class:`AuditRecord` to the writer.
"""

from collections.abc import Collection
from typing import Any, Literal, Protocol

from showroom_api.lib.audit.events import (
    AUTH_EVENTS,
    CLIENT_EVENTS,
    DOMAIN_EVENTS,
    FILE_TRANSFER_EVENTS,
    SECURITY_EVENTS,
    SYSTEM_EVENTS,
    USER_EVENTS,
    ApiErrorDetails,
    AuditEventType,
    AuthDetails,
    ClientActionDetails,
    DomainDetails,
    EventDetails,
    FileCleanupDetails,
    FileTransferDetails,
    FileUploadDetails,
    FileValidationDetails,
    LogPurgeDetails,
    SecurityDetails,
    Severity,
    SignatureMismatchDetails,
    SystemDetails,
    UserActionDetails,
)
from showroom_api.lib.audit.messages import render_message
from showroom_api.lib.audit.record import ANONYMOUS_ACTOR, UNKNOWN_ORIGIN, AuditRecord


class RecordSink(Protocol):
    """Anything that accepts finished audit records."""

    def append(self, record: AuditRecord) -> None: ...


def _require_family(event_type: AuditEventType, family: Collection[AuditEventType], entry_point: str) -> None:
    if event_type not in family:
        msg = f"{entry_point} does not accept {event_type}"
        raise ValueError(msg)


class AuditLogger:
    """Audit facade bound to one record sink (normally an ``AuditLogWriter``).

    Args:
        sink: Destination of every record built here.
    """

    def __init__(self, sink: RecordSink) -> None:
        self._sink = sink

    def _emit(
        self,
        event_type: AuditEventType,
        details: EventDetails,
        *,
        severity: Severity,
        success: bool,
        actor_id: str | None = None,
        network_origin: str | None = None,
        user_agent: str | None = None,
        session_id: str | None = None,
    ) -> AuditRecord:
        record = AuditRecord(
            event_type=event_type,
            severity=severity,
            success=success,
            message=render_message(event_type, details),
            details=details,
            actor_id=actor_id or ANONYMOUS_ACTOR,
            network_origin=network_origin or UNKNOWN_ORIGIN,
            user_agent=user_agent,
            session_id=session_id,
        )
        self._sink.append(record)
        return record

    # ------------------------------------------------------------------
    # Authentication and accounts
    # ------------------------------------------------------------------

    def log_auth(
        self,
        event_type: AuditEventType,
        *,
        success: bool,
        actor_id: str | None = None,
        email: str | None = None,
        failure_reason: str | None = None,
        network_origin: str | None = None,
        user_agent: str | None = None,
        session_id: str | None = None,
    ) -> AuditRecord:
        """Record a login, logout, registration or token refresh.

        Failed attempts are medium severity, everything else low.
        """
        _require_family(event_type, AUTH_EVENTS, "log_auth")
        return self._emit(
            event_type,
            AuthDetails(email=email, failure_reason=failure_reason),
            severity=Severity.LOW if success else Severity.MEDIUM,
            success=success,
            actor_id=actor_id,
            network_origin=network_origin,
            user_agent=user_agent,
            session_id=session_id,
        )

    def log_user_action(
        self,
        event_type: AuditEventType,
        *,
        actor_id: str,
        target_user_id: str,
        success: bool = True,
        changes: dict[str, Any] | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record an administrative change to a user account."""
        _require_family(event_type, USER_EVENTS, "log_user_action")
        return self._emit(
            event_type,
            UserActionDetails(target_user_id=target_user_id, changes=changes),
            severity=Severity.MEDIUM,
            success=success,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    # ------------------------------------------------------------------
    # Client records and business events
    # ------------------------------------------------------------------

    def log_client_action(
        self,
        event_type: AuditEventType,
        *,
        actor_id: str,
        success: bool = True,
        client_id: str | None = None,
        client_email: str | None = None,
        changes: dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record a create/read/update/delete/export on a client record."""
        _require_family(event_type, CLIENT_EVENTS, "log_client_action")
        return self._emit(
            event_type,
            ClientActionDetails(
                client_id=client_id,
                client_email=client_email,
                changes=changes,
                context=context,
            ),
            severity=Severity.LOW if success else Severity.MEDIUM,
            success=success,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    def log_domain_event(
        self,
        event_type: AuditEventType,
        *,
        actor_id: str | None = None,
        success: bool = True,
        entity_id: str | None = None,
        changes: dict[str, Any] | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record a project or appointment change."""
        _require_family(event_type, DOMAIN_EVENTS, "log_domain_event")
        return self._emit(
            event_type,
            DomainDetails(entity_id=entity_id, changes=changes),
            severity=Severity.LOW if success else Severity.MEDIUM,
            success=success,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def log_file_upload(
        self,
        *,
        original_name: str,
        stored_name: str,
        mime_type: str,
        category: str,
        size: int | None = None,
        actor_id: str | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record that an upload was written to storage."""
        return self._emit(
            AuditEventType.FILE_UPLOAD,
            FileUploadDetails(
                original_name=original_name,
                stored_name=stored_name,
                mime_type=mime_type,
                category=category,
                size=size,
            ),
            severity=Severity.LOW,
            success=True,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    def log_file_transfer(
        self,
        event_type: AuditEventType,
        *,
        file_name: str,
        category: str,
        mime_type: str | None = None,
        size: int | None = None,
        actor_id: str | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record a download or deletion of a stored file."""
        _require_family(event_type, FILE_TRANSFER_EVENTS, "log_file_transfer")
        return self._emit(
            event_type,
            FileTransferDetails(file_name=file_name, category=category, mime_type=mime_type, size=size),
            severity=Severity.LOW,
            success=True,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    def log_file_validation(
        self,
        *,
        file_name: str,
        mime_type: str,
        category: str,
        status: Literal["accepted", "rejected"],
        reason: str | None = None,
        error: str | None = None,
        stored_name: str | None = None,
        removed: bool = False,
        actor_id: str | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record an accept/reject decision of the upload gate.

        Acceptance is low severity, rejection medium.
        """
        accepted = status == "accepted"
        return self._emit(
            AuditEventType.FILE_VALIDATION,
            FileValidationDetails(
                file_name=file_name,
                mime_type=mime_type,
                category=category,
                status=status,
                reason=reason,
                error=error,
                stored_name=stored_name,
                removed=removed,
            ),
            severity=Severity.LOW if accepted else Severity.MEDIUM,
            success=accepted,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    def log_signature_mismatch(
        self,
        *,
        original_name: str,
        stored_name: str,
        declared_mime_type: str,
        category: str,
        actor_id: str | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record a stored file whose bytes contradict its declared type."""
        return self._emit(
            AuditEventType.FILE_SIGNATURE_MISMATCH,
            SignatureMismatchDetails(
                original_name=original_name,
                stored_name=stored_name,
                declared_mime_type=declared_mime_type,
                category=category,
            ),
            severity=Severity.HIGH,
            success=False,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    def log_file_cleanup(
        self,
        *,
        file_name: str,
        category: str,
        age_days: float,
        action: str = "DELETED",
    ) -> AuditRecord:
        """Record removal of a stale stored file by a maintenance job."""
        return self._emit(
            AuditEventType.FILE_CLEANUP,
            FileCleanupDetails(file_name=file_name, category=category, age_days=round(age_days, 2), action=action),
            severity=Severity.LOW,
            success=True,
        )

    # ------------------------------------------------------------------
    # Security and system
    # ------------------------------------------------------------------

    def log_security_event(
        self,
        threat: str,
        *,
        event_type: AuditEventType = AuditEventType.SECURITY_VIOLATION,
        severity: Severity = Severity.HIGH,
        action: str = "BLOCKED",
        context: dict[str, Any] | None = None,
        actor_id: str | None = None,
        network_origin: str | None = None,
        user_agent: str | None = None,
    ) -> AuditRecord:
        """Record a blocked or suspicious request.

        Security events are never below high severity.

        Raises:
            ValueError: If ``severity`` is below high or ``event_type`` is
                not a security event handled here.
        """
        _require_family(
            event_type,
            SECURITY_EVENTS - {AuditEventType.FILE_SIGNATURE_MISMATCH},
            "log_security_event",
        )
        if severity not in (Severity.HIGH, Severity.CRITICAL):
            msg = "Security events must be high or critical severity"
            raise ValueError(msg)
        return self._emit(
            event_type,
            SecurityDetails(threat=threat, action=action, context=context),
            severity=severity,
            success=False,
            actor_id=actor_id,
            network_origin=network_origin,
            user_agent=user_agent,
        )

    def log_api_error(
        self,
        *,
        method: str,
        url: str,
        status_code: int,
        error: str,
        duration_ms: float | None = None,
        actor_id: str | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record a failed API request; server errors are high severity."""
        return self._emit(
            AuditEventType.API_ERROR,
            ApiErrorDetails(
                method=method,
                url=url,
                status_code=status_code,
                error=error,
                duration_ms=duration_ms,
            ),
            severity=Severity.HIGH if status_code >= 500 else Severity.MEDIUM,
            success=False,
            actor_id=actor_id,
            network_origin=network_origin,
        )

    def log_system_event(
        self,
        event_type: AuditEventType,
        *,
        component: str,
        error: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> AuditRecord:
        """Record a database failure or performance warning."""
        _require_family(event_type, SYSTEM_EVENTS, "log_system_event")
        severity = Severity.HIGH if event_type == AuditEventType.DATABASE_ERROR else Severity.MEDIUM
        return self._emit(
            event_type,
            SystemDetails(component=component, error=error, context=context),
            severity=severity,
            success=False,
        )

    def log_log_purge(
        self,
        *,
        older_than_days: int,
        deleted_files: list[str],
        actor_id: str | None = None,
        network_origin: str | None = None,
    ) -> AuditRecord:
        """Record an administrative purge of old audit partitions."""
        return self._emit(
            AuditEventType.AUDIT_LOG_PURGE,
            LogPurgeDetails(
                older_than_days=older_than_days,
                deleted_count=len(deleted_files),
                deleted_files=deleted_files,
            ),
            severity=Severity.LOW,
            success=True,
            actor_id=actor_id,
            network_origin=network_origin,
        )
