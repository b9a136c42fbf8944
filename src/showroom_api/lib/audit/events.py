"""Audit event types, severities and per-event detail payloads.

Every :class:`AuditEventType` maps to exactly one detail model in
``DETAILS_BY_EVENT``; together they form the tagged union carried by an
:class:`~showroom_api.lib.audit.record.AuditRecord`.
"""

import enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AuditEventType(enum.StrEnum):
    """Closed set of auditable events."""

    # Authentication
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    LOGOUT = "LOGOUT"
    TOKEN_REFRESH = "TOKEN_REFRESH"
    REGISTER = "REGISTER"

    # User management
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    USER_ACTIVATE = "USER_ACTIVATE"
    USER_DEACTIVATE = "USER_DEACTIVATE"

    # Client records
    CLIENT_CREATE = "CLIENT_CREATE"
    CLIENT_UPDATE = "CLIENT_UPDATE"
    CLIENT_DELETE = "CLIENT_DELETE"
    CLIENT_VIEW = "CLIENT_VIEW"
    CLIENT_EXPORT = "CLIENT_EXPORT"

    # Files
    FILE_UPLOAD = "FILE_UPLOAD"
    FILE_DOWNLOAD = "FILE_DOWNLOAD"
    FILE_DELETE = "FILE_DELETE"
    FILE_VALIDATION = "FILE_VALIDATION"
    FILE_CLEANUP = "FILE_CLEANUP"

    # Security
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    FILE_SIGNATURE_MISMATCH = "FILE_SIGNATURE_MISMATCH"
    INVALID_TOKEN = "INVALID_TOKEN"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"

    # System
    API_ERROR = "API_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    PERFORMANCE_WARNING = "PERFORMANCE_WARNING"
    AUDIT_LOG_PURGE = "AUDIT_LOG_PURGE"

    # Business domain
    PROJECT_CREATE = "PROJECT_CREATE"
    PROJECT_UPDATE = "PROJECT_UPDATE"
    PROJECT_DELETE = "PROJECT_DELETE"
    APPOINTMENT_CREATE = "APPOINTMENT_CREATE"
    APPOINTMENT_UPDATE = "APPOINTMENT_UPDATE"
    APPOINTMENT_DELETE = "APPOINTMENT_DELETE"


class Severity(enum.StrEnum):
    """Severity attached to every audit record, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position of the severity in escalation order (0 = low)."""
        return list(Severity).index(self)


AUTH_EVENTS = frozenset(
    {
        AuditEventType.LOGIN_SUCCESS,
        AuditEventType.LOGIN_FAILURE,
        AuditEventType.LOGOUT,
        AuditEventType.TOKEN_REFRESH,
        AuditEventType.REGISTER,
    }
)
USER_EVENTS = frozenset(
    {
        AuditEventType.USER_CREATE,
        AuditEventType.USER_UPDATE,
        AuditEventType.USER_DELETE,
        AuditEventType.USER_ACTIVATE,
        AuditEventType.USER_DEACTIVATE,
    }
)
CLIENT_EVENTS = frozenset(
    {
        AuditEventType.CLIENT_CREATE,
        AuditEventType.CLIENT_UPDATE,
        AuditEventType.CLIENT_DELETE,
        AuditEventType.CLIENT_VIEW,
        AuditEventType.CLIENT_EXPORT,
    }
)
FILE_TRANSFER_EVENTS = frozenset({AuditEventType.FILE_DOWNLOAD, AuditEventType.FILE_DELETE})
SECURITY_EVENTS = frozenset(
    {
        AuditEventType.SECURITY_VIOLATION,
        AuditEventType.FILE_SIGNATURE_MISMATCH,
        AuditEventType.INVALID_TOKEN,
        AuditEventType.RATE_LIMIT_EXCEEDED,
        AuditEventType.SUSPICIOUS_ACTIVITY,
    }
)
SYSTEM_EVENTS = frozenset({AuditEventType.DATABASE_ERROR, AuditEventType.PERFORMANCE_WARNING})
DOMAIN_EVENTS = frozenset(
    {
        AuditEventType.PROJECT_CREATE,
        AuditEventType.PROJECT_UPDATE,
        AuditEventType.PROJECT_DELETE,
        AuditEventType.APPOINTMENT_CREATE,
        AuditEventType.APPOINTMENT_UPDATE,
        AuditEventType.APPOINTMENT_DELETE,
    }
)


class EventDetails(BaseModel):
    """Base class for event payloads, serialized with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready payload, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuthDetails(EventDetails):
    email: str | None = None
    failure_reason: str | None = None


class UserActionDetails(EventDetails):
    target_user_id: str
    changes: dict[str, Any] | None = None


class ClientActionDetails(EventDetails):
    client_id: str | None = None
    client_email: str | None = None
    changes: dict[str, Any] | None = None
    context: dict[str, Any] | None = None


class FileUploadDetails(EventDetails):
    original_name: str
    stored_name: str
    mime_type: str
    category: str
    size: int | None = None


class FileTransferDetails(EventDetails):
    file_name: str
    category: str
    mime_type: str | None = None
    size: int | None = None


class FileValidationDetails(EventDetails):
    file_name: str
    mime_type: str
    category: str
    status: Literal["accepted", "rejected"]
    reason: str | None = None
    error: str | None = None
    stored_name: str | None = None
    removed: bool = False


class SignatureMismatchDetails(EventDetails):
    original_name: str
    stored_name: str
    declared_mime_type: str
    category: str
    action: str = "BLOCKED"


class SecurityDetails(EventDetails):
    threat: str
    action: str = "BLOCKED"
    context: dict[str, Any] | None = None


class FileCleanupDetails(EventDetails):
    file_name: str
    category: str
    age_days: float
    action: str


class ApiErrorDetails(EventDetails):
    method: str
    url: str
    status_code: int
    error: str
    duration_ms: float | None = None


class SystemDetails(EventDetails):
    component: str
    error: str | None = None
    context: dict[str, Any] | None = None


class DomainDetails(EventDetails):
    entity_id: str | None = None
    changes: dict[str, Any] | None = None


class LogPurgeDetails(EventDetails):
    older_than_days: int
    deleted_count: int
    deleted_files: list[str] = Field(default_factory=list)


DETAILS_BY_EVENT: dict[AuditEventType, type[EventDetails]] = {
    **dict.fromkeys(AUTH_EVENTS, AuthDetails),
    **dict.fromkeys(USER_EVENTS, UserActionDetails),
    **dict.fromkeys(CLIENT_EVENTS, ClientActionDetails),
    AuditEventType.FILE_UPLOAD: FileUploadDetails,
    **dict.fromkeys(FILE_TRANSFER_EVENTS, FileTransferDetails),
    AuditEventType.FILE_VALIDATION: FileValidationDetails,
    AuditEventType.FILE_CLEANUP: FileCleanupDetails,
    AuditEventType.FILE_SIGNATURE_MISMATCH: SignatureMismatchDetails,
    **dict.fromkeys(SECURITY_EVENTS - {AuditEventType.FILE_SIGNATURE_MISMATCH}, SecurityDetails),
    AuditEventType.API_ERROR: ApiErrorDetails,
    **dict.fromkeys(SYSTEM_EVENTS, SystemDetails),
    AuditEventType.AUDIT_LOG_PURGE: LogPurgeDetails,
    **dict.fromkeys(DOMAIN_EVENTS, DomainDetails),
}


def is_security_relevant(event_type: str, severity: str) -> bool:
    """Whether a stored record belongs on the security dashboard.

    Args:
        event_type: Raw ``eventType`` value of a stored record.
        severity: Raw ``severity`` value of a stored record.

    Returns:
        True for security-family events, failed logins, and anything
        rated high or critical.
    """
    return (
        event_type in SECURITY_EVENTS
        or event_type == AuditEventType.LOGIN_FAILURE
        or severity in (Severity.HIGH, Severity.CRITICAL)
    )
