"""Deterministic summary messages for audit records."""

from showroom_api.lib.audit.events import (
    AUTH_EVENTS,
    CLIENT_EVENTS,
    DOMAIN_EVENTS,
    ApiErrorDetails,
    AuditEventType,
    EventDetails,
    FileCleanupDetails,
    FileTransferDetails,
    FileUploadDetails,
    FileValidationDetails,
    LogPurgeDetails,
    SecurityDetails,
    SignatureMismatchDetails,
    SystemDetails,
    UserActionDetails,
)


def render_message(event_type: AuditEventType, details: EventDetails) -> str:
    """Build the summary line stored in a record's ``message`` field.

    Call sites never supply free text; the message is a function of the
    event type and its typed payload.

    Args:
        event_type: The event being recorded.
        details: The payload registered for ``event_type``.

    Returns:
        A short human-readable summary.
    """
    if event_type in AUTH_EVENTS:
        return f"Authentication event: {event_type}"
    if event_type in CLIENT_EVENTS:
        return f"Client action: {event_type}"
    if event_type in DOMAIN_EVENTS:
        return f"Business event: {event_type}"

    match details:
        case UserActionDetails(target_user_id=target):
            return f"User action: {event_type} on user {target}"
        case FileUploadDetails(original_name=name):
            return f"File uploaded: {name}"
        case FileTransferDetails(file_name=name):
            verb = "downloaded" if event_type == AuditEventType.FILE_DOWNLOAD else "deleted"
            return f"File {verb}: {name}"
        case FileValidationDetails(status=status, file_name=name):
            return f"File validation {status}: {name}"
        case SignatureMismatchDetails(original_name=name, declared_mime_type=declared):
            return f"File signature mismatch: {name} is not {declared}"
        case SecurityDetails(threat=threat):
            return f"Security event: {threat}"
        case FileCleanupDetails(action=action, file_name=name):
            return f"File cleanup: {action} {name}"
        case ApiErrorDetails(method=method, url=url, status_code=code):
            return f"API Error: {method} {url} - {code}"
        case SystemDetails(component=component):
            return f"System event: {event_type} in {component}"
        case LogPurgeDetails(deleted_count=count, older_than_days=days):
            return f"Audit log purge: {count} partition(s) older than {days} days removed"
    return f"Audit event: {event_type}"
