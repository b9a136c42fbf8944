"""The immutable audit record and its line-delimited JSON form."""

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from showroom_api.lib.audit.events import (
    DETAILS_BY_EVENT,
    SECURITY_EVENTS,
    AuditEventType,
    EventDetails,
    Severity,
)

ANONYMOUS_ACTOR = "anonymous"
UNKNOWN_ORIGIN = "unknown"


class AuditRecord(BaseModel):
    """One structured, append-only audit entry.

    Records are frozen: once built they are only ever serialized, never
    changed.  ``details`` must be the payload model registered for
    ``event_type`` in :data:`DETAILS_BY_EVENT`.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    event_type: AuditEventType
    severity: Severity
    success: bool
    message: str
    details: EventDetails
    actor_id: str = ANONYMOUS_ACTOR
    network_origin: str = UNKNOWN_ORIGIN
    user_agent: str | None = None
    session_id: str | None = None

    @model_validator(mode="after")
    def _check_event_shape(self) -> "AuditRecord":
        expected = DETAILS_BY_EVENT[self.event_type]
        if type(self.details) is not expected:
            msg = f"{self.event_type} requires {expected.__name__}, got {type(self.details).__name__}"
            raise ValueError(msg)
        if self.event_type in SECURITY_EVENTS and self.severity.rank < Severity.HIGH.rank:
            msg = f"{self.event_type} must be logged at high or critical severity"
            raise ValueError(msg)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the on-disk representation of the record."""
        entry: dict[str, Any] = {
            "timestamp": self.timestamp.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": "AUDIT",
            "eventType": str(self.event_type),
            "severity": str(self.severity),
            "success": self.success,
            "actorId": self.actor_id,
            "networkOrigin": self.network_origin,
            "message": self.message,
            "details": self.details.to_payload(),
        }
        if self.user_agent is not None:
            entry["userAgent"] = self.user_agent
        if self.session_id is not None:
            entry["sessionId"] = self.session_id
        return entry

    def to_line(self) -> str:
        """Serialize the record as one newline-terminated JSON line."""
        return json.dumps(self.to_dict(), ensure_ascii=False) + "\n"
