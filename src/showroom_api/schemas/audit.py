"""Pydantic v2 schemas for the administrative audit log endpoints."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from showroom_api.schemas.common import PaginationMeta


class AuditLogListResponse(BaseModel):
    """A page of audit records as stored (camelCase keys, newest first)."""

    items: list[dict[str, Any]]
    pagination: PaginationMeta


class AuditPartitionResponse(BaseModel):
    """One day partition of the audit log."""

    model_config = {"from_attributes": True}

    name: str
    day: date | None = None
    size: int = Field(description="File size in bytes")
    modified_at: datetime


class AuditPartitionListResponse(BaseModel):
    items: list[AuditPartitionResponse]
    max_files: int = Field(description="Partitions kept by automatic retention")


class HourlyCountResponse(BaseModel):
    model_config = {"from_attributes": True}

    hour: int
    count: int
    failed_logins: int
    security_events: int


class SecurityStatsResponse(BaseModel):
    """Security counters for one day."""

    model_config = {"from_attributes": True}

    day: date
    total_events: int
    security_events: int
    failed_logins: int
    successful_logins: int
    file_uploads: int
    critical_events: int
    by_hour: list[HourlyCountResponse]


class SecurityEventListResponse(BaseModel):
    items: list[dict[str, Any]]
    count: int


class AuditPurgeResponse(BaseModel):
    """Outcome of an age-based purge."""

    older_than_days: int
    deleted_count: int
    deleted_files: list[str]
