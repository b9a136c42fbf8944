"""Shared test fixtures for settings, auth tokens, the audit log and upload storage."""

import json
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from showroom_api.core.config import Settings
from showroom_api.core.security import create_access_token
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.writer import AuditLogWriter
from showroom_api.lib.uploads.gate import UploadGate
from showroom_api.lib.uploads.storage import CategoryFileStorage


class FixedClock:
    """Settable UTC clock for writer and gate tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test application settings rooted in a temporary directory."""
    return Settings(
        jwt_secret_key="test-secret-key-not-for-production",
        jwt_algorithm="HS256",
        audit_log_dir=str(tmp_path / "audit"),
        upload_root=str(tmp_path / "uploads"),
        rate_limit_per_minute=1000,
    )


@pytest.fixture
def admin_token(settings: Settings) -> str:
    """Generate a JWT access token for an admin user."""
    return create_access_token(
        subject="admin-1",
        role="admin",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def vendeur_token(settings: Settings) -> str:
    """Generate a JWT access token for a vendeur user."""
    return create_access_token(
        subject="vendeur-1",
        role="vendeur",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def audit_dir(tmp_path: Path) -> Path:
    return tmp_path / "audit"


@pytest.fixture
def writer(audit_dir: Path, clock: FixedClock) -> Iterator[AuditLogWriter]:
    """An opened audit writer on a fixed clock."""
    w = AuditLogWriter(audit_dir, clock=clock)
    w.open()
    yield w
    w.close()


@pytest.fixture
def audit(writer: AuditLogWriter) -> AuditLogger:
    return AuditLogger(writer)


@pytest.fixture
def storage(tmp_path: Path) -> CategoryFileStorage:
    return CategoryFileStorage(tmp_path / "uploads")


@pytest.fixture
def gate(storage: CategoryFileStorage, audit: AuditLogger, clock: FixedClock) -> UploadGate:
    return UploadGate(storage, audit, clock=clock)


@pytest.fixture
def read_records(audit_dir: Path, writer: AuditLogWriter) -> Callable[[], list[dict]]:
    """Return a callable that flushes the writer and parses every stored record."""

    def _read() -> list[dict]:
        writer.flush()
        records: list[dict] = []
        for path in sorted(audit_dir.glob("audit-*.log")):
            records.extend(json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line)
        return records

    return _read
