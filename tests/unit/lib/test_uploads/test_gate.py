"""Unit tests for the upload gate."""

from collections import Counter
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from showroom_api.lib.uploads.errors import RejectionReason, UploadRejectedError
from showroom_api.lib.uploads.gate import CONTENT_MISMATCH_MESSAGE, UploadGate, UploadStatus
from showroom_api.lib.uploads.policy import MIB, CategoryPolicy, UploadCategory
from showroom_api.lib.uploads.storage import CategoryFileStorage

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF = b"%PDF-1.4\n%test\n"


def _stored_files(storage: CategoryFileStorage) -> list[Path]:
    return [p for category in UploadCategory for p in storage.iter_files(category)]


def _event_counts(records: list[dict]) -> Counter:
    return Counter(r["eventType"] for r in records)


class TestAccepted:
    """Uploads that pass every check."""

    @pytest.mark.asyncio
    async def test_png_image_is_accepted(self, gate: UploadGate, storage: CategoryFileStorage, read_records) -> None:
        artifact = await gate.process(PNG, "photo.png", "image/png", UploadCategory.IMAGE, actor_id="vendeur-1")

        assert artifact.validated is True
        assert artifact.status == UploadStatus.ACCEPTED
        assert artifact.category == UploadCategory.IMAGE
        assert artifact.declared_extension == ".png"
        assert artifact.size == len(PNG)
        assert artifact.stored_name != "photo.png"
        assert artifact.path.parent == storage.root / "image"
        assert artifact.path.read_bytes() == PNG

        records = read_records()
        assert [r["eventType"] for r in records] == ["FILE_UPLOAD", "FILE_VALIDATION"]
        validation = records[1]
        assert validation["success"] is True
        assert validation["severity"] == "low"
        assert validation["actorId"] == "vendeur-1"
        assert validation["details"]["status"] == "accepted"
        assert validation["details"]["storedName"] == artifact.stored_name

    @pytest.mark.asyncio
    async def test_content_type_parameters_are_ignored(self, gate: UploadGate) -> None:
        artifact = await gate.process(b"hello", "notes.txt", "text/plain; charset=utf-8", "document")
        assert artifact.declared_mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_unregistered_type_accepted_without_signature(self, gate: UploadGate) -> None:
        artifact = await gate.process(b"\x89PNG but really text", "notes.txt", "text/plain", "document")
        assert artifact.validated is True

    @pytest.mark.asyncio
    async def test_anonymous_actor(self, gate: UploadGate, read_records) -> None:
        await gate.process(PDF, "brochure.pdf", "application/pdf", UploadCategory.DOCUMENT)
        assert {r["actorId"] for r in read_records()} == {"anonymous"}

    @pytest.mark.asyncio
    async def test_same_file_twice_gets_distinct_names(self, gate: UploadGate, storage: CategoryFileStorage) -> None:
        first = await gate.process(PNG, "photo.png", "image/png", "image")
        second = await gate.process(PNG, "photo.png", "image/png", "image")
        assert first.stored_name != second.stored_name
        assert len(_stored_files(storage)) == 2


class TestRejectedBeforeWrite:
    """Rejections that never touch storage."""

    @pytest.mark.parametrize(
        ("name", "mime", "category", "reason"),
        [
            ("CON.txt", "text/plain", "document", RejectionReason.FILENAME),
            ("bad\x01name.png", "image/png", "image", RejectionReason.FILENAME),
            ("a" * 300 + ".png", "image/png", "image", RejectionReason.FILENAME),
            ("../../etc/passwd.png", "image/png", "image", RejectionReason.FILENAME),
            ("script.exe", "application/octet-stream", "document", RejectionReason.TYPE),
            ("photo.png", "image/png", "document", RejectionReason.TYPE),
            ("photo.png", "application/pdf", "image", RejectionReason.TYPE),
            ("photo.png", "image/png", "videos", RejectionReason.TYPE),
        ],
    )
    @pytest.mark.asyncio
    async def test_rejection_writes_nothing(
        self,
        gate: UploadGate,
        storage: CategoryFileStorage,
        read_records,
        name: str,
        mime: str,
        category: str,
        reason: RejectionReason,
    ) -> None:
        with pytest.raises(UploadRejectedError) as exc_info:
            await gate.process(PNG, name, mime, category)

        assert exc_info.value.reason == reason
        assert _stored_files(storage) == []
        records = read_records()
        assert len(records) == 1
        assert records[0]["eventType"] == "FILE_VALIDATION"
        assert records[0]["severity"] == "medium"
        assert records[0]["success"] is False
        assert records[0]["details"]["reason"] == reason.value

    @pytest.mark.asyncio
    async def test_oversized_rejected_before_write(self, gate: UploadGate, storage: CategoryFileStorage) -> None:
        content = b"\x89PNG\r\n\x1a\n" + b"\x00" * (5 * MIB)
        with pytest.raises(UploadRejectedError, match="5 MB") as exc_info:
            await gate.process(content, "big.png", "image/png", "image")
        assert exc_info.value.reason == RejectionReason.SIZE
        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_type_message_lists_allowed_extensions(self, gate: UploadGate) -> None:
        with pytest.raises(UploadRejectedError, match=r"Allowed: \.rar, \.zip"):
            await gate.process(b"x", "a.7z", "application/x-7z-compressed", "archive")


class TestRejectedAfterWrite:
    """Rejections that remove the file they wrote."""

    @pytest.mark.asyncio
    async def test_text_declared_as_png(self, gate: UploadGate, storage: CategoryFileStorage, read_records) -> None:
        with pytest.raises(UploadRejectedError) as exc_info:
            await gate.process(b"just some text", "evil.png", "image/png", "image", network_origin="10.0.0.9")

        assert exc_info.value.reason == RejectionReason.CONTENT
        assert str(exc_info.value) == CONTENT_MISMATCH_MESSAGE
        assert _stored_files(storage) == []

        records = read_records()
        assert _event_counts(records) == Counter({"FILE_UPLOAD": 1, "FILE_SIGNATURE_MISMATCH": 1})
        mismatch = records[-1]
        assert mismatch["severity"] == "high"
        assert mismatch["networkOrigin"] == "10.0.0.9"
        assert mismatch["details"]["declaredMimeType"] == "image/png"
        assert mismatch["details"]["action"] == "BLOCKED"

    @pytest.mark.asyncio
    async def test_written_size_recheck(
        self, storage: CategoryFileStorage, audit, read_records, clock
    ) -> None:
        policies = {
            UploadCategory.IMAGE: CategoryPolicy(
                max_size_bytes=10,
                extensions=frozenset({".png"}),
                mime_types=frozenset({"image/png"}),
            )
        }
        gate = UploadGate(storage, audit, policies=policies, clock=clock)
        with patch.object(storage, "size", new=AsyncMock(return_value=11)):
            with pytest.raises(UploadRejectedError) as exc_info:
                await gate.process(b"\x89PNG\r\n\x1a\n", "a.png", "image/png", "image")

        assert exc_info.value.reason == RejectionReason.SIZE
        assert _stored_files(storage) == []
        records = read_records()
        assert [r["eventType"] for r in records] == ["FILE_UPLOAD", "FILE_VALIDATION"]
        assert records[1]["details"]["removed"] is True
        assert records[1]["details"]["status"] == "rejected"


class TestStorageFailures:
    @pytest.mark.asyncio
    async def test_write_failure_propagates_and_cleans_up(
        self, gate: UploadGate, storage: CategoryFileStorage, read_records
    ) -> None:
        with patch.object(storage, "save", new=AsyncMock(side_effect=OSError("disk full"))):
            with pytest.raises(OSError, match="disk full"):
                await gate.process(PNG, "photo.png", "image/png", "image")
        assert _stored_files(storage) == []

        records = read_records()
        assert [r["eventType"] for r in records] == ["FILE_VALIDATION"]
        assert records[0]["success"] is False
        assert records[0]["details"]["status"] == "rejected"
        assert records[0]["details"]["reason"] == "storage"
        assert records[0]["details"]["error"] == "disk full"
        assert records[0]["details"]["removed"] is False

    @pytest.mark.asyncio
    async def test_reread_failure_is_recorded(
        self, gate: UploadGate, storage: CategoryFileStorage, read_records
    ) -> None:
        with patch.object(storage, "load", new=AsyncMock(side_effect=PermissionError())):
            with pytest.raises(PermissionError):
                await gate.process(PNG, "photo.png", "image/png", "image", actor_id="vendeur-1")
        assert _stored_files(storage) == []

        records = read_records()
        assert [r["eventType"] for r in records] == ["FILE_UPLOAD", "FILE_VALIDATION"]
        rejected = records[1]
        assert rejected["actorId"] == "vendeur-1"
        assert rejected["details"]["reason"] == "storage"
        assert rejected["details"]["error"] == "PermissionError"
        assert rejected["details"]["removed"] is True

    @pytest.mark.asyncio
    async def test_failed_cleanup_does_not_mask_rejection(self, gate: UploadGate, storage: CategoryFileStorage) -> None:
        with patch.object(storage, "delete", new=AsyncMock(side_effect=PermissionError("locked"))):
            with pytest.raises(UploadRejectedError) as exc_info:
                await gate.process(b"not a png", "x.png", "image/png", "image")
        assert exc_info.value.reason == RejectionReason.CONTENT


class TestExactlyOneOutcome:
    @pytest.mark.asyncio
    async def test_mixed_batch(self, gate: UploadGate, storage: CategoryFileStorage, read_records) -> None:
        attempts = [
            (PNG, "ok.png", "image/png", "image"),
            (b"text", "fake.png", "image/png", "image"),
            (PDF, "CON.pdf", "application/pdf", "document"),
            (PDF, "ok.pdf", "application/pdf", "document"),
        ]
        accepted = 0
        for content, name, mime, category in attempts:
            try:
                await gate.process(content, name, mime, category)
                accepted += 1
            except UploadRejectedError:
                pass

        assert accepted == 2
        assert len(_stored_files(storage)) == 2
        counts = _event_counts(read_records())
        assert counts["FILE_UPLOAD"] == 3
        assert counts["FILE_SIGNATURE_MISMATCH"] == 1
        assert counts["FILE_VALIDATION"] == 3
