"""The upload gate: every uploaded file passes through here before it is kept.

Each attempt ends ACCEPTED (file stored and verified) or REJECTED (nothing
left on disk).  The steps, in order:

1. filename validation (no storage write on failure)
2. extension, MIME type and size against the category policy
3. write under ``{root}/{category}/`` with a generated stored name
4. magic-number check of the bytes actually written
5. size re-check of the written file
6. accept

Every decision and every write or removal is reported through the audit
facade: one ``FILE_VALIDATION`` record for a pre-write rejection, one
``FILE_UPLOAD`` record for the write, then exactly one of
``FILE_SIGNATURE_MISMATCH``, ``FILE_VALIDATION`` (rejected) or
``FILE_VALIDATION`` (accepted).
"""

import enum
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.record import ANONYMOUS_ACTOR
from showroom_api.lib.uploads import signatures
from showroom_api.lib.uploads.errors import RejectionReason, UploadRejectedError
from showroom_api.lib.uploads.filenames import DEFAULT_MAX_FILENAME_LENGTH, generate_stored_name, validate_filename
from showroom_api.lib.uploads.policy import (
    CATEGORY_POLICIES,
    CategoryPolicy,
    UploadCategory,
    extract_extension,
    normalize_mime_type,
)
from showroom_api.lib.uploads.storage import CategoryFileStorage

CONTENT_MISMATCH_MESSAGE = "File content does not match declared type"
STORAGE_FAILURE_REASON = "storage"


class UploadStatus(enum.StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class UploadArtifact:
    """A file that made it through the gate."""

    original_name: str
    stored_name: str
    category: UploadCategory
    declared_mime_type: str
    declared_extension: str
    size: int
    path: Path
    validated: bool = False
    status: UploadStatus = UploadStatus.REJECTED


def _utc_now() -> datetime:
    return datetime.now(UTC)


class UploadGate:
    """Validate, store and verify uploaded files.

    Args:
        storage: Where accepted files are kept.
        audit: Facade receiving one record per decision or file operation.
        max_filename_length: Longest accepted original filename.
        policies: Category policy table.
        clock: Source of the upload time used in stored names.
    """

    def __init__(
        self,
        storage: CategoryFileStorage,
        audit: AuditLogger,
        *,
        max_filename_length: int = DEFAULT_MAX_FILENAME_LENGTH,
        policies: dict[UploadCategory, CategoryPolicy] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._storage = storage
        self._audit = audit
        self._max_filename_length = max_filename_length
        self._policies = policies or CATEGORY_POLICIES
        self._clock = clock

    async def process(
        self,
        content: bytes,
        original_name: str,
        declared_mime_type: str,
        category: UploadCategory | str,
        *,
        actor_id: str | None = None,
        network_origin: str | None = None,
    ) -> UploadArtifact:
        """Run one upload attempt through the gate.

        Args:
            content: The uploaded bytes.
            original_name: Client-supplied filename (untrusted).
            declared_mime_type: Client-supplied Content-Type (untrusted).
            category: Policy bucket the upload is filed under.
            actor_id: Uploading principal; anonymous when omitted.
            network_origin: Caller address.

        Returns:
            The accepted artifact, with ``validated`` set.

        Raises:
            UploadRejectedError: If any check refuses the file.  Nothing
                remains in storage when this is raised.
            OSError: If storage fails while writing or re-reading; a partial
                file is removed on a best-effort basis and a rejected
                file-validation record with reason ``storage`` is written first.
        """
        mime = normalize_mime_type(declared_mime_type)
        actor = actor_id or ANONYMOUS_ACTOR

        try:
            category = UploadCategory(category)
            validate_filename(original_name, self._max_filename_length)
            self._check_policy(original_name, mime, len(content), category)
        except UploadRejectedError as exc:
            self._audit.log_file_validation(
                file_name=original_name,
                mime_type=mime,
                category=str(category),
                status="rejected",
                reason=exc.reason.value,
                error=str(exc),
                actor_id=actor,
                network_origin=network_origin,
            )
            logger.info(f"Upload rejected before storage ({exc.reason}): {exc}")
            raise
        except ValueError as exc:
            rejection = UploadRejectedError(RejectionReason.TYPE, f"Unknown upload category: {category}")
            self._audit.log_file_validation(
                file_name=original_name,
                mime_type=mime,
                category=str(category),
                status="rejected",
                reason=rejection.reason.value,
                error=str(rejection),
                actor_id=actor,
                network_origin=network_origin,
            )
            raise rejection from exc

        stored_name = generate_stored_name(original_name, actor, self._clock())
        try:
            path = await self._storage.save(content, category, stored_name)
        except FileExistsError:
            raise
        except OSError as exc:
            await self._storage_failed(exc, original_name, mime, category, stored_name, actor, network_origin)
            raise

        self._audit.log_file_upload(
            original_name=original_name,
            stored_name=stored_name,
            mime_type=mime,
            category=category.value,
            size=len(content),
            actor_id=actor,
            network_origin=network_origin,
        )

        try:
            written = await self._storage.load(category, stored_name)
            size = await self._storage.size(category, stored_name)
        except OSError as exc:
            await self._storage_failed(exc, original_name, mime, category, stored_name, actor, network_origin)
            raise

        if not signatures.verify(written, mime):
            await self._discard(category, stored_name)
            self._audit.log_signature_mismatch(
                original_name=original_name,
                stored_name=stored_name,
                declared_mime_type=mime,
                category=category.value,
                actor_id=actor,
                network_origin=network_origin,
            )
            logger.warning(f"Signature mismatch for {original_name} declared as {mime}; removed {stored_name}")
            raise UploadRejectedError(RejectionReason.CONTENT, CONTENT_MISMATCH_MESSAGE)

        policy = self._policies[category]
        if size > policy.max_size_bytes:
            await self._discard(category, stored_name)
            rejection = UploadRejectedError(
                RejectionReason.SIZE,
                f"File exceeds maximum size of {policy.max_size_display} for {category} uploads",
            )
            self._audit.log_file_validation(
                file_name=original_name,
                mime_type=mime,
                category=category.value,
                status="rejected",
                reason=rejection.reason.value,
                error=str(rejection),
                stored_name=stored_name,
                removed=True,
                actor_id=actor,
                network_origin=network_origin,
            )
            raise rejection

        self._audit.log_file_validation(
            file_name=original_name,
            mime_type=mime,
            category=category.value,
            status="accepted",
            stored_name=stored_name,
            actor_id=actor,
            network_origin=network_origin,
        )
        logger.info(f"Accepted upload {original_name} as {category}/{stored_name} ({size} bytes)")
        return UploadArtifact(
            original_name=original_name,
            stored_name=stored_name,
            category=category.value,
            declared_mime_type=mime,
            declared_extension=extract_extension(original_name),
            size=size,
            path=path,
            validated=True,
            status=UploadStatus.ACCEPTED,
        )

    def _check_policy(self, filename: str, mime: str, size: int, category: UploadCategory) -> None:
        policy = self._policies[category]
        if extract_extension(filename) not in policy.extensions:
            msg = f"File type not allowed for {category} uploads. Allowed: {policy.allowed_extensions_display()}"
            raise UploadRejectedError(RejectionReason.TYPE, msg)
        if mime not in policy.mime_types:
            msg = f"MIME type {mime or '(none)'} not allowed for {category} uploads"
            raise UploadRejectedError(RejectionReason.TYPE, msg)
        if size > policy.max_size_bytes:
            msg = f"File exceeds maximum size of {policy.max_size_display} for {category} uploads"
            raise UploadRejectedError(RejectionReason.SIZE, msg)

    async def _discard(self, category: UploadCategory, stored_name: str) -> bool:
        try:
            return await self._storage.delete(category, stored_name)
        except OSError:
            logger.exception(f"Could not remove {category}/{stored_name} after failed upload")
            return False

    async def _storage_failed(
        self,
        exc: OSError,
        original_name: str,
        mime: str,
        category: UploadCategory,
        stored_name: str,
        actor: str,
        network_origin: str | None,
    ) -> None:
        removed = await self._discard(category, stored_name)
        self._audit.log_file_validation(
            file_name=original_name,
            mime_type=mime,
            category=category.value,
            status="rejected",
            reason=STORAGE_FAILURE_REASON,
            error=str(exc) or type(exc).__name__,
            stored_name=stored_name,
            removed=removed,
            actor_id=actor,
            network_origin=network_origin,
        )
        logger.error(f"Storage failed for {original_name} as {category}/{stored_name}: {exc}")
