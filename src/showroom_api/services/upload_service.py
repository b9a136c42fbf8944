"""Upload service: accept, download and delete stored files with auditing."""

from loguru import logger

from showroom_api.lib.audit.events import AuditEventType
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.uploads.gate import UploadArtifact, UploadGate
from showroom_api.lib.uploads.policy import UploadCategory
from showroom_api.lib.uploads.storage import CategoryFileStorage


async def upload_file(
    gate: UploadGate,
    *,
    file_content: bytes,
    filename: str,
    content_type: str,
    category: UploadCategory,
    actor_id: str | None = None,
    network_origin: str | None = None,
) -> UploadArtifact:
    """Pass an uploaded file through the upload gate.

    Args:
        gate: The configured upload gate.
        file_content: Raw file bytes.
        filename: Original filename.
        content_type: Declared MIME type.
        category: Policy bucket for the file.
        actor_id: Uploading principal.
        network_origin: Caller address.

    Returns:
        The accepted artifact.

    Raises:
        UploadRejectedError: If the gate refuses the file.
    """
    return await gate.process(
        file_content,
        filename,
        content_type,
        category,
        actor_id=actor_id,
        network_origin=network_origin,
    )


async def download_file(
    storage: CategoryFileStorage,
    audit: AuditLogger,
    *,
    category: UploadCategory,
    stored_name: str,
    actor_id: str | None = None,
    network_origin: str | None = None,
) -> bytes:
    """Read a stored file and record the download.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If ``stored_name`` is not a valid stored name.
    """
    content = await storage.load(category, stored_name)
    audit.log_file_transfer(
        AuditEventType.FILE_DOWNLOAD,
        file_name=stored_name,
        category=category.value,
        size=len(content),
        actor_id=actor_id,
        network_origin=network_origin,
    )
    return content


async def delete_file(
    storage: CategoryFileStorage,
    audit: AuditLogger,
    *,
    category: UploadCategory,
    stored_name: str,
    actor_id: str | None = None,
    network_origin: str | None = None,
) -> None:
    """Delete a stored file and record the deletion.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If ``stored_name`` is not a valid stored name.
    """
    if not await storage.delete(category, stored_name):
        msg = f"File not found: {category.value}/{stored_name}"
        raise FileNotFoundError(msg)
    audit.log_file_transfer(
        AuditEventType.FILE_DELETE,
        file_name=stored_name,
        category=category.value,
        actor_id=actor_id,
        network_origin=network_origin,
    )
    logger.info(f"Deleted upload {category.value}/{stored_name}")
