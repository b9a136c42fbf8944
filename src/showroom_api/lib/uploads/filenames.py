"""Validation of untrusted upload filenames and generation of stored names."""

import hashlib
import re
import secrets
from datetime import UTC, datetime

from showroom_api.lib.uploads.errors import RejectionReason, UploadRejectedError
from showroom_api.lib.uploads.policy import extract_extension

DEFAULT_MAX_FILENAME_LENGTH = 255
_MAX_BASE_LENGTH = 50

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_PATH_BREAKING_CHARS = re.compile(r'[/\\:*?"<>|]')
_RESERVED_DEVICE_NAME = re.compile(r"^(con|prn|aux|nul|com[1-9]|lpt[1-9])\s*(\..*)?$", re.IGNORECASE)
_UNSAFE_BASE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def _reject(message: str) -> UploadRejectedError:
    return UploadRejectedError(RejectionReason.FILENAME, message)


def validate_filename(filename: str, max_length: int = DEFAULT_MAX_FILENAME_LENGTH) -> None:
    """Refuse filenames that are unsafe to reason about or store.

    Args:
        filename: The original, client-supplied filename.
        max_length: Longest accepted filename.

    Raises:
        UploadRejectedError: With reason ``filename`` when the name is empty,
            a bare ``.``/``..``, contains control or path-breaking characters,
            names a reserved device, or is longer than ``max_length``.
    """
    if not filename or not filename.strip():
        raise _reject("Filename is empty")
    if len(filename) > max_length:
        raise _reject(f"Filename exceeds {max_length} characters")
    if _CONTROL_CHARS.search(filename):
        raise _reject("Filename contains control characters")
    if _PATH_BREAKING_CHARS.search(filename):
        raise _reject('Filename contains forbidden characters (/ \\ : * ? " < > |)')
    if filename.strip(". ") == "":
        raise _reject("Filename is not a file name")
    if _RESERVED_DEVICE_NAME.match(filename):
        raise _reject("Filename uses a reserved device name")


def sanitize_base_name(filename: str) -> str:
    """Reduce a filename's stem to ``[A-Za-z0-9_-]`` for use in stored names."""
    ext = extract_extension(filename)
    stem = filename[: -len(ext)] if ext else filename
    safe = _UNSAFE_BASE_CHARS.sub("_", stem).strip("_")
    return safe[:_MAX_BASE_LENGTH] or "file"


def generate_stored_name(filename: str, actor_id: str, now: datetime | None = None) -> str:
    """Build a collision-resistant name for storing an upload.

    Format: ``<sanitizedBase>-<shortHash>-<randomHex><ext>`` where the
    short hash covers the original name, the actor and the timestamp, and
    the random part comes from :mod:`secrets`.

    Args:
        filename: The validated original filename.
        actor_id: Who uploaded the file.
        now: Upload time; defaults to the current UTC time.

    Returns:
        The stored filename.  The original name is never used verbatim.
    """
    now = now or datetime.now(UTC)
    digest = hashlib.sha256(f"{filename}|{actor_id}|{now.isoformat()}".encode()).hexdigest()[:8]
    return f"{sanitize_base_name(filename)}-{digest}-{secrets.token_hex(8)}{extract_extension(filename)}"
