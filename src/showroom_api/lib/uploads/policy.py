"""Per-category upload policy: allowed extensions, MIME types and size ceiling."""

import enum
from dataclasses import dataclass

MIB = 1024 * 1024


class UploadCategory(enum.StrEnum):
    """Policy bucket an upload is filed under."""

    IMAGE = "image"
    DOCUMENT = "document"
    ARCHIVE = "archive"


@dataclass(frozen=True)
class CategoryPolicy:
    """Allow-lists and size ceiling for one upload category."""

    max_size_bytes: int
    extensions: frozenset[str]
    mime_types: frozenset[str]

    @property
    def max_size_display(self) -> str:
        return f"{self.max_size_bytes // MIB} MB"

    def allowed_extensions_display(self) -> str:
        """Comma-separated, sorted list of the allowed extensions."""
        return ", ".join(sorted(self.extensions))


CATEGORY_POLICIES: dict[UploadCategory, CategoryPolicy] = {
    UploadCategory.IMAGE: CategoryPolicy(
        max_size_bytes=5 * MIB,
        extensions=frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"}),
        mime_types=frozenset({"image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"}),
    ),
    UploadCategory.DOCUMENT: CategoryPolicy(
        max_size_bytes=10 * MIB,
        extensions=frozenset({".pdf", ".doc", ".docx", ".xls", ".xlsx", ".txt"}),
        mime_types=frozenset(
            {
                "application/pdf",
                "application/msword",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                "application/vnd.ms-excel",
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                "text/plain",
            }
        ),
    ),
    UploadCategory.ARCHIVE: CategoryPolicy(
        max_size_bytes=50 * MIB,
        extensions=frozenset({".zip", ".rar"}),
        mime_types=frozenset(
            {
                "application/zip",
                "application/x-zip-compressed",
                "application/vnd.rar",
                "application/x-rar-compressed",
            }
        ),
    ),
}


def normalize_mime_type(content_type: str) -> str:
    """Drop parameters and case from a Content-Type value.

    Args:
        content_type: Raw value such as ``"text/plain; charset=utf-8"``.

    Returns:
        The bare lowercase MIME type (``"text/plain"``).
    """
    return content_type.split(";")[0].strip().lower()


def extract_extension(filename: str) -> str:
    """Extract the lowercase file extension including the dot.

    Args:
        filename: The filename to extract from.

    Returns:
        The lowercase extension (e.g., ".pdf") or empty string if none.
    """
    dot_idx = filename.rfind(".")
    if dot_idx <= 0:
        return ""
    return filename[dot_idx:].lower()
