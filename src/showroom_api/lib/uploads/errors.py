"""Upload rejection errors."""

import enum


class RejectionReason(enum.StrEnum):
    """Why the upload gate refused a file."""

    FILENAME = "filename"
    TYPE = "type"
    SIZE = "size"
    CONTENT = "content"


class UploadRejectedError(ValueError):
    """Raised when an upload is refused; the message is safe to show users.

    Args:
        reason: Which check refused the file.
        message: Actionable, user-facing explanation.
    """

    def __init__(self, reason: RejectionReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
