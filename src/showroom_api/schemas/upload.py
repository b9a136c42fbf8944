"""Pydantic v2 schemas for upload operations."""

from pydantic import BaseModel, Field

from showroom_api.lib.uploads.policy import UploadCategory


class UploadResponse(BaseModel):
    """An accepted upload."""

    model_config = {"from_attributes": True}

    original_name: str
    stored_name: str
    category: UploadCategory
    declared_mime_type: str
    declared_extension: str
    size: int
    validated: bool
    status: str
    download_url: str | None = Field(default=None, description="Path of the download endpoint for this file")
