"""Uploads API endpoints: upload through the gate, download, and delete."""

import mimetypes

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from fastapi.responses import Response
from loguru import logger

from showroom_api.core.config import Settings
from showroom_api.core.dependencies import (
    Actor,
    get_app_settings,
    get_audit_logger,
    get_current_actor,
    get_upload_gate,
    get_upload_storage,
    require_role,
)
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.uploads.errors import RejectionReason, UploadRejectedError
from showroom_api.lib.uploads.gate import UploadArtifact, UploadGate
from showroom_api.lib.uploads.policy import UploadCategory
from showroom_api.lib.uploads.storage import CategoryFileStorage
from showroom_api.schemas.upload import UploadResponse
from showroom_api.services.upload_service import delete_file, download_file, upload_file

uploads_router = APIRouter(prefix="/uploads", tags=["uploads"])

_UPLOAD_ROLES = ("admin", "vendeur", "prestataire")


def _artifact_to_response(artifact: UploadArtifact, settings: Settings) -> UploadResponse:
    response = UploadResponse.model_validate(artifact)
    response.download_url = f"{settings.api_v1_prefix}/uploads/{artifact.category}/{artifact.stored_name}"
    return response


def _media_type_for(stored_name: str) -> str:
    guessed, _ = mimetypes.guess_type(stored_name)
    return guessed or "application/octet-stream"


@uploads_router.post(
    "/{category}",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload(
    category: UploadCategory,
    file: UploadFile,
    actor: Actor = Depends(require_role(*_UPLOAD_ROLES)),
    gate: UploadGate = Depends(get_upload_gate),
    settings: Settings = Depends(get_app_settings),
) -> UploadResponse:
    """Upload a file into a category; it is kept only if every check passes."""
    content = await file.read()
    try:
        artifact = await upload_file(
            gate,
            file_content=content,
            filename=file.filename or "",
            content_type=file.content_type or "",
            category=category,
            actor_id=actor.id,
            network_origin=actor.network_origin,
        )
    except UploadRejectedError as e:
        code = 413 if e.reason == RejectionReason.SIZE else 422
        raise HTTPException(status_code=code, detail=str(e)) from e
    logger.info(f"Actor {actor.id} uploaded {artifact.category}/{artifact.stored_name}")
    return _artifact_to_response(artifact, settings)


@uploads_router.get("/{category}/{stored_name}")
async def download(
    category: UploadCategory,
    stored_name: str,
    actor: Actor = Depends(get_current_actor),
    storage: CategoryFileStorage = Depends(get_upload_storage),
    audit: AuditLogger = Depends(get_audit_logger),
) -> Response:
    """Download a stored file."""
    try:
        content = await download_file(
            storage,
            audit,
            category=category,
            stored_name=stored_name,
            actor_id=actor.id,
            network_origin=actor.network_origin,
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return Response(
        content=content,
        media_type=_media_type_for(stored_name),
        headers={"Content-Disposition": f'attachment; filename="{stored_name}"'},
    )


@uploads_router.delete("/{category}/{stored_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete(
    category: UploadCategory,
    stored_name: str,
    actor: Actor = Depends(require_role(*_UPLOAD_ROLES)),
    storage: CategoryFileStorage = Depends(get_upload_storage),
    audit: AuditLogger = Depends(get_audit_logger),
) -> None:
    """Delete a stored file."""
    try:
        await delete_file(
            storage,
            audit,
            category=category,
            stored_name=stored_name,
            actor_id=actor.id,
            network_origin=actor.network_origin,
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
