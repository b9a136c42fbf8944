"""FastAPI dependency injection for the audit log, uploads, and access control.

The long-lived collaborators (audit writer, audit facade, reader, upload
storage and gate) are built once in ``create_app`` and kept on
``app.state``; the dependencies below only hand them out.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from showroom_api.core.config import Settings
from showroom_api.core.security import decode_token
from showroom_api.lib.audit.events import AuditEventType
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.reader import AuditLogReader
from showroom_api.lib.audit.record import ANONYMOUS_ACTOR
from showroom_api.lib.audit.writer import AuditLogWriter
from showroom_api.lib.uploads.gate import UploadGate
from showroom_api.lib.uploads.storage import CategoryFileStorage

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """The principal behind a request."""

    id: str
    role: str | None
    network_origin: str
    user_agent: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.id == ANONYMOUS_ACTOR


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_audit_writer(request: Request) -> AuditLogWriter:
    return request.app.state.audit_writer


def get_audit_logger(request: Request) -> AuditLogger:
    return request.app.state.audit


def get_audit_reader(request: Request) -> AuditLogReader:
    return request.app.state.audit_reader


def get_upload_storage(request: Request) -> CategoryFileStorage:
    return request.app.state.upload_storage


def get_upload_gate(request: Request) -> UploadGate:
    return request.app.state.upload_gate


async def get_current_actor(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
) -> Actor:
    """Resolve the acting principal from an optional bearer token.

    Requests without a token act as the anonymous principal.  A token that
    fails validation is recorded as ``INVALID_TOKEN`` and rejected.

    Raises:
        HTTPException: 401 if a token is present but invalid.
    """
    from showroom_api.api.middleware import get_client_ip

    origin = get_client_ip(request, settings.trusted_proxy_header_list)
    user_agent = request.headers.get("user-agent")

    if credentials is None:
        actor = Actor(id=ANONYMOUS_ACTOR, role=None, network_origin=origin, user_agent=user_agent)
        request.state.actor_id = actor.id
        return actor

    try:
        payload = decode_token(credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm)
        subject = payload.get("sub")
        if not subject:
            msg = "Token has no subject"
            raise jwt.InvalidTokenError(msg)
    except jwt.InvalidTokenError as exc:
        audit.log_security_event(
            "Invalid or expired access token",
            event_type=AuditEventType.INVALID_TOKEN,
            context={"error": type(exc).__name__, "path": request.url.path},
            network_origin=origin,
            user_agent=user_agent,
        )
        logger.info(f"Rejected invalid token from {origin}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    actor = Actor(id=str(subject), role=payload.get("role"), network_origin=origin, user_agent=user_agent)
    request.state.actor_id = actor.id
    return actor


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring specific roles.

    Args:
        *roles: Allowed role names (e.g., "admin", "vendeur", "prestataire").

    Returns:
        A FastAPI dependency function that validates the actor's role.
    """

    async def role_checker(
        actor: Annotated[Actor, Depends(get_current_actor)],
    ) -> Actor:
        if actor.is_anonymous:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role}' does not have access to this resource",
            )
        return actor

    return role_checker
