"""DJ Virtual publishing endpoints.

``POST /dj/upload`` receives the synthesized announcement (base64 audio and a
filename) and hands it to :class:`~radiocms.pipelines.publish.PublishOrchestrator`,
see :mod:`radiocms.pipelines.publish.flow` for the stage map. The response
always carries an explicit ``success`` flag, whatever the outcome.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from radiocms.config.settings import settings
from radiocms.controllers.dependencies import (
    BroadcastConfigRepositoryDep,
    CurrentActorDep,
    OptionalActorDep,
    PublishOrchestratorDep,
    SecretProviderDep,
)
from radiocms.pipelines.publish import PublishPipeline
from radiocms.services import BroadcastConfigError, SecretResolver, SecretStoreError
from radiocms.views import ErrorResponse, UploadResult, UploadStatusResponse

router = APIRouter(prefix="/dj", tags=["dj"])

logger = logging.getLogger(__name__)

PIPELINE_STAGES = tuple(PublishPipeline.describe())
"""Ordered pipeline metadata used for quick reference and debugging."""


@router.post(
    "/upload",
    response_model=UploadResult,
    responses={
        400: {"model": UploadResult},
        401: {"model": ErrorResponse},
        500: {"model": UploadResult},
    },
)
async def upload_dj_audio(
    request: Request,
    actor: OptionalActorDep,
    orchestrator: PublishOrchestratorDep,
) -> JSONResponse:
    """Publish a synthesized DJ segment to the broadcast server."""

    try:
        body = await request.json()
    except ValueError:
        # Malformed bodies are reported by the validation stage.
        body = None

    outcome = await orchestrator.publish(actor, body)
    logger.info(
        "DJ upload finished state=%s status=%s",
        outcome.state.value,
        outcome.status_code,
    )
    return JSONResponse(
        status_code=outcome.status_code,
        content=outcome.result.to_payload(),
    )


@router.get("/upload/status", response_model=UploadStatusResponse)
async def upload_status(
    actor: CurrentActorDep,
    repository: BroadcastConfigRepositoryDep,
    secret_provider: SecretProviderDep,
) -> UploadStatusResponse:
    """Report whether FTP publishing is ready, without revealing the secret."""

    if not actor.has_role(*settings.publish.allowed_roles):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized",
        )

    try:
        config = await repository.load_active()
        store = await secret_provider.get()
    except (BroadcastConfigError, SecretStoreError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    ftp = config.ftp if config else None
    resolver = SecretResolver(store, default_key=settings.publish.default_secret_key)
    secret_key = resolver.key_name_for(ftp.password_secret_key if ftp else None)
    configured = resolver.is_configured(secret_key)

    if ftp is None or not ftp.enabled:
        message = "FTP upload is disabled."
    elif configured:
        message = f"FTP password secret '{secret_key}' is configured."
    else:
        message = f"FTP password secret '{secret_key}' not found."

    return UploadStatusResponse(
        enabled=bool(ftp and ftp.enabled),
        host=ftp.host if ftp else None,
        port=ftp.port if ftp else None,
        username=ftp.username if ftp else None,
        remote_folder=ftp.remote_folder if ftp else None,
        encryption=ftp.encryption if ftp else None,
        secret_key=secret_key,
        secret_configured=configured,
        message=message,
    )
