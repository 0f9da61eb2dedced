"""Stage adapters for the publishing pipeline.

Each adapter calls one component and converts the component's named
exception into an ``Err``. Anything else propagates to the orchestrator's
outer handler.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Iterable, Mapping, Optional

from fastapi import status
from pydantic import ValidationError

from radiocms.domain.models import Actor
from radiocms.pipelines.publish.flow import Stage
from radiocms.pipelines.publish.types import (
    DecodedAudio,
    Err,
    FailureKind,
    Ok,
    StageFailure,
    StageResult,
)
from radiocms.services.broadcast_config import BroadcastConfigError, BroadcastConfigRepository
from radiocms.services.codec import DecodingError, decode_audio_payload
from radiocms.services.secrets import (
    SecretMissingError,
    SecretResolver,
    SecretStoreError,
    SecretStoreProvider,
)
from radiocms.services.transport import TransferTarget, TransportClient, TransportError
from radiocms.views.broadcast import FtpConfig
from radiocms.views.publish import UploadRequest

logger = logging.getLogger(__name__)

NOT_AUTHORIZED = "Not authorized"
FTP_NOT_CONFIGURED = "FTP is not configured. Go to Admin → DJ Virtual → FTP settings."


def format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def authorize(actor: Optional[Actor], allowed_roles: Iterable[str]) -> StageResult[Actor]:
    if actor is None or not actor.has_role(*allowed_roles):
        return Err(
            StageFailure(
                stage=Stage.AUTH,
                kind=FailureKind.UNAUTHORIZED,
                error=NOT_AUTHORIZED,
                status_code=status.HTTP_401_UNAUTHORIZED,
                log_details={
                    "actor_id": actor.id if actor else None,
                    "actor_role": actor.role if actor else None,
                },
            )
        )
    return Ok(actor)


def validate_request(body: Any) -> StageResult[UploadRequest]:
    if not isinstance(body, Mapping):
        return Err(
            StageFailure(
                stage=Stage.VALIDATION,
                kind=FailureKind.VALIDATION,
                error="audio_payload and filename are required",
                status_code=status.HTTP_400_BAD_REQUEST,
                details="Request body must be a JSON object",
            )
        )
    try:
        return Ok(UploadRequest.model_validate(body))
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        return Err(
            StageFailure(
                stage=Stage.VALIDATION,
                kind=FailureKind.VALIDATION,
                error="audio_payload and filename are required",
                status_code=status.HTTP_400_BAD_REQUEST,
                details={"invalid_fields": fields},
            )
        )


async def load_ftp_config(repository: BroadcastConfigRepository) -> StageResult[FtpConfig]:
    try:
        config = await repository.load_active()
    except BroadcastConfigError as exc:
        return Err(
            StageFailure(
                stage=Stage.CONFIG,
                kind=FailureKind.CONFIGURATION,
                error=FTP_NOT_CONFIGURED,
                details=str(exc),
                stack_trace=format_stack(exc),
            )
        )

    if config is None or not config.upload_enabled:
        logger.error("FTP upload is not configured or disabled")
        return Err(
            StageFailure(
                stage=Stage.CONFIG,
                kind=FailureKind.CONFIGURATION,
                error=FTP_NOT_CONFIGURED,
                log_details={"config_present": config is not None},
            )
        )

    ftp = config.ftp
    if not ftp.host.strip():
        return Err(
            StageFailure(
                stage=Stage.CONFIG,
                kind=FailureKind.CONFIGURATION,
                error=FTP_NOT_CONFIGURED,
                details="FTP host is empty",
            )
        )
    return Ok(ftp)


async def resolve_credential(
    provider: SecretStoreProvider,
    ftp_config: FtpConfig,
    *,
    default_key: str,
) -> StageResult[str]:
    try:
        store = await provider.get()
    except SecretStoreError as exc:
        return Err(
            StageFailure(
                stage=Stage.SECRET,
                kind=FailureKind.SECRET_MISSING,
                error="The secret store is unavailable.",
                details=str(exc),
                stack_trace=format_stack(exc),
            )
        )

    resolver = SecretResolver(store, default_key=default_key)
    try:
        return Ok(resolver.resolve(ftp_config.password_secret_key))
    except SecretMissingError as exc:
        logger.error("Secret '%s' is not configured", exc.key_name)
        return Err(
            StageFailure(
                stage=Stage.SECRET,
                kind=FailureKind.SECRET_MISSING,
                error=(
                    f"The secret '{exc.key_name}' is not configured. "
                    "Set it in Admin → Settings → Secrets."
                ),
                log_details={"secret_name": exc.key_name},
            )
        )


def decode_payload(payload: str) -> StageResult[DecodedAudio]:
    try:
        data = decode_audio_payload(payload)
    except DecodingError as exc:
        logger.error("Audio payload could not be decoded: %s", exc)
        return Err(
            StageFailure(
                stage=Stage.DECODE,
                kind=FailureKind.DECODING,
                error="Could not convert the base64 audio",
                details=str(exc),
                stack_trace=format_stack(exc),
            )
        )

    if not data:
        return Err(
            StageFailure(
                stage=Stage.DECODE,
                kind=FailureKind.DECODING,
                error="Could not convert the base64 audio",
                details="Decoded audio is empty",
            )
        )
    return Ok(DecodedAudio(data))


async def upload_audio(
    client: TransportClient,
    audio: DecodedAudio,
    target: TransferTarget,
) -> StageResult[str]:
    try:
        return Ok(await client.upload(audio.data, target))
    except TransportError as exc:
        logger.error("Upload to %s failed: %s", target.redacted_url, exc)
        return Err(
            StageFailure(
                stage=Stage.UPLOAD,
                kind=FailureKind.TRANSPORT,
                error=f"Error uploading via {target.scheme.upper()}",
                details=str(exc),
                log_details={
                    "status_code": exc.status_code,
                    "status_text": exc.status_text,
                    "network_failure": exc.is_network_failure,
                },
                stack_trace=format_stack(exc),
            )
        )


__all__ = [
    "FTP_NOT_CONFIGURED",
    "NOT_AUTHORIZED",
    "authorize",
    "decode_payload",
    "format_stack",
    "load_ftp_config",
    "resolve_credential",
    "upload_audio",
    "validate_request",
]
