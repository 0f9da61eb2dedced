"""Publish Orchestrator: turns a synthesized DJ segment into a file on air.

One :meth:`PublishOrchestrator.publish` call is one pipeline invocation. It
walks the states in :mod:`radiocms.pipelines.publish.flow`, writes exactly one
audit entry for the dominant outcome, and always returns a
:class:`PublishOutcome`. The only case with two audit entries is an exception
escaping the state machine after the outcome entry was written: the outer
handler then adds a ``critical`` entry of its own.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional
from weakref import WeakValueDictionary

from fastapi import status

from radiocms.config.settings import PublishConfig, settings
from radiocms.domain.models import Actor, LogType
from radiocms.pipelines.publish import stages
from radiocms.pipelines.publish.flow import PipelineState, Stage, next_state
from radiocms.pipelines.publish.types import (
    DecodedAudio,
    Err,
    FailureKind,
    PublishOutcome,
    StageFailure,
)
from radiocms.services.audit import AuditLogger
from radiocms.services.broadcast_config import BroadcastConfigRepository
from radiocms.services.public_url import resolve_public_url
from radiocms.services.secrets import SecretStoreProvider
from radiocms.services.transport import TransportClient, build_transfer_target
from radiocms.telemetry import observe_publish
from radiocms.views.broadcast import FtpConfig
from radiocms.views.publish import UploadResult

logger = logging.getLogger(__name__)

# Advisory text only; the same list is returned for every operational failure.
_ADVISORY_STAGES = frozenset({Stage.CONFIG, Stage.SECRET, Stage.DECODE, Stage.UPLOAD})


def troubleshooting_hints(secret_key: str) -> list[str]:
    return [
        "Check that the FTP host is correct",
        f"Check that the secret '{secret_key}' holds the right password",
        "Check that the account can write to the remote folder",
        "Check that the port is correct (21 for FTP/FTPS, 22 for SFTP)",
        "If you use localhost, make sure a local FTP server is running",
    ]


def _connection_details(ftp: Optional[FtpConfig]) -> dict[str, Any]:
    if ftp is None:
        return {}
    return {
        "ftp_host": ftp.host,
        "ftp_port": ftp.port,
        "ftp_user": ftp.username,
        "encryption": ftp.encryption,
    }


class PublishOrchestrator:
    """Authorize, validate, resolve, decode, upload and audit one DJ segment."""

    def __init__(
        self,
        *,
        config_repository: BroadcastConfigRepository,
        secret_provider: SecretStoreProvider,
        audit_logger: AuditLogger,
        transport_client: TransportClient,
        config: PublishConfig = settings.publish,
    ) -> None:
        self._config_repository = config_repository
        self._secret_provider = secret_provider
        self._audit = audit_logger
        self._transport = transport_client
        self._config = config
        self._filename_locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    async def publish(self, actor: Optional[Actor], body: Any) -> PublishOutcome:
        try:
            return await self._run(actor, body)
        except Exception as exc:
            return await self._fail_unhandled(exc)

    async def _run(self, actor: Optional[Actor], body: Any) -> PublishOutcome:
        state = PipelineState.RECEIVED

        authorized = stages.authorize(actor, self._config.allowed_roles)
        if isinstance(authorized, Err):
            return await self._fail(authorized.failure)
        state = self._advance(state)

        validated = stages.validate_request(body)
        if isinstance(validated, Err):
            return await self._fail(validated.failure)
        request = validated.value
        state = self._advance(state)

        loaded = await stages.load_ftp_config(self._config_repository)
        if isinstance(loaded, Err):
            return await self._fail(loaded.failure, filename=request.filename)
        ftp = loaded.value
        state = self._advance(state)

        credential = await stages.resolve_credential(
            self._secret_provider,
            ftp,
            default_key=self._config.default_secret_key,
        )
        if isinstance(credential, Err):
            return await self._fail(credential.failure, filename=request.filename, ftp=ftp)
        secret = credential.value
        state = self._advance(state)

        decoded = stages.decode_payload(request.audio_payload)
        if isinstance(decoded, Err):
            return await self._fail(
                decoded.failure, filename=request.filename, ftp=ftp, secrets=(secret,)
            )
        audio = decoded.value
        logger.info("Audio decoded: %s KB", audio.size_kb)
        state = self._advance(state)

        target = build_transfer_target(ftp, secret, request.filename)
        async with self._filename_guard(request.filename):
            uploaded = await stages.upload_audio(self._transport, audio, target)
        if isinstance(uploaded, Err):
            return await self._fail(
                uploaded.failure, filename=request.filename, ftp=ftp, secrets=(secret,)
            )
        remote_path = uploaded.value
        state = self._advance(state)

        public_url = resolve_public_url(
            ftp.host,
            remote_path,
            ftp.port,
            managed_domain=self._config.managed_host_domain,
            local_port=self._config.local_http_port,
        )
        self._advance(state)
        return await self._published(
            request.filename,
            audio,
            remote_path,
            public_url,
            target.diagnostics(),
            secret,
        )

    def _advance(self, state: PipelineState) -> PipelineState:
        reached = next_state(state)
        logger.debug("Publish pipeline %s -> %s", state.value, reached.value)
        return reached

    @asynccontextmanager
    async def _filename_guard(self, filename: str) -> AsyncIterator[None]:
        """Serialize concurrent uploads of the same filename within this instance."""

        if not self._config.serialize_same_filename:
            yield
            return

        lock = self._filename_locks.get(filename)
        if lock is None:
            lock = asyncio.Lock()
            self._filename_locks[filename] = lock
        async with lock:
            yield

    async def _published(
        self,
        filename: str,
        audio: DecodedAudio,
        remote_path: str,
        public_url: str,
        connection: dict[str, Any],
        secret: str,
    ) -> PublishOutcome:
        details = {
            "filename": filename,
            "size_bytes": audio.size_bytes,
            "size_kb": audio.size_kb,
            "remote_path": remote_path,
            "public_url": public_url,
            **connection,
        }
        await self._audit.record(
            self._audit.entry(LogType.SUCCESS, "Audio uploaded via FTP", details),
            secrets=(secret,),
        )
        observe_publish("success", size_bytes=audio.size_bytes)

        scheme = str(connection.get("scheme", "ftp")).upper()
        result = UploadResult(
            success=True,
            remote_path=remote_path,
            public_url=public_url,
            filename=filename,
            size_bytes=audio.size_bytes,
            size_kb=audio.size_kb,
            message=f"Audio uploaded via {scheme} ({audio.size_kb} KB)",
        )
        return PublishOutcome(status.HTTP_200_OK, result, PipelineState.PUBLISHED)

    async def _fail(
        self,
        failure: StageFailure,
        *,
        filename: Optional[str] = None,
        ftp: Optional[FtpConfig] = None,
        secrets: tuple[str, ...] = (),
    ) -> PublishOutcome:
        secret_key = self._config.default_secret_key
        if ftp is not None and ftp.password_secret_key:
            secret_key = ftp.password_secret_key

        details: dict[str, Any] = {
            "stage": failure.stage.value,
            "error_kind": failure.kind.value,
            "error": failure.error,
            **_connection_details(ftp),
            **failure.log_details,
        }
        if filename is not None:
            details["filename"] = filename
        if failure.details is not None:
            details["details"] = failure.details

        await self._audit.record(
            self._audit.entry(
                LogType.ERROR,
                f"DJ audio publishing failed at {failure.stage.value} stage",
                details,
                stack_trace=failure.stack_trace,
            ),
            secrets=secrets,
        )
        observe_publish("failure", stage=failure.stage.value)

        result = UploadResult(
            success=False,
            error=failure.error,
            details=failure.details,
            troubleshooting=(
                troubleshooting_hints(secret_key) if failure.stage in _ADVISORY_STAGES else None
            ),
        )
        return PublishOutcome(failure.status_code, result, PipelineState.FAILED, failure.stage)

    async def _fail_unhandled(self, exc: Exception) -> PublishOutcome:
        logger.exception("Unhandled error in DJ audio publishing")
        stack_trace = stages.format_stack(exc)
        try:
            await self._audit.record(
                self._audit.entry(
                    LogType.CRITICAL,
                    "Critical error in DJ audio upload",
                    {
                        "error_kind": FailureKind.UNHANDLED.value,
                        "error": str(exc) or type(exc).__name__,
                    },
                    stack_trace=stack_trace,
                )
            )
        except Exception:
            logging.getLogger("radiocms.audit.fallback").exception(
                "Could not record critical publishing failure"
            )
        observe_publish("failure", stage="unhandled")

        result = UploadResult(success=False, error=str(exc) or "Unknown error")
        return PublishOutcome(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            result,
            PipelineState.FAILED,
        )


__all__ = ["PublishOrchestrator", "troubleshooting_hints"]
