"""Durable, best-effort audit trail for pipeline outcomes."""

from __future__ import annotations

import json
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from radiocms.config.settings import settings
from radiocms.database import session_scope
from radiocms.domain.models import AuditLogEntry, LogType
from radiocms.models import AuditLog

logger = logging.getLogger("radiocms.audit")
fallback_logger = logging.getLogger("radiocms.audit.fallback")

REDACTED = "***"

_SENSITIVE_KEYS = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "secret_value",
        "secret_key",
        "token",
        "access_token",
        "api_key",
        "credential",
        "authorization",
    }
)

_LEVELS = {
    LogType.INFO: logging.INFO,
    LogType.SUCCESS: logging.INFO,
    LogType.WARNING: logging.WARNING,
    LogType.ERROR: logging.ERROR,
    LogType.CRITICAL: logging.CRITICAL,
}


class AuditLogStore(Protocol):
    """Append-only persistence for audit entries."""

    async def append(self, entry: AuditLogEntry) -> None:
        ...


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return lowered in _SENSITIVE_KEYS or lowered.endswith(("_password", "_token"))


def _scrub(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def redact_details(value: Any, secrets: Iterable[str] = ()) -> Any:
    """Return a JSON-safe copy of ``value`` with secrets masked."""

    secrets = tuple(s for s in secrets if s)
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if _is_sensitive(str(key)) else redact_details(item, secrets)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact_details(item, secrets) for item in value]
    if isinstance(value, str):
        return _scrub(value, secrets)
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return _scrub(str(value), secrets)


class SqlAuditLogStore:
    """Write audit entries to the ``system_logs`` table."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], AbstractAsyncContextManager[AsyncSession]]] = None,
    ) -> None:
        self._session_factory = session_factory or session_scope

    async def append(self, entry: AuditLogEntry) -> None:
        created_at = entry.created_at
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)

        async with self._session_factory() as session:
            session.add(
                AuditLog(
                    log_type=entry.log_type.value,
                    module=entry.module,
                    message=entry.message[:512],
                    details=dict(entry.details),
                    stack_trace=entry.stack_trace,
                    created_at=created_at,
                )
            )


class AuditLogger:
    """Redact, mirror to the log stream, and persist audit entries.

    Persisting is best-effort: a store failure is reported on the fallback
    logger and never reaches the caller.
    """

    def __init__(
        self,
        store: AuditLogStore,
        *,
        module: str = settings.publish.audit_module,
    ) -> None:
        self._store = store
        self._module = module

    @property
    def module(self) -> str:
        return self._module

    def entry(
        self,
        log_type: LogType,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
        *,
        stack_trace: Optional[str] = None,
    ) -> AuditLogEntry:
        return AuditLogEntry(
            log_type=log_type,
            module=self._module,
            message=message,
            details=dict(details or {}),
            stack_trace=stack_trace,
            created_at=datetime.now(timezone.utc),
        )

    async def record(self, entry: AuditLogEntry, *, secrets: Iterable[str] = ()) -> bool:
        """Persist ``entry``; return whether the store accepted it."""

        secrets = tuple(s for s in secrets if s)
        clean = replace(
            entry,
            message=_scrub(entry.message, secrets),
            details=redact_details(entry.details, secrets),
            stack_trace=_scrub(entry.stack_trace, secrets) if entry.stack_trace else None,
        )

        logger.log(
            _LEVELS.get(clean.log_type, logging.INFO),
            "[%s] %s | %s",
            clean.module,
            clean.message,
            json.dumps(clean.details, default=str, separators=(",", ":")),
        )

        try:
            await self._store.append(clean)
        except Exception as exc:
            fallback_logger.error(
                "Could not persist %s audit entry for %s (%s): %s",
                clean.log_type.value,
                clean.module,
                clean.message,
                exc,
                exc_info=True,
            )
            return False
        return True


__all__ = [
    "AuditLogStore",
    "AuditLogger",
    "SqlAuditLogStore",
    "redact_details",
]
