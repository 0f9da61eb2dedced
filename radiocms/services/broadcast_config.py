"""Read access to the active broadcast publishing configuration."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from radiocms.database import session_scope
from radiocms.models import BroadcastConfigRecord
from radiocms.views.broadcast import BroadcastConfig

logger = logging.getLogger(__name__)


class BroadcastConfigError(RuntimeError):
    """Raised when the stored configuration cannot be interpreted."""


class BroadcastConfigRepository(Protocol):
    async def load_active(self) -> Optional[BroadcastConfig]:
        ...


class SqlBroadcastConfigRepository:
    """Load the single active record from ``broadcast_configs``."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], AbstractAsyncContextManager[AsyncSession]]] = None,
    ) -> None:
        self._session_factory = session_factory or session_scope

    async def load_active(self) -> Optional[BroadcastConfig]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BroadcastConfigRecord).order_by(BroadcastConfigRecord.id).limit(1)
            )
            record = result.scalar_one_or_none()

        if record is None:
            logger.debug("No broadcast configuration stored")
            return None

        try:
            return BroadcastConfig.model_validate({"ftp": record.ftp})
        except ValidationError as exc:
            raise BroadcastConfigError(
                f"Stored broadcast configuration #{record.id} is invalid: {exc.error_count()} error(s)"
            ) from exc


class StaticBroadcastConfigRepository:
    """Serve a fixed configuration, e.g. one provided at startup."""

    def __init__(self, config: Optional[BroadcastConfig]) -> None:
        self._config = config

    async def load_active(self) -> Optional[BroadcastConfig]:
        return self._config


__all__ = [
    "BroadcastConfigError",
    "BroadcastConfigRepository",
    "SqlBroadcastConfigRepository",
    "StaticBroadcastConfigRepository",
]
