"""Async database access for the audit trail and broadcast configuration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from radiocms.config.settings import settings
from radiocms.models import AuditLog, Base, BroadcastConfigRecord

logger = logging.getLogger(__name__)

# Tables owned by this service; created on startup when missing.
MANAGED_TABLES = (AuditLog.__table__, BroadcastConfigRecord.__table__)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Build the engine on first use so importing never needs a driver."""

    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if settings.database.serverless or settings.debug:
        # Serverless databases pause between invocations; keep no idle connections.
        options["poolclass"] = NullPool

    logger.info(
        "Connecting to %s:%s/%s",
        settings.database.host,
        settings.database.port,
        settings.database.database,
    )
    return create_async_engine(settings.database.url, **options)


@lru_cache(maxsize=1)
def _session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), expire_on_commit=False, class_=AsyncSession)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Transactional scope: commit on success, roll back on any error."""

    async with _session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_models() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=list(MANAGED_TABLES))

    logger.info(
        "Ensured tables: %s",
        ", ".join(table.name for table in MANAGED_TABLES),
    )


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_engine.cache_clear()
        _session_factory.cache_clear()
