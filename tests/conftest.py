"""Shared fakes for the publishing pipeline tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
import sys
from typing import Any, Callable, Mapping, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from radiocms.config.settings import PublishConfig  # noqa: E402
from radiocms.pipelines.publish import PublishOrchestrator  # noqa: E402
from radiocms.services import (  # noqa: E402
    AuditLogger,
    SecretStore,
    SecretStoreProvider,
    StaticBroadcastConfigRepository,
)
from radiocms.views import BroadcastConfig, FtpConfig  # noqa: E402

FTP_PASSWORD = "s3cr3t-Pa55!"


class RecordingStore:
    """Audit store keeping entries in memory."""

    def __init__(self, *, fail: bool = False) -> None:
        self.entries: list[Any] = []
        self.fail = fail

    async def append(self, entry) -> None:
        if self.fail:
            raise RuntimeError("database unavailable")
        self.entries.append(entry)


class FakeTransport:
    """Transport client double recording every upload."""

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0) -> None:
        self.calls: list[tuple[bytes, Any]] = []
        self.error = error
        self.delay = delay
        self.active = 0
        self.max_active = 0

    async def upload(self, data: bytes, target) -> str:
        self.calls.append((data, target))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return target.remote_path
        finally:
            self.active -= 1


def make_ftp_config(**overrides: Any) -> FtpConfig:
    values: dict[str, Any] = {
        "enabled": True,
        "host": "c34.radioboss.fm",
        "port": 21,
        "username": "selaiah",
        "password_secret_key": "RADIOBOSS_FTP_PASSWORD",
        "remote_folder": "dj_interventions",
        "encryption": "ftp",
    }
    values.update(overrides)
    return FtpConfig(**values)


@pytest.fixture
def audit_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def build_orchestrator(audit_store: RecordingStore, transport: FakeTransport) -> Callable[..., PublishOrchestrator]:
    """Factory assembling an orchestrator around in-memory collaborators."""

    def _build(
        *,
        config: Optional[BroadcastConfig] | str = "default",
        secrets: Optional[Mapping[str, str]] = None,
        transport_client: Any = None,
        store: Optional[RecordingStore] = None,
        publish_config: Optional[PublishConfig] = None,
    ) -> PublishOrchestrator:
        if config == "default":
            config = BroadcastConfig(ftp=make_ftp_config())
        store_values = {"RADIOBOSS_FTP_PASSWORD": FTP_PASSWORD} if secrets is None else secrets
        return PublishOrchestrator(
            config_repository=StaticBroadcastConfigRepository(config),
            secret_provider=SecretStoreProvider(lambda: SecretStore(store_values)),
            audit_logger=AuditLogger(store or audit_store, module="dj_virtual"),
            transport_client=transport_client or transport,
            config=publish_config or PublishConfig(),
        )

    return _build
