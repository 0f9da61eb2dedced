"""Process-wide secret store and credential resolution.

The store is a read-only snapshot assembled once per process from, in
increasing precedence:

1. the process environment (``SECRETS_INCLUDE_ENVIRONMENT``),
2. one file per secret in ``SECRETS_DIRECTORY`` (the ``.secrets/NAME`` layout
   pydantic-settings already uses for ``secrets_dir``),
3. an optional AWS Secrets Manager secret holding a JSON object of
   ``NAME -> value`` pairs (``SECRETS_AWS_SECRET_ID``).

Consumers receive the snapshot through :class:`SecretStoreProvider`, which is
owned by the application instance and initialises the store at most once.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterator, Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from radiocms.config.settings import SecretsConfig, settings
from radiocms.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


class SecretMissingError(RuntimeError):
    """Raised when a named credential is absent or empty."""

    def __init__(self, key_name: str) -> None:
        self.key_name = key_name
        super().__init__(f"Secret '{key_name}' is not configured.")


class SecretStoreError(RuntimeError):
    """Raised when a secret source cannot be read while building the store."""


class SecretStore(Mapping[str, str]):
    """Immutable name -> value snapshot of every known secret."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        # Never print values.
        return f"SecretStore(<{len(self._values)} entries>)"


def _read_secrets_dir(directory: str | os.PathLike[str]) -> dict[str, str]:
    """Load ``NAME`` files from a secrets directory, ignoring subdirectories."""

    path = Path(directory)
    if not path.is_dir():
        return {}

    values: dict[str, str] = {}
    for entry in sorted(path.iterdir()):
        if not entry.is_file() or entry.name.startswith("."):
            continue
        try:
            values[entry.name] = entry.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise SecretStoreError(f"Unable to read secret file '{entry.name}': {exc}") from exc
    return values


def _fetch_aws_secret(secret_id: str, region: str) -> dict[str, str]:
    """Fetch a JSON secret bundle from AWS Secrets Manager."""

    client = create_boto3_client("secretsmanager", region_name=region)
    try:
        response = client.get_secret_value(SecretId=secret_id)
    except (BotoCoreError, ClientError) as exc:
        raise SecretStoreError(f"Failed to fetch secret bundle '{secret_id}': {exc}") from exc

    raw = response.get("SecretString")
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        # A plain string secret is exposed under its own id.
        return {secret_id: raw}
    if not isinstance(decoded, dict):
        return {secret_id: raw}
    return {str(name): str(value) for name, value in decoded.items() if value is not None}


def load_secret_store(
    config: SecretsConfig | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> SecretStore:
    """Build the secret store snapshot from the configured sources."""

    config = config or settings.secrets
    values: dict[str, str] = {}

    if config.include_environment:
        values.update(os.environ if environ is None else environ)

    values.update(_read_secrets_dir(config.directory))

    if config.aws_secret_id:
        values.update(_fetch_aws_secret(config.aws_secret_id, config.aws_region))

    return SecretStore(values)


class SecretStoreProvider:
    """Lazily build the secret store once and share it with every caller."""

    def __init__(self, loader: Callable[[], SecretStore] = load_secret_store) -> None:
        self._loader = loader
        self._store: Optional[SecretStore] = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._store is not None

    async def get(self) -> SecretStore:
        if self._store is not None:
            return self._store

        async with self._lock:
            if self._store is None:
                store = await run_in_threadpool(self._loader)
                logger.info("Secret store initialised with %d entries", len(store))
                self._store = store
        return self._store


class SecretResolver:
    """Resolve the credential configured for the broadcast upload."""

    def __init__(
        self,
        store: Mapping[str, str],
        *,
        default_key: str = settings.publish.default_secret_key,
    ) -> None:
        self._store = store
        self._default_key = default_key

    def key_name_for(self, configured: Optional[str]) -> str:
        """Return the configured key name or the well-known fallback."""

        if configured and configured.strip():
            return configured.strip()
        return self._default_key

    def is_configured(self, key_name: Optional[str]) -> bool:
        value = self._store.get(self.key_name_for(key_name))
        return bool(value and value.strip())

    def resolve(self, key_name: Optional[str]) -> str:
        """Return the secret value or raise :class:`SecretMissingError`."""

        name = self.key_name_for(key_name)
        value = self._store.get(name)
        if value is None or not value.strip():
            raise SecretMissingError(name)
        return value


__all__ = [
    "SecretMissingError",
    "SecretResolver",
    "SecretStore",
    "SecretStoreError",
    "SecretStoreProvider",
    "load_secret_store",
]
