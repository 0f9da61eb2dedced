"""Service layer helpers for external integrations."""

from .audit import AuditLogger, AuditLogStore, SqlAuditLogStore, redact_details
from .broadcast_config import (
    BroadcastConfigError,
    BroadcastConfigRepository,
    SqlBroadcastConfigRepository,
    StaticBroadcastConfigRepository,
)
from .codec import DecodingError, decode_audio_payload, encode_audio_payload
from .public_url import resolve_public_url
from .secrets import (
    SecretMissingError,
    SecretResolver,
    SecretStore,
    SecretStoreError,
    SecretStoreProvider,
    load_secret_store,
)
from .transport import (
    TransferTarget,
    TransportClient,
    TransportError,
    build_transfer_target,
)

__all__ = [
    "AuditLogger",
    "AuditLogStore",
    "SqlAuditLogStore",
    "redact_details",
    "BroadcastConfigError",
    "BroadcastConfigRepository",
    "SqlBroadcastConfigRepository",
    "StaticBroadcastConfigRepository",
    "DecodingError",
    "decode_audio_payload",
    "encode_audio_payload",
    "resolve_public_url",
    "SecretMissingError",
    "SecretResolver",
    "SecretStore",
    "SecretStoreError",
    "SecretStoreProvider",
    "load_secret_store",
    "TransferTarget",
    "TransportClient",
    "TransportError",
    "build_transfer_target",
]
