"""State map of the DJ audio publishing pipeline.

``POST /dj/upload`` walks these states in order; any of them can end in
``FAILED`` instead, which is always terminal:

1. ``RECEIVED`` – request body accepted by the controller.
2. ``AUTHORIZED`` – caller holds an ``admin``/``superadmin`` role.
3. ``VALIDATED`` – ``audio_payload`` and ``filename`` are present.
4. ``CONFIG_LOADED`` – an enabled broadcast FTP configuration exists.
5. ``CREDENTIAL_RESOLVED`` – the configured secret is in the secret store.
6. ``DECODED`` – the base64 payload decoded into audio bytes.
7. ``UPLOADED`` – the transport client stored the file remotely.
8. ``PUBLISHED`` – public URL derived and success audited.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List


class PipelineState(str, Enum):
    RECEIVED = "received"
    AUTHORIZED = "authorized"
    VALIDATED = "validated"
    CONFIG_LOADED = "config_loaded"
    CREDENTIAL_RESOLVED = "credential_resolved"
    DECODED = "decoded"
    UPLOADED = "uploaded"
    PUBLISHED = "published"
    FAILED = "failed"


class Stage(str, Enum):
    """Stage names reported in failures and audit entries."""

    AUTH = "auth"
    VALIDATION = "validation"
    CONFIG = "config"
    SECRET = "secret"
    DECODE = "decode"
    UPLOAD = "upload"
    PUBLISH = "publish"


_HAPPY_PATH = (
    PipelineState.RECEIVED,
    PipelineState.AUTHORIZED,
    PipelineState.VALIDATED,
    PipelineState.CONFIG_LOADED,
    PipelineState.CREDENTIAL_RESOLVED,
    PipelineState.DECODED,
    PipelineState.UPLOADED,
    PipelineState.PUBLISHED,
)

TERMINAL_STATES = frozenset({PipelineState.PUBLISHED, PipelineState.FAILED})


def next_state(current: PipelineState) -> PipelineState:
    """Return the successor of ``current`` on the success path."""

    if current in TERMINAL_STATES:
        raise ValueError(f"{current.value} is terminal")
    return _HAPPY_PATH[_HAPPY_PATH.index(current) + 1]


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one transition in the pipeline."""

    order: int
    name: str
    stage: Stage
    reaches: PipelineState
    module: str
    summary: str
    can_fail: bool = True


class PublishPipeline:
    """Utility wrapper documenting the ``/dj/upload`` flow."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            "Authorization",
            Stage.AUTH,
            PipelineState.AUTHORIZED,
            "radiocms.pipelines.publish.stages",
            "Only admin and superadmin actors may publish to the broadcast server.",
        ),
        PipelineStage(
            2,
            "Validation",
            Stage.VALIDATION,
            PipelineState.VALIDATED,
            "radiocms.pipelines.publish.stages",
            "Require a non-empty audio payload and filename.",
        ),
        PipelineStage(
            3,
            "Broadcast Config",
            Stage.CONFIG,
            PipelineState.CONFIG_LOADED,
            "radiocms.services.broadcast_config",
            "Load the active FTP configuration and make sure uploads are enabled.",
        ),
        PipelineStage(
            4,
            "Credential",
            Stage.SECRET,
            PipelineState.CREDENTIAL_RESOLVED,
            "radiocms.services.secrets",
            "Resolve the FTP password from the secret store by its configured name.",
        ),
        PipelineStage(
            5,
            "Decode",
            Stage.DECODE,
            PipelineState.DECODED,
            "radiocms.services.codec",
            "Turn the base64 payload back into the exact audio bytes.",
        ),
        PipelineStage(
            6,
            "Upload",
            Stage.UPLOAD,
            PipelineState.UPLOADED,
            "radiocms.services.transport",
            "Store the file on the FTP/SFTP server under the remote folder.",
        ),
        PipelineStage(
            7,
            "Publish",
            Stage.PUBLISH,
            PipelineState.PUBLISHED,
            "radiocms.services.public_url",
            "Derive the listener-facing URL and write the success audit entry.",
            can_fail=False,
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)


__all__ = [
    "PipelineStage",
    "PipelineState",
    "PublishPipeline",
    "Stage",
    "TERMINAL_STATES",
    "next_state",
]
