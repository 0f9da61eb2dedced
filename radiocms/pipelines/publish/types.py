"""Result containers shared by the publishing stages.

Expected failures travel as ``Err`` values so the orchestrator can tell a
classified failure apart from an exception nobody anticipated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Mapping, Optional, TypeVar, Union

from radiocms.pipelines.publish.flow import PipelineState, Stage
from radiocms.views.publish import UploadResult

T = TypeVar("T")


class FailureKind(str, Enum):
    UNAUTHORIZED = "Unauthorized"
    VALIDATION = "ValidationError"
    CONFIGURATION = "ConfigurationError"
    SECRET_MISSING = "SecretMissingError"
    DECODING = "DecodingError"
    TRANSPORT = "TransportError"
    UNHANDLED = "UnhandledError"


@dataclass(frozen=True)
class StageFailure:
    """Classified reason a stage moved the pipeline into ``FAILED``."""

    stage: Stage
    kind: FailureKind
    error: str
    status_code: int = 500
    details: Optional[Any] = None
    log_details: Mapping[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    failure: StageFailure


StageResult = Union[Ok[T], Err]


@dataclass(frozen=True)
class DecodedAudio:
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def size_kb(self) -> int:
        return size_in_kb(len(self.data))


@dataclass(frozen=True)
class PublishOutcome:
    """HTTP status plus body of one pipeline invocation."""

    status_code: int
    result: UploadResult
    state: PipelineState
    failed_stage: Optional[Stage] = None

    @property
    def success(self) -> bool:
        return self.result.success


def size_in_kb(size_bytes: int) -> int:
    """Kilobytes rounded half up."""

    return (size_bytes + 512) // 1024


__all__ = [
    "DecodedAudio",
    "Err",
    "FailureKind",
    "Ok",
    "PublishOutcome",
    "StageFailure",
    "StageResult",
    "size_in_kb",
]
