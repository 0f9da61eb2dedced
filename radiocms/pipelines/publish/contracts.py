"""Output contracts of the upstream DJ stages.

Script generation (LLM) and speech synthesis run outside this service. The
publishing pipeline only relies on what they hand over, described here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol
from uuid import uuid4

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass(frozen=True)
class GeneratedScript:
    """Announcement text written by the script generator."""

    text: str


@dataclass(frozen=True)
class SynthesizedAudio:
    """Speech synthesizer output, ready to be posted to ``/dj/upload``."""

    audio_payload: str
    filename: str
    content_type: str = "audio/mpeg"

    def as_request_body(self) -> dict[str, str]:
        return {"audio_payload": self.audio_payload, "filename": self.filename}


class ScriptGenerator(Protocol):
    async def generate(self, intervention_type: str) -> GeneratedScript:
        ...


class SpeechSynthesizer(Protocol):
    async def synthesize(self, script: GeneratedScript, *, voice_id: Optional[str] = None) -> SynthesizedAudio:
        ...


def segment_filename(
    prefix: str = "dj",
    *,
    now: Optional[datetime] = None,
    extension: str = "mp3",
) -> str:
    """Return a time-stamped, collision-resistant filename for one segment.

    >>> segment_filename("news", now=datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc))[:22]
    'news_20240501T083000Z_'
    """

    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    safe_prefix = _UNSAFE_CHARS.sub("-", prefix).strip("-") or "dj"
    stamp = moment.strftime("%Y%m%dT%H%M%SZ")
    return f"{safe_prefix}_{stamp}_{uuid4().hex[:8]}.{extension.lstrip('.')}"


__all__ = [
    "GeneratedScript",
    "ScriptGenerator",
    "SpeechSynthesizer",
    "SynthesizedAudio",
    "segment_filename",
]
