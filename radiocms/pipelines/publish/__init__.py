"""DJ audio publishing pipeline package.

Modules follow the order in which ``POST /dj/upload`` executes:

1. `flow` – state map and stage descriptions.
2. `stages` – one adapter per stage, returning ``Ok``/``Err`` results.
3. `orchestrator` – sequences the stages, audits the outcome, shapes the response.
4. `contracts` – what the upstream script and speech stages hand over.
"""

from .contracts import (
    GeneratedScript,
    ScriptGenerator,
    SpeechSynthesizer,
    SynthesizedAudio,
    segment_filename,
)
from .flow import PipelineStage, PipelineState, PublishPipeline, Stage
from .orchestrator import PublishOrchestrator, troubleshooting_hints
from .types import Err, FailureKind, Ok, PublishOutcome, StageFailure

__all__ = [
    "GeneratedScript",
    "ScriptGenerator",
    "SpeechSynthesizer",
    "SynthesizedAudio",
    "segment_filename",
    "PipelineStage",
    "PipelineState",
    "PublishPipeline",
    "Stage",
    "PublishOrchestrator",
    "troubleshooting_hints",
    "Err",
    "FailureKind",
    "Ok",
    "PublishOutcome",
    "StageFailure",
]
