"""Orchestrator data models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PipelineStage(Enum):
    """States of the import pipeline, in execution order."""
    IDLE = "idle"
    ARCHIVING = "archiving"
    AUTHENTICATING = "authenticating"
    UPLOADING = "uploading"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class StageTransition:
    """One state entered by the pipeline."""
    stage: PipelineStage
    elapsed: float = 0.0
    error: Optional[str] = None
