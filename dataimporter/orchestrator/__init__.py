"""Orchestrator package - runs import pipelines."""
from .core import DataImporter
from .models import PipelineStage, StageTransition
from .pipeline import ImportPipeline

__all__ = ["DataImporter", "ImportPipeline", "PipelineStage", "StageTransition"]
