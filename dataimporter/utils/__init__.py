"""Utilities for dataimporter."""
from .events import EventEmitter, StageEvent

__all__ = ["EventEmitter", "StageEvent"]
