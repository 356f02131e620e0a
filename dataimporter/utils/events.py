from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import logging
logger = logging.getLogger(__name__)


@dataclass
class StageEvent:
    """Progress information for a single pipeline stage."""
    stage: str
    status: str = "started"  # started, completed, failed
    elapsed: float = 0.0
    detail: Optional[str] = None

    def describe(self) -> str:
        title = self.stage.capitalize()
        if self.status == "started":
            return f"{title}: started" + (f" ({self.detail})" if self.detail else "")
        if self.status == "completed":
            line = f"{title}: complete in {self.elapsed:.2f}s"
            return line + (f" ({self.detail})" if self.detail else "")
        return f"{title}: failed after {self.elapsed:.2f}s: {self.detail}"


class EventEmitter:
    """Simple event emitter for pipeline events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners. Listener errors are logged, never raised."""
        if event_name not in self._listeners:
            return

        for callback in self._listeners[event_name][:]:  # Copy list to avoid modification during iteration
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")
