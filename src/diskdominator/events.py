"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

events.py
Fire-and-forget notifications to the presentation layer.

Engines receive an EventSink explicitly (constructor argument) instead of
reaching for a process-wide dispatcher. A sink failure is logged and never
interrupts detection or execution.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

DUPLICATE_FOUND = "duplicate-found"
PLAN_PROGRESS = "plan-progress"
PLAN_EXECUTION_COMPLETE = "plan-execution-complete"

EVENT_NAMES = (DUPLICATE_FOUND, PLAN_PROGRESS, PLAN_EXECUTION_COMPLETE)


class EventSink(Protocol):
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class NullEventSink:
    """Discards everything. Default when the caller does not listen."""

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        return None


class CallbackEventSink:
    """
    Publish/subscribe sink: listeners register per event name (or "*" for all).
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[str, Dict[str, Any]], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: str, listener: Callable[[str, Dict[str, Any]], None]) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, [])) + list(self._listeners.get("*", []))
        for listener in listeners:
            listener(event, payload)


class RecordingEventSink:
    """Keeps every event in memory, in emission order (CLI summaries, tests)."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.events.append((event, dict(payload)))

    def of_type(self, event: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


def safe_emit(sink: Optional[EventSink], event: str, payload: Dict[str, Any]) -> None:
    """Emit through `sink`, logging listener errors instead of raising them."""
    if sink is None:
        return
    try:
        sink.emit(event, payload)
    except Exception as e:
        logger.warning(f"Error in event handler for '{event}': {e}")
