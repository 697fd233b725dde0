"""Structured telemetry for machine data mutations.

Events are logged as one JSON line each, kept in a short in-memory buffer for
``/healthz`` and tests, and fanned out to any registered listeners.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Deque, Dict, List

logger = logging.getLogger("factory_health.telemetry")

RECENT_EVENT_LIMIT = 50


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[TelemetryEvent], None]


class TelemetryRecorder:
    def __init__(self, limit: int = RECENT_EVENT_LIMIT) -> None:
        self._listeners: List[Listener] = []
        self._recent: Deque[TelemetryEvent] = deque(maxlen=limit)
        self._lock = RLock()

    def register(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def reset(self) -> None:
        """Drop listeners and buffered events. Mainly used to reset test state."""
        with self._lock:
            self._listeners.clear()
            self._recent.clear()

    def recent(self, name: str | None = None) -> List[TelemetryEvent]:
        with self._lock:
            events = list(self._recent)
        if name is None:
            return events
        return [event for event in events if event.name == name]

    def emit(self, name: str, **fields: Any) -> TelemetryEvent:
        event = TelemetryEvent(name=name, payload=dict(fields))
        with self._lock:
            self._recent.append(event)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("Telemetry listener failed for %s", name)

        structured = {"event": name, "emitted_at": event.emitted_at, **event.payload}
        logger.info("TELEMETRY %s", json.dumps(structured, default=_json_default))
        return event


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


recorder = TelemetryRecorder()


def emit_event(name: str, **fields: Any) -> TelemetryEvent:
    return recorder.emit(name, **fields)


def register_listener(listener: Listener) -> None:
    recorder.register(listener)


def clear_listeners() -> None:
    recorder.reset()


__all__ = [
    "TelemetryEvent",
    "TelemetryRecorder",
    "clear_listeners",
    "emit_event",
    "recorder",
    "register_listener",
]
