"""In-process telemetry for chapter tracking.

The tracker reports every resolution attempt and back navigation through
:func:`emit`. Hosts observe them by registering listeners for one event
name or for :data:`ALL_EVENTS`, or by attaching a :class:`ChapterTelemetrySink`
that keeps the latest payloads for a diagnostics view.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Mapping

LOGGER = logging.getLogger(__name__)

CHAPTER_RESOLVED = "chapter.resolved"
CHAPTER_UNRESOLVED = "chapter.unresolved"
CHAPTER_NAVIGATED = "chapter.navigated"
ALL_EVENTS = "*"

TelemetryListener = Callable[[dict[str, Any]], None]

_listeners: dict[str, list[TelemetryListener]] = {}


def register_event_listener(event_name: str, callback: TelemetryListener) -> None:
    """Call *callback* with a copy of each payload emitted as *event_name*.

    ``"*"`` subscribes to every event. Registering the same callback twice
    for one name has no effect.
    """

    if not event_name:
        raise ValueError("event_name must be a non-empty string")
    bucket = _listeners.setdefault(event_name, [])
    if callback not in bucket:
        bucket.append(callback)


def unregister_event_listener(event_name: str, callback: TelemetryListener) -> bool:
    bucket = _listeners.get(event_name)
    if not bucket or callback not in bucket:
        return False
    bucket.remove(callback)
    if not bucket:
        del _listeners[event_name]
    return True


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> int:
    """Send ``{"event": event_name, **payload}`` to matching listeners.

    Returns how many listeners accepted the payload. A listener that raises
    is logged and skipped.
    """

    record: dict[str, Any] = {"event": event_name, **(payload or {})}
    targets = [*_listeners.get(event_name, ()), *_listeners.get(ALL_EVENTS, ())]
    delivered = 0
    for callback in targets:
        try:
            callback(dict(record))
        except Exception:
            LOGGER.warning("Telemetry listener %r failed on %s", callback, event_name, exc_info=True)
            continue
        delivered += 1
    LOGGER.debug("Telemetry %s delivered to %d listener(s): %s", event_name, delivered, record)
    return delivered


class ChapterTelemetrySink:
    """Ring buffer of recent tracker telemetry payloads.

    Example::

        sink = ChapterTelemetrySink(capacity=50).attach()
        ...
        misses = [item for item in sink.tail() if item["event"] == CHAPTER_UNRESOLVED]
        sink.detach()
    """

    def __init__(self, capacity: int = 200) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._buffer: deque[dict[str, Any]] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._buffer.maxlen or 0

    def record(self, payload: dict[str, Any]) -> None:
        self._buffer.append(payload)

    def attach(self) -> ChapterTelemetrySink:
        register_event_listener(ALL_EVENTS, self.record)
        return self

    def detach(self) -> None:
        unregister_event_listener(ALL_EVENTS, self.record)

    def tail(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Oldest first; at most *limit* of the newest payloads when given."""
        items = list(self._buffer)
        if limit is None or limit >= len(items):
            return items
        return items[-limit:] if limit > 0 else []

    def counts(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for item in self._buffer:
            totals[item["event"]] = totals.get(item["event"], 0) + 1
        return totals

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


__all__ = [
    "ALL_EVENTS",
    "CHAPTER_NAVIGATED",
    "CHAPTER_RESOLVED",
    "CHAPTER_UNRESOLVED",
    "ChapterTelemetrySink",
    "TelemetryListener",
    "emit",
    "register_event_listener",
    "unregister_event_listener",
]
