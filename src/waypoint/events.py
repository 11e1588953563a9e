"""Event bus and the notifications that drive the chapter tracker.

Hosts publish :class:`StageChanged`, :class:`DocumentSelected`,
:class:`ChapterSelected`, :class:`NavigateBackRequested` and
:class:`ContentIndexRebuilt`; a bound tracker answers every effective
position change with :class:`PositionChanged`.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable
from weakref import WeakMethod

from .tracking.models import ChapterInfo, ChapterSource, StageSignal

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


@dataclass(slots=True)
class Event:
    """Base class for all tracker events."""

    pass


# =============================================================================
# Host → tracker
# =============================================================================


@dataclass(slots=True)
class StageChanged(Event):
    """Emitted by the host when the active stage (scene) changes.

    Attributes:
        signal: Identifier, name and optional page link of the new stage.
    """

    signal: StageSignal


@dataclass(slots=True)
class DocumentSelected(Event):
    """Emitted when the host picks the document to track.

    Attributes:
        document_id: The selected document, or ``None`` to deselect.
    """

    document_id: str | None


@dataclass(slots=True)
class ChapterSelected(Event):
    """Emitted when a user picks a chapter explicitly.

    Attributes:
        chapter_id: Identifier from the selected document's flat list.
    """

    chapter_id: str


@dataclass(slots=True)
class NavigateBackRequested(Event):
    """Emitted when a user asks to return to the previous chapter."""

    pass


@dataclass(slots=True)
class ContentIndexRebuilt(Event):
    """Emitted after the content index re-parsed a document.

    Attributes:
        document_id: The document whose tree and flat list were rebuilt.
    """

    document_id: str


# =============================================================================
# Tracker → host
# =============================================================================


@dataclass(slots=True)
class PositionChanged(Event):
    """Emitted whenever the tracked chapter changes.

    Attributes:
        chapter: The new current chapter, or ``None`` after a reset.
        source: Provenance of the new position.
        previous_id: Identifier of the chapter that was current before.
    """

    chapter: ChapterInfo | None
    source: ChapterSource
    previous_id: str | None = None


# =============================================================================
# Bus
# =============================================================================


@dataclass(slots=True, eq=False)
class _Subscriber:
    """One registration; bound methods are held weakly."""

    target: Callable[[], Handler | None]
    name: str

    @classmethod
    def wrap(cls, handler: Handler) -> _Subscriber:
        if inspect.ismethod(handler):
            return cls(target=WeakMethod(handler), name=_describe(handler))
        return cls(target=lambda: handler, name=_describe(handler))

    def refers_to(self, handler: Handler) -> bool:
        current = self.target()
        return current is not None and current == handler


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`; ``cancel()`` detaches it."""

    __slots__ = ("_bus", "_event_type", "_subscriber")

    def __init__(self, bus: EventBus, event_type: type[Event], subscriber: _Subscriber) -> None:
        self._bus = bus
        self._event_type = event_type
        self._subscriber = subscriber

    @property
    def event_type(self) -> type[Event]:
        return self._event_type

    @property
    def active(self) -> bool:
        return self._bus._holds(self._event_type, self._subscriber)

    def cancel(self) -> bool:
        return self._bus._detach(self._event_type, self._subscriber)


class EventBus:
    """Synchronous publish/subscribe dispatch keyed by event class.

    A handler registered for a base class also receives its subclasses, so
    subscribing to :class:`Event` observes everything on the bus. Bound
    methods are referenced weakly: a tracker that is garbage collected
    drops out of the bus on the next publish.

    Example::

        bus = EventBus()
        tracker.bind(bus)
        bus.publish(DocumentSelected(document_id="adventure"))
        bus.publish(StageChanged(StageSignal(id="s1", name="The Docks")))

    Not thread-safe; publish from the thread that drives the tracker.
    """

    __slots__ = ("_subscribers",)

    def __init__(self) -> None:
        self._subscribers: dict[type[Event], list[_Subscriber]] = {}

    def subscribe(self, event_type: type[Event], handler: Handler) -> Subscription:
        """Register *handler*; subscribing twice means two invocations."""

        if not (isinstance(event_type, type) and issubclass(event_type, Event)):
            raise TypeError(f"event_type must be an Event subclass, got {event_type!r}")
        subscriber = _Subscriber.wrap(handler)
        self._subscribers.setdefault(event_type, []).append(subscriber)
        logger.debug("%s subscribed to %s", subscriber.name, event_type.__name__)
        return Subscription(self, event_type, subscriber)

    def unsubscribe(self, event_type: type[Event], handler: Handler) -> bool:
        """Remove the oldest registration of *handler* for *event_type*."""

        for subscriber in self._subscribers.get(event_type, ()):
            if subscriber.refers_to(handler):
                return self._detach(event_type, subscriber)
        return False

    def publish(self, event: Event) -> int:
        """Deliver *event* and return how many handlers ran.

        Handlers for the concrete class run first, then those registered for
        each base class. A raising handler is logged; delivery continues.
        """

        delivered = 0
        for event_type in type(event).__mro__:
            if event_type not in self._subscribers:
                continue
            for subscriber in list(self._subscribers[event_type]):
                handler = subscriber.target()
                if handler is None:
                    self._detach(event_type, subscriber)
                    continue
                try:
                    handler(event)
                except Exception:
                    logger.exception("%s failed handling %s", subscriber.name, type(event).__name__)
                delivered += 1
        if not delivered:
            logger.debug("%s published with no live handlers", type(event).__name__)
        return delivered

    def clear(self) -> None:
        self._subscribers.clear()

    def handler_count(self, event_type: type[Event] | None = None) -> int:
        """Live registrations for *event_type*, or across the bus when omitted."""

        if event_type is None:
            buckets = list(self._subscribers.values())
        else:
            buckets = [self._subscribers.get(event_type, [])]
        return sum(1 for bucket in buckets for subscriber in bucket if subscriber.target() is not None)

    def _holds(self, event_type: type[Event], subscriber: _Subscriber) -> bool:
        return any(entry is subscriber for entry in self._subscribers.get(event_type, ()))

    def _detach(self, event_type: type[Event], subscriber: _Subscriber) -> bool:
        bucket = self._subscribers.get(event_type)
        if not bucket:
            return False
        for position, entry in enumerate(bucket):
            if entry is subscriber:
                del bucket[position]
                if not bucket:
                    del self._subscribers[event_type]
                logger.debug("%s unsubscribed from %s", subscriber.name, event_type.__name__)
                return True
        return False


def _describe(handler: Handler) -> str:
    if inspect.ismethod(handler):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__qualname__", None) or repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "Subscription",
    "StageChanged",
    "DocumentSelected",
    "ChapterSelected",
    "NavigateBackRequested",
    "ContentIndexRebuilt",
    "PositionChanged",
]
