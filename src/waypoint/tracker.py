"""Chapter tracker facade wiring resolver, cache, state and events together."""

from __future__ import annotations

import logging
from typing import Any

from . import telemetry
from .events import (
    ChapterSelected,
    ContentIndexRebuilt,
    DocumentSelected,
    EventBus,
    NavigateBackRequested,
    PositionChanged,
    StageChanged,
    Subscription,
)
from .index.contract import ContentIndex
from .index.models import FlatChapterEntry
from .settings import TrackerSettings
from .tracking.cache import PositionCache
from .tracking.formatter import format_for_downstream
from .tracking.models import (
    ChapterInfo,
    ChapterSource,
    SiblingPair,
    SourceKind,
    StageSignal,
    SubchapterInfo,
)
from .tracking.navigator import find_siblings
from .tracking.resolver import PositionResolver, tokenize_stage_name
from .tracking.state import Clock, PositionState, load_chapter

LOGGER = logging.getLogger(__name__)


class ChapterTracker:
    """Tracks the current chapter of one session inside a selected document.

    The tracker accepts an index and a document selection at any time; until
    both are present every query answers with ``None``/``False``/empty
    results instead of raising.

    Example::

        tracker = ChapterTracker(index)
        tracker.select_document("adventure")
        chapter = tracker.update_from_stage(StageSignal(id="s1", name="The Docks"))
        prompt_block = tracker.format_for_downstream()
    """

    def __init__(
        self,
        content_index: ContentIndex | None = None,
        *,
        settings: TrackerSettings | None = None,
        clock: Clock | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._settings = settings or TrackerSettings()
        self._index = content_index
        self._document_id: str | None = None
        self._active_stage_id: str | None = None
        self._cache = PositionCache(self._settings.cache_max_entries)
        self._resolver = PositionResolver(
            content_index,
            self._cache,
            min_keyword_length=self._settings.min_keyword_length,
        )
        self._state = PositionState(
            content_index,
            history_limit=self._settings.history_limit,
            clock=clock,
        )
        self._event_bus: EventBus | None = None
        self._subscriptions: list[Subscription] = []
        if event_bus is not None:
            self.bind(event_bus)
        LOGGER.debug("ChapterTracker initialized")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @property
    def settings(self) -> TrackerSettings:
        return self._settings

    @property
    def content_index(self) -> ContentIndex | None:
        return self._index

    @property
    def cache(self) -> PositionCache:
        return self._cache

    @property
    def selected_document(self) -> str | None:
        return self._document_id

    @property
    def active_stage_id(self) -> str | None:
        return self._active_stage_id

    def set_content_index(self, content_index: ContentIndex | None) -> None:
        self._index = content_index
        self._resolver.index = content_index
        self._state.index = content_index
        LOGGER.debug("Content index reference set")

    def select_document(self, document_id: str | None) -> None:
        """Track *document_id*; switching documents resets cache and position."""

        if document_id == self._document_id:
            return
        previous = self._document_id
        self._document_id = document_id
        if previous is not None:
            self._cache.invalidate_document(previous)
        had_position = self._state.current is not None
        self._reset_position()
        LOGGER.debug("Selected document set to: %s", document_id)
        if had_position:
            self._publish_position(previous_id=None)

    def is_configured(self) -> bool:
        return self._index is not None and self._document_id is not None

    # ------------------------------------------------------------------
    # Position updates
    # ------------------------------------------------------------------
    def update_from_stage(self, signal: StageSignal | None) -> ChapterInfo | None:
        """Resolve *signal* and make the result current (source ``stage``)."""

        if signal is None:
            LOGGER.debug("No stage provided to update_from_stage")
            return None

        self._active_stage_id = signal.id
        if not self.is_configured():
            LOGGER.debug("Content index or document not configured; ignoring stage %s", signal.id)
            return None

        resolution = self._resolver.resolve_detailed(signal, self._document_id)
        if resolution is None:
            LOGGER.debug("Could not detect chapter from stage: %s", signal.name)
            telemetry.emit(
                telemetry.CHAPTER_UNRESOLVED,
                {"document_id": self._document_id, "stage_id": signal.id},
            )
            return None

        chapter = resolution.chapter
        previous_id = self._current_id()
        changed = self._state.set_current(
            chapter,
            SourceKind.STAGE,
            stage_id=signal.id,
            stage_name=signal.name,
        )
        LOGGER.info(
            'Detected chapter "%s" from stage "%s" via %s',
            chapter.title,
            signal.name,
            resolution.strategy.value,
        )
        telemetry.emit(
            telemetry.CHAPTER_RESOLVED,
            {
                "document_id": self._document_id,
                "stage_id": signal.id,
                "chapter_id": chapter.id,
                "strategy": resolution.strategy.value,
                "changed": changed,
            },
        )
        if changed:
            self._publish_position(previous_id)
        return chapter

    def set_manual_chapter(self, chapter_id: str) -> bool:
        """Select *chapter_id* directly; returns whether it exists."""

        if not chapter_id or not self.is_configured():
            LOGGER.warning("Cannot set manual chapter: missing requirements")
            return False

        previous_id = self._current_id()
        if not self._state.set_manual(chapter_id, self._document_id or ""):
            LOGGER.warning("Chapter not found: %s", chapter_id)
            return False

        current = self._state.current
        LOGGER.info("Manually set chapter to: %s", current.title if current else chapter_id)
        if self._current_id() != previous_id:
            self._publish_position(previous_id)
        return True

    def navigate_back(self) -> ChapterInfo | None:
        if self._index is None:
            return None
        previous_id = self._current_id()
        chapter = self._state.navigate_back()
        if chapter is None:
            return None
        telemetry.emit(
            telemetry.CHAPTER_NAVIGATED,
            {"document_id": self._document_id, "chapter_id": chapter.id, "direction": "back"},
        )
        self._publish_position(previous_id)
        return chapter

    def reconcile(self) -> int:
        """Bring cache, position and history in line with a rebuilt document.

        Call after the content index rebuilt the selected document. Chapters
        that vanished are dropped; surviving ones are reloaded so titles,
        paths and content match the new tree. Returns the number of cache
        entries removed.
        """

        index, document_id = self._index, self._document_id
        if index is None or document_id is None:
            return 0
        entries = {entry.id: entry for entry in index.flat_list(document_id)}
        dropped = self._cache.reconcile(
            document_id,
            entries.keys(),
            reload=lambda chapter: load_chapter(index, document_id, entries[chapter.id]),
        )

        current = self._state.current
        if not self._state.reconcile(document_id) and current is not None:
            LOGGER.info("Current chapter %s vanished from %s; clearing position", current.id, document_id)
            self._reset_position()
            self._publish_position(previous_id=current.id)
        return dropped

    def clear(self) -> None:
        """Forget the current chapter, subchapters, source and history."""
        had_position = self._state.current is not None
        previous_id = self._current_id()
        self._reset_position()
        LOGGER.debug("Chapter tracking cleared")
        if had_position:
            self._publish_position(previous_id)

    def clear_cache(self) -> None:
        self._cache.invalidate_all()
        LOGGER.debug("Stage chapter cache cleared")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def current_chapter(self) -> ChapterInfo | None:
        return self._state.current

    def subchapters(self) -> list[SubchapterInfo]:
        return self._state.subchapters

    def chapter_source(self) -> ChapterSource:
        return self._state.source

    def history(self) -> list[ChapterInfo]:
        return self._state.history

    def all_chapters(self) -> list[FlatChapterEntry]:
        if self._index is None or self._document_id is None:
            return []
        return list(self._index.flat_list(self._document_id))

    def search_chapters(self, query: str) -> list[FlatChapterEntry]:
        """Return the page-level chapters matching a free-text keyword query."""

        if self._index is None or self._document_id is None:
            return []
        keywords = tokenize_stage_name(query, min_length=self._settings.min_keyword_length)
        if not keywords:
            return []
        pages = self._index.search_by_keywords(self._document_id, keywords)
        if not pages:
            return []
        first_entry_by_page: dict[str, FlatChapterEntry] = {}
        for entry in self._index.flat_list(self._document_id):
            first_entry_by_page.setdefault(entry.page_id, entry)
        return [first_entry_by_page[page.page_id] for page in pages if page.page_id in first_entry_by_page]

    def sibling_chapters(self) -> SiblingPair[ChapterInfo]:
        current = self._state.current
        if current is None or self._index is None or self._document_id is None:
            return SiblingPair()

        pair = find_siblings(self._index.flat_list(self._document_id), current.id)
        return SiblingPair(
            previous=self._entry_to_chapter(pair.previous),
            next=self._entry_to_chapter(pair.next),
        )

    def format_for_downstream(self, max_content_length: int | None = None) -> str:
        limit = self._settings.max_content_length if max_content_length is None else max_content_length
        return format_for_downstream(
            self._state.current,
            self._state.subchapters,
            limit,
            truncation_marker=self._settings.truncation_marker,
        )

    def snapshot(self) -> dict[str, Any]:
        """Summarize tracker state for diagnostics panels and logs."""

        current = self._state.current
        return {
            "document_id": self._document_id,
            "active_stage_id": self._active_stage_id,
            "current": current.to_dict() if current is not None else None,
            "source": self._state.source.to_dict(),
            "subchapters": [sub.id for sub in self._state.subchapters],
            "history": [entry.id for entry in self._state.history],
            "cache": self._cache.stats.to_dict(),
        }

    # ------------------------------------------------------------------
    # Event wiring
    # ------------------------------------------------------------------
    def bind(self, event_bus: EventBus) -> None:
        """Subscribe to host notifications and publish position changes on *event_bus*."""

        if self._event_bus is event_bus:
            return
        if self._event_bus is not None:
            self.unbind()
        self._event_bus = event_bus
        self._subscriptions = [
            event_bus.subscribe(event_type, handler)
            for event_type, handler in (
                (StageChanged, self._on_stage_changed),
                (DocumentSelected, self._on_document_selected),
                (ChapterSelected, self._on_chapter_selected),
                (NavigateBackRequested, self._on_navigate_back),
                (ContentIndexRebuilt, self._on_index_rebuilt),
            )
        ]

    def unbind(self) -> None:
        if self._event_bus is None:
            return
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self._event_bus = None

    def _on_stage_changed(self, event: StageChanged) -> None:
        self.update_from_stage(event.signal)

    def _on_document_selected(self, event: DocumentSelected) -> None:
        self.select_document(event.document_id)

    def _on_chapter_selected(self, event: ChapterSelected) -> None:
        self.set_manual_chapter(event.chapter_id)

    def _on_navigate_back(self, event: NavigateBackRequested) -> None:
        self.navigate_back()

    def _on_index_rebuilt(self, event: ContentIndexRebuilt) -> None:
        if event.document_id == self._document_id:
            self.reconcile()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _current_id(self) -> str | None:
        current = self._state.current
        return current.id if current is not None else None

    def _reset_position(self) -> None:
        self._active_stage_id = None
        self._state.clear()

    def _publish_position(self, previous_id: str | None) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(
            PositionChanged(
                chapter=self._state.current,
                source=self._state.source,
                previous_id=previous_id,
            )
        )

    def _entry_to_chapter(self, entry: FlatChapterEntry | None) -> ChapterInfo | None:
        if entry is None or self._index is None or self._document_id is None:
            return None
        return ChapterInfo.from_entry(
            entry,
            document_id=self._document_id,
            document_name=self._index.document_display_name(self._document_id),
        )


__all__ = ["ChapterTracker"]
