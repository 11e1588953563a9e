"""Current chapter, its provenance, its subchapters and the back stack."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from ..errors import IndexNotConfiguredError
from ..index.contract import ContentIndex
from ..index.models import PATH_SEPARATOR, FlatChapterEntry
from ..settings import DEFAULT_HISTORY_LIMIT
from .history import NavigationHistory
from .models import ChapterInfo, ChapterSource, SourceKind, SubchapterInfo

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def load_chapter(index: ContentIndex, document_id: str, entry: FlatChapterEntry) -> ChapterInfo:
    """Build a full :class:`ChapterInfo`, content included, from a flat-list entry."""
    return ChapterInfo.from_entry(
        entry,
        document_id=document_id,
        document_name=index.document_display_name(document_id),
        content=index.node_content(document_id, entry.id),
    )


class PositionState:
    """Mutable position of one tracking session.

    Subchapters are recomputed from the index tree every time the current
    chapter actually changes. The chapter's own ``document_id`` selects the
    tree, so the state carries no notion of a globally selected document.
    """

    def __init__(
        self,
        index: ContentIndex | None = None,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Clock | None = None,
    ) -> None:
        self._index = index
        self._clock = clock or _utcnow
        self._history = NavigationHistory(history_limit)
        self._current: ChapterInfo | None = None
        self._subchapters: list[SubchapterInfo] = []
        self._source = ChapterSource(kind=SourceKind.NONE, updated_at=self._clock())

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def index(self) -> ContentIndex | None:
        return self._index

    @index.setter
    def index(self, value: ContentIndex | None) -> None:
        self._index = value

    @property
    def current(self) -> ChapterInfo | None:
        return self._current

    @property
    def source(self) -> ChapterSource:
        return self._source

    @property
    def subchapters(self) -> list[SubchapterInfo]:
        return list(self._subchapters)

    @property
    def history(self) -> list[ChapterInfo]:
        return self._history.entries()

    @property
    def history_limit(self) -> int:
        return self._history.limit

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def set_current(
        self,
        chapter: ChapterInfo,
        kind: SourceKind,
        *,
        stage_id: str | None = None,
        stage_name: str | None = None,
    ) -> bool:
        """Make *chapter* current; returns ``False`` when it already is."""

        self._require_index("set_current")
        if self._current is not None and self._current.id == chapter.id:
            return False

        self._history.discard(chapter.id)
        if self._current is not None:
            self._history.push(self._current)

        self._current = chapter
        self._source = ChapterSource(
            kind=SourceKind(kind),
            stage_id=stage_id,
            stage_name=stage_name,
            updated_at=self._clock(),
        )
        self._refresh_subchapters()
        LOGGER.debug("Current chapter set to: %s (%s)", chapter.title, self._source.kind.value)
        return True

    def set_manual(self, chapter_id: str, document_id: str) -> bool:
        """Select *chapter_id* straight from the flat list, skipping resolution."""

        index = self._require_index("set_manual")
        if not chapter_id or not document_id:
            return False
        entry = next((item for item in index.flat_list(document_id) if item.id == chapter_id), None)
        if entry is None:
            return False
        self.set_current(load_chapter(index, document_id, entry), SourceKind.MANUAL)
        return True

    def navigate_back(self) -> ChapterInfo | None:
        """Restore the most recent history entry.

        The restored chapter becomes current without the same-id check, and
        the source is reported as manual whatever produced the entry.
        """

        self._require_index("navigate_back")
        previous = self._history.pop()
        if previous is None:
            LOGGER.debug("No chapter history to navigate back")
            return None

        self._current = previous
        self._source = ChapterSource(kind=SourceKind.MANUAL, updated_at=self._clock())
        self._refresh_subchapters()
        LOGGER.debug("Navigated back to: %s", previous.title)
        return previous

    def clear(self) -> None:
        self._current = None
        self._subchapters = []
        self._history.clear()
        self._source = ChapterSource(kind=SourceKind.NONE, updated_at=self._clock())

    def refresh(self) -> None:
        """Recompute subchapters from the current tree."""
        self._refresh_subchapters()

    def reconcile(self, document_id: str) -> bool:
        """Reload chapters of *document_id* after the index rebuilt it.

        History entries whose chapter vanished are dropped; the others and
        the current chapter take the rebuilt title, path and content.
        Returns ``False`` when the current chapter itself vanished, leaving
        it in place for the caller to clear.
        """

        index = self._require_index("reconcile")
        entries = {entry.id: entry for entry in index.flat_list(document_id)}

        def reload(chapter: ChapterInfo) -> ChapterInfo | None:
            if chapter.document_id != document_id:
                return chapter
            entry = entries.get(chapter.id)
            return load_chapter(index, document_id, entry) if entry is not None else None

        dropped = self._history.remap(reload)
        if dropped:
            LOGGER.debug("Dropped %d vanished chapters from history", dropped)

        if self._current is None:
            return True
        current = reload(self._current)
        if current is None:
            return False
        self._current = current
        self._refresh_subchapters()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _refresh_subchapters(self) -> None:
        self._subchapters = []
        current = self._current
        if current is None:
            return

        index = self._require_index("refresh_subchapters")
        tree = index.tree(current.document_id)
        if tree is None:
            return
        node = tree.locate(current.id)
        if node is None:
            return

        self._subchapters = [
            SubchapterInfo(
                id=child.id,
                title=child.title,
                level=child.level,
                kind=child.kind,
                path=f"{current.path}{PATH_SEPARATOR}{child.title}",
            )
            for child in tree.children_of(node.index)
        ]
        LOGGER.debug("Found %d subchapters", len(self._subchapters))

    def _require_index(self, operation: str) -> ContentIndex:
        if self._index is None:
            raise IndexNotConfiguredError(operation=operation)
        return self._index


__all__ = ["PositionState", "Clock", "load_chapter"]
