"""Query surface the tracker expects from a content index."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from .models import ChapterNode, ChapterTree, FlatChapterEntry, PageRef


@runtime_checkable
class ContentIndex(Protocol):
    """Read-only view over parsed documents.

    Implementations own parsing and indexing; every call is expected to be
    an in-memory lookup that returns immediately. The tracker never mutates
    an index.
    """

    def flat_list(self, document_id: str) -> Sequence[FlatChapterEntry]:  # pragma: no cover - protocol stub
        """Return every chapter of the document in reading order."""
        ...

    def tree(self, document_id: str) -> ChapterTree | None:  # pragma: no cover - protocol stub
        """Return the document's chapter tree, or ``None`` when unknown."""
        ...

    def find_by_scene_name(self, document_id: str, name: str) -> ChapterNode | None:  # pragma: no cover - protocol stub
        """Return the node whose title best matches a scene name."""
        ...

    def search_by_keywords(self, document_id: str, keywords: Sequence[str]) -> Sequence[PageRef]:  # pragma: no cover - protocol stub
        """Return pages ranked by keyword relevance, best first."""
        ...

    def chapter_at_page_offset(
        self, document_id: str, page_id: str, offset: int
    ) -> ChapterNode | None:  # pragma: no cover - protocol stub
        """Return the chapter covering *offset* characters into *page_id*."""
        ...

    def document_display_name(self, document_id: str) -> str:  # pragma: no cover - protocol stub
        """Return a human-readable document name (empty when unknown)."""
        ...

    def node_content(self, document_id: str, chapter_id: str) -> str:  # pragma: no cover - protocol stub
        """Return the text content of a chapter (empty when unknown)."""
        ...


__all__ = ["ContentIndex"]
