"""Dictionary-backed :class:`~waypoint.index.contract.ContentIndex` implementation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Sequence

from ..settings import DEFAULT_MIN_KEYWORD_LENGTH
from .models import ChapterNode, ChapterTree, FlatChapterEntry, PageRef

LOGGER = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\w+")


@dataclass(slots=True)
class _PageSpan:
    node: ChapterNode
    start: int
    end: int


@dataclass(slots=True)
class _IndexedDocument:
    document_id: str
    name: str
    tree: ChapterTree
    flat: list[FlatChapterEntry]
    page_order: list[tuple[str, str]] = field(default_factory=list)
    page_words: dict[str, set[str]] = field(default_factory=dict)
    page_spans: dict[str, list[_PageSpan]] = field(default_factory=dict)


def _words(text: str, min_length: int) -> set[str]:
    return {
        word
        for word in (match.lower() for match in _WORD_RE.findall(text or ""))
        if len(word) >= min_length
    }


class InMemoryContentIndex:
    """Content index over already-parsed :class:`ChapterTree` documents.

    Matching rules:

    * scene names match titles case-insensitively, exact matches first and
      then the first title (reading order) that contains the name or is
      contained in it;
    * keyword search scores each page by the number of distinct keywords
      found in the words of its nodes and returns non-zero pages best
      first, keeping reading order between ties;
    * page offsets count the characters of each node's title line plus its
      content, in reading order, so offset ``0`` is always the page's
      first node.

    Words and query keywords shorter than *min_keyword_length* are ignored.
    """

    def __init__(self, *, min_keyword_length: int = DEFAULT_MIN_KEYWORD_LENGTH) -> None:
        if min_keyword_length < 1:
            raise ValueError("min_keyword_length must be at least 1")
        self._min_keyword_length = min_keyword_length
        self._documents: dict[str, _IndexedDocument] = {}

    @property
    def min_keyword_length(self) -> int:
        return self._min_keyword_length

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def add_document(self, document_id: str, name: str, tree: ChapterTree) -> None:
        """Register (or replace) *document_id* with a prebuilt tree."""

        indexed = _IndexedDocument(
            document_id=document_id,
            name=name,
            tree=tree,
            flat=tree.flatten(),
        )
        cursor: dict[str, int] = {}
        for node, _path in tree.walk():
            if node.page_id not in indexed.page_words:
                indexed.page_order.append((node.page_id, node.page_name))
                indexed.page_words[node.page_id] = set()
                indexed.page_spans[node.page_id] = []
            indexed.page_words[node.page_id] |= _words(f"{node.title} {node.content}", self._min_keyword_length)
            start = cursor.get(node.page_id, 0)
            end = start + len(node.title) + 1 + len(node.content)
            indexed.page_spans[node.page_id].append(_PageSpan(node=node, start=start, end=end))
            cursor[node.page_id] = end

        replaced = document_id in self._documents
        self._documents[document_id] = indexed
        LOGGER.debug(
            "%s document %s (%d chapters, %d pages)",
            "Re-indexed" if replaced else "Indexed",
            document_id,
            len(indexed.flat),
            len(indexed.page_order),
        )

    def remove_document(self, document_id: str) -> bool:
        removed = self._documents.pop(document_id, None)
        return removed is not None

    def documents(self) -> list[str]:
        return list(self._documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents

    # ------------------------------------------------------------------
    # ContentIndex protocol
    # ------------------------------------------------------------------
    def flat_list(self, document_id: str) -> Sequence[FlatChapterEntry]:
        document = self._documents.get(document_id)
        if document is None:
            return []
        return list(document.flat)

    def tree(self, document_id: str) -> ChapterTree | None:
        document = self._documents.get(document_id)
        return document.tree if document is not None else None

    def find_by_scene_name(self, document_id: str, name: str) -> ChapterNode | None:
        document = self._documents.get(document_id)
        needle = (name or "").strip().lower()
        if document is None or not needle:
            return None

        partial: ChapterNode | None = None
        for node, _path in document.tree.walk():
            title = node.title.strip().lower()
            if not title:
                continue
            if title == needle:
                return node
            if partial is None and (needle in title or title in needle):
                partial = node
        return partial

    def search_by_keywords(self, document_id: str, keywords: Sequence[str]) -> Sequence[PageRef]:
        document = self._documents.get(document_id)
        if document is None:
            LOGGER.debug("Keyword search against unknown document %s", document_id)
            return []

        normalized = {
            keyword.strip().lower()
            for keyword in keywords
            if len(keyword.strip()) >= self._min_keyword_length
        }
        if not normalized:
            return []

        hits: list[PageRef] = []
        for page_id, page_name in document.page_order:
            score = len(normalized & document.page_words[page_id])
            if score:
                hits.append(PageRef(page_id=page_id, name=page_name, score=float(score)))
        hits.sort(key=lambda ref: ref.score, reverse=True)
        return hits

    def chapter_at_page_offset(self, document_id: str, page_id: str, offset: int) -> ChapterNode | None:
        document = self._documents.get(document_id)
        if document is None or offset < 0:
            return None
        for span in document.page_spans.get(page_id, ()):
            if span.start <= offset < span.end:
                return span.node
        return None

    def document_display_name(self, document_id: str) -> str:
        document = self._documents.get(document_id)
        return document.name if document is not None else ""

    def node_content(self, document_id: str, chapter_id: str) -> str:
        document = self._documents.get(document_id)
        if document is None:
            return ""
        node = document.tree.locate(chapter_id)
        return node.content if node is not None else ""


__all__ = ["InMemoryContentIndex"]
