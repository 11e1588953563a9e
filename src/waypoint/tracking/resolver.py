"""Turns a stage signal into a document position.

Strategies run in a fixed order and the first success wins:

1. cached result for ``(document_id, stage_id)``;
2. the stage's linked page, when it points into the selected document;
3. the index's scene-name lookup;
4. keyword search over the tokenized stage name, taking the top page.

Results from strategies 2-4 are cached. A cache hit is final, even if a
later strategy would now pick a different chapter; clearing the cache is
the only way to re-resolve a stage.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..errors import IndexNotConfiguredError
from ..index.contract import ContentIndex
from ..index.models import ChapterNode
from ..settings import DEFAULT_MIN_KEYWORD_LENGTH
from .cache import PositionCache
from .models import ChapterInfo, StageSignal

LOGGER = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"\W")


class Strategy(str, Enum):
    """Resolution strategy that produced a chapter."""

    CACHE = "cache"
    DIRECT_LINK = "direct_link"
    NAME_MATCH = "name_match"
    KEYWORDS = "keywords"


@dataclass(slots=True, frozen=True)
class Resolution:
    chapter: ChapterInfo
    strategy: Strategy


def tokenize_stage_name(name: str, *, min_length: int = DEFAULT_MIN_KEYWORD_LENGTH) -> list[str]:
    """Lowercase *name*, blank out non-word characters and keep long tokens."""

    cleaned = _NON_WORD_RE.sub(" ", (name or "").lower())
    return [token for token in cleaned.split() if len(token) >= min_length]


class PositionResolver:
    """Resolve stage signals against a content index through a position cache."""

    def __init__(
        self,
        index: ContentIndex | None,
        cache: PositionCache,
        *,
        min_keyword_length: int = DEFAULT_MIN_KEYWORD_LENGTH,
    ) -> None:
        self._index = index
        self._cache = cache
        self._min_keyword_length = min_keyword_length
        self._strategies: tuple[tuple[Strategy, Callable[[ContentIndex, StageSignal, str], ChapterInfo | None]], ...] = (
            (Strategy.DIRECT_LINK, self._from_direct_link),
            (Strategy.NAME_MATCH, self._from_scene_name),
            (Strategy.KEYWORDS, self._from_keywords),
        )

    @property
    def index(self) -> ContentIndex | None:
        return self._index

    @index.setter
    def index(self, value: ContentIndex | None) -> None:
        self._index = value

    @property
    def cache(self) -> PositionCache:
        return self._cache

    def resolve(self, signal: StageSignal, document_id: str | None) -> ChapterInfo | None:
        resolution = self.resolve_detailed(signal, document_id)
        return resolution.chapter if resolution is not None else None

    def resolve_detailed(self, signal: StageSignal, document_id: str | None) -> Resolution | None:
        """Run the strategy chain and report which strategy matched.

        Raises:
            IndexNotConfiguredError: if no content index was supplied.
        """

        index = self._index
        if index is None:
            raise IndexNotConfiguredError(operation="resolve")
        if not document_id:
            LOGGER.debug("No document selected; cannot resolve stage %s", signal.id)
            return None

        cached = self._cache.get(document_id, signal.id)
        if cached is not None:
            LOGGER.debug("Stage %s served from cache: %s", signal.id, cached.id)
            return Resolution(chapter=cached, strategy=Strategy.CACHE)

        for strategy, handler in self._strategies:
            chapter = handler(index, signal, document_id)
            if chapter is None:
                continue
            self._cache.put(document_id, signal.id, chapter)
            LOGGER.debug(
                "Stage %s (%s) resolved to %s via %s",
                signal.id,
                signal.name,
                chapter.id,
                strategy.value,
            )
            return Resolution(chapter=chapter, strategy=strategy)

        LOGGER.debug("Stage %s (%s) did not resolve in %s", signal.id, signal.name, document_id)
        return None

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------
    def _from_direct_link(self, index: ContentIndex, signal: StageSignal, document_id: str) -> ChapterInfo | None:
        if signal.linked_document_id != document_id or not signal.linked_page_id:
            return None
        for entry in index.flat_list(document_id):
            if entry.page_id == signal.linked_page_id:
                return ChapterInfo.from_entry(
                    entry,
                    document_id=document_id,
                    document_name=index.document_display_name(document_id),
                    content=index.node_content(document_id, entry.id),
                )
        return None

    def _from_scene_name(self, index: ContentIndex, signal: StageSignal, document_id: str) -> ChapterInfo | None:
        if not signal.name:
            return None
        node = index.find_by_scene_name(document_id, signal.name)
        if node is None:
            return None
        return self._chapter_from_node(index, node, document_id)

    def _from_keywords(self, index: ContentIndex, signal: StageSignal, document_id: str) -> ChapterInfo | None:
        keywords = tokenize_stage_name(signal.name, min_length=self._min_keyword_length)
        if not keywords:
            return None
        pages = index.search_by_keywords(document_id, keywords)
        if not pages:
            return None
        node = index.chapter_at_page_offset(document_id, pages[0].page_id, 0)
        if node is None:
            return None
        return self._chapter_from_node(index, node, document_id)

    @staticmethod
    def _chapter_from_node(index: ContentIndex, node: ChapterNode, document_id: str) -> ChapterInfo:
        path: str | None = None
        tree = index.tree(document_id)
        if tree is not None and 0 <= node.index < len(tree) and tree.node(node.index).id == node.id:
            path = tree.path_of(node.index)
        return ChapterInfo.from_node(
            node,
            document_id=document_id,
            document_name=index.document_display_name(document_id),
            path=path,
        )


__all__ = [
    "PositionResolver",
    "Resolution",
    "Strategy",
    "tokenize_stage_name",
    "DEFAULT_MIN_KEYWORD_LENGTH",
]
