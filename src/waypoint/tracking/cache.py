"""Stage → chapter resolution cache scoped by document."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Collection

from .models import ChapterInfo

__all__ = ["PositionCache", "CacheStats"]

LOGGER = logging.getLogger(__name__)

CacheKey = tuple[str, str]


@dataclass(slots=True)
class CacheStats:
    """Counters for cache operations.

    Attributes:
        hits: Number of lookups served from the cache.
        misses: Number of lookups that found nothing.
        stores: Number of entries written.
        evictions: Entries dropped because the cache was full.
        invalidations: Entries dropped explicitly or by reconciliation.
    """

    hits: int = 0
    misses: int = 0
    stores: int = 0
    evictions: int = 0
    invalidations: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stores": self.stores,
            "evictions": self.evictions,
            "invalidations": self.invalidations,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate,
        }

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.stores = 0
        self.evictions = 0
        self.invalidations = 0


class PositionCache:
    """LRU mapping from ``(document_id, stage_id)`` to a resolved chapter.

    The document id is part of every key, so entries for different
    documents never collide and one document's entries can be dropped in
    bulk with :meth:`invalidate_document`.

    Not thread-safe; the tracker drives it from a single caller.
    """

    def __init__(self, max_entries: int = 512) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[CacheKey, ChapterInfo] = OrderedDict()
        self._stats = CacheStats()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get(self, document_id: str, stage_id: str) -> ChapterInfo | None:
        key = (document_id, stage_id)
        chapter = self._entries.get(key)
        if chapter is None:
            self._stats.misses += 1
            return None
        self._entries.move_to_end(key)
        self._stats.hits += 1
        return chapter

    def put(self, document_id: str, stage_id: str, chapter: ChapterInfo) -> None:
        key = (document_id, stage_id)
        if key in self._entries:
            self._entries[key] = chapter
            self._entries.move_to_end(key)
            self._stats.stores += 1
            return

        while len(self._entries) >= self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._stats.evictions += 1
            LOGGER.debug("Evicted position cache entry %s", evicted)

        self._entries[key] = chapter
        self._stats.stores += 1

    def contains(self, document_id: str, stage_id: str) -> bool:
        """Check for an entry without touching LRU order or statistics."""
        return (document_id, stage_id) in self._entries

    def invalidate(self, document_id: str, stage_id: str) -> bool:
        if self._entries.pop((document_id, stage_id), None) is None:
            return False
        self._stats.invalidations += 1
        return True

    def invalidate_document(self, document_id: str) -> int:
        """Drop every entry that belongs to *document_id*."""

        stale = [key for key in self._entries if key[0] == document_id]
        for key in stale:
            del self._entries[key]
        self._stats.invalidations += len(stale)
        if stale:
            LOGGER.debug("Invalidated %d position cache entries for %s", len(stale), document_id)
        return len(stale)

    def invalidate_all(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._stats.invalidations += count
        LOGGER.debug("Invalidated all %d position cache entries", count)
        return count

    def reconcile(
        self,
        document_id: str,
        valid_ids: Collection[str],
        *,
        reload: Callable[[ChapterInfo], ChapterInfo] | None = None,
    ) -> int:
        """Drop entries of *document_id* whose chapter is not in *valid_ids*.

        Surviving entries are replaced by ``reload(chapter)`` when given, so a
        later cache hit serves the rebuilt title and content. Recency order
        is unchanged.
        """

        stale: list[CacheKey] = []
        for key, chapter in list(self._entries.items()):
            if key[0] != document_id:
                continue
            if chapter.id not in valid_ids:
                stale.append(key)
            elif reload is not None:
                self._entries[key] = reload(chapter)
        for key in stale:
            del self._entries[key]
        self._stats.invalidations += len(stale)
        if stale:
            LOGGER.debug("Reconciled %d stale position cache entries for %s", len(stale), document_id)
        return len(stale)

    def keys(self) -> list[CacheKey]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
