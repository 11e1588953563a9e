"""Bounded stack of previously visited chapters."""

from __future__ import annotations

from collections import deque
from typing import Callable, Collection

from ..settings import DEFAULT_HISTORY_LIMIT
from .models import ChapterInfo


class NavigationHistory:
    """Most-recent-last stack that forgets its oldest entries past a limit."""

    __slots__ = ("_entries",)

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self._entries: deque[ChapterInfo] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    def push(self, chapter: ChapterInfo) -> None:
        self._entries.append(chapter)

    def pop(self) -> ChapterInfo | None:
        if not self._entries:
            return None
        return self._entries.pop()

    def discard(self, chapter_id: str) -> int:
        """Remove every entry for *chapter_id*; returns how many were dropped."""
        return self.remap(lambda entry: None if entry.id == chapter_id else entry)

    def retain(self, valid_ids: Collection[str]) -> int:
        return self.remap(lambda entry: entry if entry.id in valid_ids else None)

    def remap(self, transform: Callable[[ChapterInfo], ChapterInfo | None]) -> int:
        """Replace each entry with ``transform(entry)``, dropping ``None`` results.

        Order is kept. Returns how many entries were dropped.
        """

        kept = [chapter for chapter in map(transform, self._entries) if chapter is not None]
        dropped = len(self._entries) - len(kept)
        self._entries.clear()
        self._entries.extend(kept)
        return dropped

    def peek(self) -> ChapterInfo | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> list[ChapterInfo]:
        """Oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)


__all__ = ["NavigationHistory"]
