"""Previous/next chapter lookup over the flat, reading-order chapter list."""

from __future__ import annotations

from typing import Sequence

from ..index.models import FlatChapterEntry
from .models import SiblingPair


def find_siblings(flat_list: Sequence[FlatChapterEntry], chapter_id: str) -> SiblingPair[FlatChapterEntry]:
    """Return the nearest same-level entries around *chapter_id*.

    Each scan stops at the first entry with a lower level than the current
    one: in pre-order that entry is an ancestor (or an ancestor's sibling),
    so anything past it belongs to a different parent.
    """

    position = next((i for i, entry in enumerate(flat_list) if entry.id == chapter_id), -1)
    if position < 0:
        return SiblingPair()

    level = flat_list[position].level
    previous = _scan(flat_list, range(position - 1, -1, -1), level)
    following = _scan(flat_list, range(position + 1, len(flat_list)), level)
    return SiblingPair(previous=previous, next=following)


def _scan(flat_list: Sequence[FlatChapterEntry], positions: range, level: int) -> FlatChapterEntry | None:
    for i in positions:
        entry = flat_list[i]
        if entry.level == level:
            return entry
        if entry.level < level:
            return None
    return None


__all__ = ["find_siblings"]
