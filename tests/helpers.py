"""Shared test helpers and stub classes.

Import from here instead of duplicating fixtures data in individual test
files.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Sequence

from waypoint.index import (
    ChapterNode,
    ChapterTree,
    FlatChapterEntry,
    InMemoryContentIndex,
    NodeKind,
    PageRef,
)

ADVENTURE_ID = "adventure"
ADVENTURE_NAME = "Test Adventure"

ADVENTURE_PAGES = [
    {
        "id": "intro",
        "title": "Introduction",
        "content": "Welcome to the adventure",
    },
    {
        "id": "tavern",
        "title": "Chapter 1 - The Tavern",
        "content": "The heroes enter the tavern",
        "children": [
            {"id": "tavern-barkeep", "title": "The Barkeep", "level": 1, "content": "A grumpy dwarf polishes mugs."},
            {
                "id": "tavern-cellar",
                "title": "The Cellar",
                "level": 1,
                "content": "Rats scurry in the dark.",
                "children": [
                    {"id": "cellar-rats", "title": "Giant Rats", "level": 2, "content": "Three giant rats attack."},
                ],
            },
            {"id": "tavern-back-room", "title": "The Back Room", "level": 1, "content": "A locked door hides a map."},
        ],
    },
    {
        "id": "forest",
        "title": "Chapter 2 - The Forest",
        "content": "A dark forest awaits",
        "children": [
            {"id": "forest-clearing", "title": "The Clearing", "level": 1, "content": "Moonlight floods the clearing."},
        ],
    },
]


def build_adventure_tree() -> ChapterTree:
    return ChapterTree.from_dicts(ADVENTURE_PAGES)


def build_adventure_index() -> InMemoryContentIndex:
    index = InMemoryContentIndex()
    index.add_document(ADVENTURE_ID, ADVENTURE_NAME, build_adventure_tree())
    return index


def build_docks_index() -> InMemoryContentIndex:
    """Two-chapter document: "Arrival" (level 1) containing "The Docks" on page P1."""

    tree = ChapterTree()
    arrival = tree.add_node(None, "1", "Arrival", level=1, kind=NodeKind.HEADING)
    tree.add_node(arrival, "2", "The Docks", level=2, kind=NodeKind.HEADING, page_id="P1", page_name="Harbor")
    index = InMemoryContentIndex()
    index.add_document("harbor", "Harbor Town", tree)
    return index


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class CountingContentIndex:
    """Content index wrapper that records every query made against it."""

    def __init__(self, inner: InMemoryContentIndex) -> None:
        self.inner = inner
        self.calls: Counter[str] = Counter()

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def reset(self) -> None:
        self.calls.clear()

    def flat_list(self, document_id: str) -> Sequence[FlatChapterEntry]:
        self.calls["flat_list"] += 1
        return self.inner.flat_list(document_id)

    def tree(self, document_id: str) -> ChapterTree | None:
        self.calls["tree"] += 1
        return self.inner.tree(document_id)

    def find_by_scene_name(self, document_id: str, name: str) -> ChapterNode | None:
        self.calls["find_by_scene_name"] += 1
        return self.inner.find_by_scene_name(document_id, name)

    def search_by_keywords(self, document_id: str, keywords: Sequence[str]) -> Sequence[PageRef]:
        self.calls["search_by_keywords"] += 1
        self.last_keywords = list(keywords)
        return self.inner.search_by_keywords(document_id, keywords)

    def chapter_at_page_offset(self, document_id: str, page_id: str, offset: int) -> ChapterNode | None:
        self.calls["chapter_at_page_offset"] += 1
        return self.inner.chapter_at_page_offset(document_id, page_id, offset)

    def document_display_name(self, document_id: str) -> str:
        self.calls["document_display_name"] += 1
        return self.inner.document_display_name(document_id)

    def node_content(self, document_id: str, chapter_id: str) -> str:
        self.calls["node_content"] += 1
        return self.inner.node_content(document_id, chapter_id)
