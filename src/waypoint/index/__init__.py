"""Content index contract, chapter tree arena and an in-memory index."""

from .contract import ContentIndex
from .memory import InMemoryContentIndex
from .models import (
    PATH_SEPARATOR,
    ChapterNode,
    ChapterTree,
    FlatChapterEntry,
    NodeKind,
    PageRef,
)

__all__ = [
    "ChapterNode",
    "ChapterTree",
    "ContentIndex",
    "FlatChapterEntry",
    "InMemoryContentIndex",
    "NodeKind",
    "PageRef",
    "PATH_SEPARATOR",
]
