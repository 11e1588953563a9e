"""Waypoint: chapter position tracking for live narrative sessions."""

from .errors import IndexNotConfiguredError, InvalidTreeError, WaypointError
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
from .index import (
    ChapterNode,
    ChapterTree,
    ContentIndex,
    FlatChapterEntry,
    InMemoryContentIndex,
    NodeKind,
    PageRef,
)
from .settings import TrackerSettings, load_settings
from .tracker import ChapterTracker
from .tracking import (
    ChapterInfo,
    ChapterSource,
    SiblingPair,
    SourceKind,
    StageSignal,
    SubchapterInfo,
)

__version__ = "0.1.0"

__all__ = [
    "ChapterInfo",
    "ChapterNode",
    "ChapterSelected",
    "ChapterSource",
    "ChapterTracker",
    "ChapterTree",
    "ContentIndex",
    "ContentIndexRebuilt",
    "DocumentSelected",
    "EventBus",
    "FlatChapterEntry",
    "IndexNotConfiguredError",
    "InMemoryContentIndex",
    "InvalidTreeError",
    "NavigateBackRequested",
    "NodeKind",
    "PageRef",
    "PositionChanged",
    "SiblingPair",
    "SourceKind",
    "StageChanged",
    "StageSignal",
    "SubchapterInfo",
    "Subscription",
    "TrackerSettings",
    "WaypointError",
    "load_settings",
    "__version__",
]
