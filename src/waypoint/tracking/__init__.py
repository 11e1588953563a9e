"""Position resolution, caching, history and navigation primitives."""

from .cache import CacheStats, PositionCache
from .formatter import ContextLabels, format_for_downstream
from .history import NavigationHistory
from .models import (
    ChapterInfo,
    ChapterSource,
    SiblingPair,
    SourceKind,
    StageSignal,
    SubchapterInfo,
)
from .navigator import find_siblings
from .resolver import PositionResolver, Resolution, Strategy, tokenize_stage_name
from .state import PositionState, load_chapter

__all__ = [
    "CacheStats",
    "ChapterInfo",
    "ChapterSource",
    "ContextLabels",
    "NavigationHistory",
    "PositionCache",
    "PositionResolver",
    "PositionState",
    "Resolution",
    "SiblingPair",
    "SourceKind",
    "StageSignal",
    "Strategy",
    "SubchapterInfo",
    "find_siblings",
    "format_for_downstream",
    "load_chapter",
    "tokenize_stage_name",
]
