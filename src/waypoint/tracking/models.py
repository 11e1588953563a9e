"""Value types describing the tracked position and how it was reached."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from ..index.models import PATH_SEPARATOR, ChapterNode, FlatChapterEntry, NodeKind

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceKind(str, Enum):
    """How the current chapter was determined.

    ``STAGE`` covers positions resolved from a stage signal and ``AUTO``
    positions picked without user or stage input; hosts that label them
    ``stage-signal`` and ``automatic`` map onto these two values.
    """

    STAGE = "stage"
    MANUAL = "manual"
    AUTO = "auto"
    NONE = "none"


@dataclass(slots=True, frozen=True)
class StageSignal:
    """Host notification describing the stage (scene) currently displayed.

    Attributes:
        id: Stable identifier of the stage; used as the cache key.
        name: Display name, used for title and keyword matching.
        linked_document_id: Document the stage links to, if any.
        linked_page_id: Page within the linked document, if any.
    """

    id: str
    name: str
    linked_document_id: str | None = None
    linked_page_id: str | None = None


@dataclass(slots=True, frozen=True)
class ChapterInfo:
    """Externally visible description of a position in a document."""

    id: str
    title: str
    level: int
    kind: NodeKind
    page_id: str
    page_name: str
    path: str
    document_id: str
    document_name: str = ""
    content: str = ""

    @classmethod
    def from_entry(
        cls,
        entry: FlatChapterEntry,
        *,
        document_id: str,
        document_name: str = "",
        content: str = "",
    ) -> ChapterInfo:
        return cls(
            id=entry.id,
            title=entry.title,
            level=entry.level,
            kind=entry.kind,
            page_id=entry.page_id,
            page_name=entry.page_name,
            path=entry.path,
            document_id=document_id,
            document_name=document_name,
            content=content,
        )

    @classmethod
    def from_node(
        cls,
        node: ChapterNode,
        *,
        document_id: str,
        document_name: str = "",
        path: str | None = None,
    ) -> ChapterInfo:
        return cls(
            id=node.id,
            title=node.title,
            level=node.level,
            kind=node.kind,
            page_id=node.page_id,
            page_name=node.page_name,
            path=path or fallback_path(node),
            document_id=document_id,
            document_name=document_name,
            content=node.content or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "level": self.level,
            "type": self.kind.value,
            "page_id": self.page_id,
            "page_name": self.page_name,
            "path": self.path,
            "document_id": self.document_id,
            "document_name": self.document_name,
            "content": self.content,
        }


@dataclass(slots=True, frozen=True)
class SubchapterInfo:
    """Immediate child of the current chapter, offered for navigation."""

    id: str
    title: str
    level: int
    kind: NodeKind
    path: str


@dataclass(slots=True, frozen=True)
class ChapterSource:
    """Provenance of the current chapter."""

    kind: SourceKind = SourceKind.NONE
    stage_id: str | None = None
    stage_name: str | None = None
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.kind.value,
            "updated_at": self.updated_at.isoformat(),
        }
        if self.stage_id is not None:
            payload["stage_id"] = self.stage_id
        if self.stage_name is not None:
            payload["stage_name"] = self.stage_name
        return payload


@dataclass(slots=True, frozen=True)
class SiblingPair(Generic[T]):
    """Nearest chapters at the same depth before and after the current one."""

    previous: T | None = None
    next: T | None = None


def fallback_path(node: ChapterNode) -> str:
    """Best-effort path for a node whose tree is not available."""

    if node.kind is NodeKind.PAGE:
        return node.title
    if node.page_name and node.page_name != node.title:
        return f"{node.page_name}{PATH_SEPARATOR}{node.title}"
    return node.title


__all__ = [
    "ChapterInfo",
    "ChapterSource",
    "SiblingPair",
    "SourceKind",
    "StageSignal",
    "SubchapterInfo",
    "fallback_path",
]
