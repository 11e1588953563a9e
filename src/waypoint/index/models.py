"""Chapter tree arena and the flat, document-ordered view derived from it.

The tree is stored as an arena: every :class:`ChapterNode` lives in
``ChapterTree.nodes`` and refers to its parent and children by position.
Traversals use explicit stacks, so arbitrarily deep documents never hit the
interpreter's recursion limit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping

from ..errors import InvalidTreeError

PATH_SEPARATOR = " > "
PAGE_LEVEL = 0
SECTION_LEVEL = 7


class NodeKind(str, Enum):
    """Structural role of a chapter node."""

    PAGE = "page"
    HEADING = "heading"
    SECTION = "section"


@dataclass(slots=True)
class ChapterNode:
    """Single addressable unit of a document, owned by a :class:`ChapterTree`."""

    index: int
    id: str
    title: str
    level: int
    kind: NodeKind
    page_id: str
    page_name: str
    content: str = ""
    parent: int | None = None
    children: list[int] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class FlatChapterEntry:
    """A chapter node in reading order with its hierarchical path precomputed."""

    id: str
    title: str
    level: int
    kind: NodeKind
    page_id: str
    page_name: str
    path: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "level": self.level,
            "type": self.kind.value,
            "page_id": self.page_id,
            "page_name": self.page_name,
            "path": self.path,
        }


@dataclass(slots=True, frozen=True)
class PageRef:
    """Ranked page hit returned by a keyword search."""

    page_id: str
    name: str
    score: float = 0.0


class ChapterTree:
    """Arena of chapter nodes for one document.

    Top-level nodes (usually the document's pages) are kept in
    :attr:`root_indices`; everything else hangs off them through index
    lists. Nodes are appended in document order, so a pre-order walk over
    the arena reproduces the reading order.

    Example::

        tree = ChapterTree()
        page = tree.add_node(None, "p1", "The Tavern", level=0, kind=NodeKind.PAGE)
        tree.add_node(page, "p1-h1", "The Barkeep", level=1, kind=NodeKind.HEADING)
    """

    __slots__ = ("_nodes", "_roots", "_ids")

    def __init__(self) -> None:
        self._nodes: list[ChapterNode] = []
        self._roots: list[int] = []
        self._ids: set[str] = set()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def add_node(
        self,
        parent: int | None,
        chapter_id: str,
        title: str,
        *,
        level: int,
        kind: NodeKind | str = NodeKind.HEADING,
        page_id: str | None = None,
        page_name: str | None = None,
        content: str = "",
    ) -> int:
        """Append a node under *parent* (or at top level) and return its index.

        ``page_id``/``page_name`` default to the parent's values, or to the
        node's own id and title for top-level nodes.
        """

        if not chapter_id:
            raise InvalidTreeError(message="Chapter id must be a non-empty string")
        if chapter_id in self._ids:
            raise InvalidTreeError(
                message=f"Duplicate chapter id: {chapter_id}",
                details={"chapter_id": chapter_id},
            )
        if not PAGE_LEVEL <= level <= SECTION_LEVEL:
            raise InvalidTreeError(
                message=f"Chapter level must be within {PAGE_LEVEL}..{SECTION_LEVEL}",
                details={"chapter_id": chapter_id, "level": level},
            )

        parent_node: ChapterNode | None = None
        if parent is not None:
            parent_node = self.node(parent)
            if level <= parent_node.level:
                raise InvalidTreeError(
                    message="Child level must be greater than its parent's level",
                    details={
                        "chapter_id": chapter_id,
                        "level": level,
                        "parent_id": parent_node.id,
                        "parent_level": parent_node.level,
                    },
                )

        if parent_node is not None:
            resolved_page_id = page_id or parent_node.page_id
            resolved_page_name = page_name if page_name is not None else parent_node.page_name
        else:
            resolved_page_id = page_id or chapter_id
            resolved_page_name = page_name if page_name is not None else title

        index = len(self._nodes)
        node = ChapterNode(
            index=index,
            id=chapter_id,
            title=title,
            level=level,
            kind=NodeKind(kind),
            page_id=resolved_page_id,
            page_name=resolved_page_name,
            content=content,
            parent=parent,
        )
        self._nodes.append(node)
        self._ids.add(chapter_id)
        if parent_node is None:
            self._roots.append(index)
        else:
            parent_node.children.append(index)
        return index

    @classmethod
    def from_dicts(cls, pages: Iterable[Mapping[str, Any]]) -> ChapterTree:
        """Build a tree from nested mappings with ``id``/``title``/``level``/``children``.

        ``type`` (or ``kind``) selects the node kind; top-level entries
        default to pages, nested ones to headings.
        """

        tree = cls()
        stack: list[tuple[int | None, Mapping[str, Any]]] = [
            (None, payload) for payload in reversed(list(pages))
        ]
        while stack:
            parent, payload = stack.pop()
            default_kind = NodeKind.PAGE if parent is None else NodeKind.HEADING
            default_level = PAGE_LEVEL if parent is None else tree.node(parent).level + 1
            index = tree.add_node(
                parent,
                str(payload.get("id", "")),
                str(payload.get("title", "")),
                level=int(payload.get("level", default_level)),
                kind=payload.get("type") or payload.get("kind") or default_kind,
                page_id=payload.get("page_id"),
                page_name=payload.get("page_name"),
                content=str(payload.get("content", "")),
            )
            children = payload.get("children") or ()
            stack.extend((index, child) for child in reversed(list(children)))
        return tree

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def nodes(self) -> tuple[ChapterNode, ...]:
        return tuple(self._nodes)

    @property
    def root_indices(self) -> tuple[int, ...]:
        return tuple(self._roots)

    @property
    def roots(self) -> list[ChapterNode]:
        return [self._nodes[index] for index in self._roots]

    def node(self, index: int) -> ChapterNode:
        if not 0 <= index < len(self._nodes):
            raise IndexError(f"No chapter node at index {index}")
        return self._nodes[index]

    def children_of(self, index: int) -> list[ChapterNode]:
        return [self._nodes[child] for child in self.node(index).children]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, chapter_id: object) -> bool:
        return chapter_id in self._ids

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------
    def locate(self, chapter_id: str) -> ChapterNode | None:
        """Depth-first search from the top-level nodes for *chapter_id*.

        The walk visits each arena slot at most once, so it terminates after
        ``len(self)`` steps even on a corrupted child list.
        """

        budget = len(self._nodes)
        stack = list(reversed(self._roots))
        seen: set[int] = set()
        while stack and budget > 0:
            index = stack.pop()
            if index in seen:
                continue
            seen.add(index)
            budget -= 1
            node = self._nodes[index]
            if node.id == chapter_id:
                return node
            stack.extend(reversed(node.children))
        return None

    def path_of(self, index: int) -> str:
        """Return the hierarchical path of the node at *index*."""

        titles: list[str] = []
        current: int | None = index
        budget = len(self._nodes)
        while current is not None and budget > 0:
            node = self.node(current)
            titles.append(node.title)
            current = node.parent
            budget -= 1
        return PATH_SEPARATOR.join(reversed(titles))

    def walk(self) -> Iterator[tuple[ChapterNode, str]]:
        """Yield ``(node, path)`` pairs in pre-order (reading order)."""

        stack: list[tuple[int, str]] = [(index, "") for index in reversed(self._roots)]
        while stack:
            index, parent_path = stack.pop()
            node = self._nodes[index]
            path = f"{parent_path}{PATH_SEPARATOR}{node.title}" if parent_path else node.title
            yield node, path
            stack.extend((child, path) for child in reversed(node.children))

    def flatten(self) -> list[FlatChapterEntry]:
        """Return the document-order flat list of every node."""

        return [
            FlatChapterEntry(
                id=node.id,
                title=node.title,
                level=node.level,
                kind=node.kind,
                page_id=node.page_id,
                page_name=node.page_name,
                path=path,
            )
            for node, path in self.walk()
        ]


__all__ = [
    "ChapterNode",
    "ChapterTree",
    "FlatChapterEntry",
    "NodeKind",
    "PageRef",
    "PAGE_LEVEL",
    "PATH_SEPARATOR",
    "SECTION_LEVEL",
]
