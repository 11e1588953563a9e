"""Plain-text rendering of the current chapter for downstream prompts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import ChapterInfo, SubchapterInfo

DEFAULT_MAX_CONTENT_LENGTH = 5000
DEFAULT_TRUNCATION_MARKER = "..."


@dataclass(slots=True, frozen=True)
class ContextLabels:
    """Section labels used in the rendered block."""

    chapter: str = "CURRENT CHAPTER"
    path: str = "PATH"
    content: str = "CONTENT"
    subchapters: str = "AVAILABLE SUBSECTIONS"


def format_for_downstream(
    chapter: ChapterInfo | None,
    subchapters: Sequence[SubchapterInfo] = (),
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
    *,
    labels: ContextLabels | None = None,
    truncation_marker: str = DEFAULT_TRUNCATION_MARKER,
) -> str:
    """Render *chapter* and its subchapters as a newline-joined text block.

    Layout: title line, path line, blank line, then the content (cut to
    ``max_content_length`` characters plus ``truncation_marker`` when longer)
    and the subchapter bullet list, each only when non-empty. Returns ``""``
    when there is no chapter.
    """

    if max_content_length < 0:
        raise ValueError("max_content_length cannot be negative")
    if chapter is None:
        return ""

    labels = labels or ContextLabels()
    parts: list[str] = [
        f"{labels.chapter}: {chapter.title}",
        f"{labels.path}: {chapter.path}",
        "",
    ]

    content = chapter.content
    if content:
        if len(content) > max_content_length:
            content = content[:max_content_length] + truncation_marker
        parts.extend([f"{labels.content}:", content, ""])

    if subchapters:
        parts.append(f"{labels.subchapters}:")
        parts.extend(f"- {sub.title}" for sub in subchapters)

    return "\n".join(parts)


__all__ = [
    "ContextLabels",
    "DEFAULT_MAX_CONTENT_LENGTH",
    "DEFAULT_TRUNCATION_MARKER",
    "format_for_downstream",
]
