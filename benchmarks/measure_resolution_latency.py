"""Benchmark helper for stage → chapter resolution latency."""
from __future__ import annotations

import argparse
import statistics
from dataclasses import dataclass
from time import perf_counter
from typing import Sequence

from waypoint import ChapterTracker, ChapterTree, InMemoryContentIndex, NodeKind, StageSignal

DOCUMENT_ID = "benchmark"


@dataclass(slots=True)
class BenchmarkResult:
    label: str
    chapters: int
    signals: int
    cold_ms: list[float]
    cached_ms: list[float]

    @property
    def cold_median(self) -> float:
        return statistics.median(self.cold_ms) if self.cold_ms else 0.0

    @property
    def cached_median(self) -> float:
        return statistics.median(self.cached_ms) if self.cached_ms else 0.0


def _build_tree(pages: int, headings: int, sections: int) -> ChapterTree:
    tree = ChapterTree()
    for p in range(pages):
        page = tree.add_node(
            None,
            f"p{p}",
            f"Page {p} of the campaign",
            level=0,
            kind=NodeKind.PAGE,
            content=f"Opening narration for page {p}. " * 20,
        )
        for h in range(headings):
            heading = tree.add_node(
                page,
                f"p{p}-h{h}",
                f"Encounter {p}-{h} in the ruins",
                level=1,
                content=f"Read aloud text for encounter {h}. " * 10,
            )
            for s in range(sections):
                tree.add_node(
                    heading,
                    f"p{p}-h{h}-s{s}",
                    f"Room {p}-{h}-{s}",
                    level=7,
                    kind=NodeKind.SECTION,
                    content="Treasure, traps and tactics. " * 5,
                )
    return tree


def _signals(pages: int, headings: int) -> Sequence[StageSignal]:
    signals: list[StageSignal] = []
    for p in range(pages):
        signals.append(
            StageSignal(id=f"link-{p}", name="Linked scene", linked_document_id=DOCUMENT_ID, linked_page_id=f"p{p}")
        )
        for h in range(headings):
            signals.append(StageSignal(id=f"name-{p}-{h}", name=f"Encounter {p}-{h} in the ruins"))
        signals.append(StageSignal(id=f"kw-{p}", name=f"Narration page {p}!"))
    return signals


def run_benchmark(label: str, *, pages: int, headings: int, sections: int, rounds: int) -> BenchmarkResult:
    index = InMemoryContentIndex()
    tree = _build_tree(pages, headings, sections)
    index.add_document(DOCUMENT_ID, label, tree)
    signals = _signals(pages, headings)
    cold: list[float] = []
    cached: list[float] = []

    for _ in range(max(1, rounds)):
        tracker = ChapterTracker(index)
        tracker.select_document(DOCUMENT_ID)
        for signal in signals:
            start = perf_counter()
            tracker.update_from_stage(signal)
            cold.append((perf_counter() - start) * 1000.0)
        for signal in signals:
            start = perf_counter()
            tracker.update_from_stage(signal)
            cached.append((perf_counter() - start) * 1000.0)

    return BenchmarkResult(label=label, chapters=len(tree), signals=len(signals), cold_ms=cold, cached_ms=cached)


def main() -> None:
    parser = argparse.ArgumentParser(description="Measure ChapterTracker resolution latency on synthetic documents.")
    parser.add_argument("--pages", type=int, default=40, help="Top-level pages per document.")
    parser.add_argument("--headings", type=int, default=12, help="Headings per page.")
    parser.add_argument("--sections", type=int, default=6, help="Leaf sections per heading.")
    parser.add_argument("--rounds", type=int, default=3, help="Fresh trackers to run the signal set through.")
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON results.")
    args = parser.parse_args()

    result = run_benchmark(
        "Synthetic campaign",
        pages=max(1, args.pages),
        headings=max(0, args.headings),
        sections=max(0, args.sections),
        rounds=args.rounds,
    )

    if args.json:
        import json

        print(
            json.dumps(
                {
                    "label": result.label,
                    "chapters": result.chapters,
                    "signals": result.signals,
                    "cold_median_ms": result.cold_median,
                    "cached_median_ms": result.cached_median,
                    "cold_max_ms": max(result.cold_ms, default=0.0),
                    "cached_max_ms": max(result.cached_ms, default=0.0),
                },
                indent=2,
            )
        )
        return

    print(f"{result.label}: {result.chapters:,} chapters, {result.signals:,} stage signals")
    for title, samples in (("Cold", result.cold_ms), ("Cached", result.cached_ms)):
        print(
            f"{title} resolution → min: {min(samples):.3f} ms · median: {statistics.median(samples):.3f} ms · "
            f"max: {max(samples):.3f} ms"
        )


if __name__ == "__main__":
    main()
