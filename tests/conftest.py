"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.helpers import ADVENTURE_ID, CountingContentIndex, FakeClock, build_adventure_index
from waypoint import ChapterTracker, InMemoryContentIndex
from waypoint import telemetry


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def adventure_index() -> InMemoryContentIndex:
    return build_adventure_index()


@pytest.fixture
def counting_index(adventure_index: InMemoryContentIndex) -> CountingContentIndex:
    return CountingContentIndex(adventure_index)


@pytest.fixture
def tracker(adventure_index: InMemoryContentIndex, clock: FakeClock) -> ChapterTracker:
    tracker = ChapterTracker(adventure_index, clock=clock)
    tracker.select_document(ADVENTURE_ID)
    return tracker


@pytest.fixture
def telemetry_events():
    """Capture telemetry payloads emitted by the tracker during a test."""

    captured: list[dict] = []
    names = (telemetry.CHAPTER_RESOLVED, telemetry.CHAPTER_UNRESOLVED, telemetry.CHAPTER_NAVIGATED)
    for name in names:
        telemetry.register_event_listener(name, captured.append)
    yield captured
    for name in names:
        telemetry.unregister_event_listener(name, captured.append)
