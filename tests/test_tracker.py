"""Integration tests for :class:`waypoint.tracker.ChapterTracker`."""

from __future__ import annotations

from tests.helpers import ADVENTURE_ID, ADVENTURE_NAME, FakeClock, build_adventure_tree, build_docks_index
from waypoint import (
    ChapterSelected,
    ChapterTracker,
    ChapterTree,
    ContentIndexRebuilt,
    DocumentSelected,
    EventBus,
    InMemoryContentIndex,
    NavigateBackRequested,
    PositionChanged,
    SourceKind,
    StageChanged,
    StageSignal,
    TrackerSettings,
)
from waypoint.tracking import Strategy


def _record_positions(bus: EventBus) -> list[PositionChanged]:
    received: list[PositionChanged] = []
    bus.subscribe(PositionChanged, received.append)
    return received


class TestEndToEnd:
    def test_direct_link_then_cache_hit(self, clock: FakeClock, telemetry_events: list[dict]) -> None:
        tracker = ChapterTracker(build_docks_index(), clock=clock)
        tracker.select_document("harbor")
        signal = StageSignal(id="S1", name="The Docks", linked_document_id="harbor", linked_page_id="P1")

        first = tracker.update_from_stage(signal)
        second = tracker.update_from_stage(signal)

        assert first is not None and first.id == "2"
        assert first.path == "Arrival > The Docks"
        assert second == first
        assert [event["strategy"] for event in telemetry_events] == [
            Strategy.DIRECT_LINK.value,
            Strategy.CACHE.value,
        ]
        assert [event["changed"] for event in telemetry_events] == [True, False]
        assert tracker.cache.stats.hits == 1

        source = tracker.chapter_source()
        assert source.kind is SourceKind.STAGE
        assert source.stage_id == "S1"
        assert source.stage_name == "The Docks"
        assert tracker.active_stage_id == "S1"
        assert tracker.history() == []

    def test_stage_sequence_builds_history(self, tracker: ChapterTracker) -> None:
        tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep"))
        tracker.update_from_stage(StageSignal(id="s2", name="Giant Rats"))

        assert tracker.current_chapter.id == "cellar-rats"  # type: ignore[union-attr]
        assert [entry.id for entry in tracker.history()] == ["tavern-barkeep"]

        restored = tracker.navigate_back()

        assert restored is not None and restored.id == "tavern-barkeep"
        assert tracker.chapter_source().kind is SourceKind.MANUAL
        assert tracker.history() == []
        assert tracker.navigate_back() is None


class TestUnconfigured:
    def test_without_index_every_query_is_negative(self) -> None:
        tracker = ChapterTracker()
        tracker.select_document(ADVENTURE_ID)

        assert tracker.is_configured() is False
        assert tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep")) is None
        assert tracker.active_stage_id == "s1"
        assert tracker.set_manual_chapter("tavern") is False
        assert tracker.navigate_back() is None
        assert tracker.all_chapters() == []
        assert tracker.search_chapters("tavern") == []
        assert tracker.format_for_downstream() == ""
        assert tracker.reconcile() == 0
        pair = tracker.sibling_chapters()
        assert pair.previous is None and pair.next is None

    def test_without_document_every_query_is_negative(self, adventure_index: InMemoryContentIndex) -> None:
        tracker = ChapterTracker(adventure_index)

        assert tracker.is_configured() is False
        assert tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep")) is None
        assert tracker.set_manual_chapter("tavern") is False
        assert tracker.all_chapters() == []
        assert tracker.current_chapter is None

    def test_none_signal_is_ignored(self, tracker: ChapterTracker) -> None:
        assert tracker.update_from_stage(None) is None
        assert tracker.active_stage_id is None

    def test_index_can_be_attached_later(self, adventure_index: InMemoryContentIndex) -> None:
        tracker = ChapterTracker()
        tracker.select_document(ADVENTURE_ID)

        tracker.set_content_index(adventure_index)

        assert tracker.content_index is adventure_index
        assert tracker.set_manual_chapter("tavern") is True
        assert [sub.id for sub in tracker.subchapters()] == [
            "tavern-barkeep",
            "tavern-cellar",
            "tavern-back-room",
        ]


class TestDocumentSelection:
    def test_switching_documents_resets_position_and_cache(self, tracker: ChapterTracker) -> None:
        bus = EventBus()
        tracker.bind(bus)
        received = _record_positions(bus)
        tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep"))
        tracker.update_from_stage(StageSignal(id="s2", name="The Clearing"))

        tracker.select_document("other-module")

        assert tracker.selected_document == "other-module"
        assert tracker.current_chapter is None
        assert tracker.history() == []
        assert tracker.subchapters() == []
        assert tracker.active_stage_id is None
        assert tracker.chapter_source().kind is SourceKind.NONE
        assert len(tracker.cache) == 0
        assert received[-1].chapter is None

    def test_reselecting_same_document_is_a_no_op(self, tracker: ChapterTracker) -> None:
        tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep"))

        tracker.select_document(ADVENTURE_ID)

        assert tracker.current_chapter is not None
        assert len(tracker.cache) == 1


class TestManualSelection:
    def test_manual_chapter_and_unknown_ids(self, tracker: ChapterTracker) -> None:
        assert tracker.set_manual_chapter("tavern-cellar") is True
        assert tracker.chapter_source().kind is SourceKind.MANUAL
        assert tracker.current_chapter.document_name == ADVENTURE_NAME  # type: ignore[union-attr]

        assert tracker.set_manual_chapter("missing") is False
        assert tracker.set_manual_chapter("") is False
        assert tracker.current_chapter.id == "tavern-cellar"  # type: ignore[union-attr]

    def test_siblings_of_current_chapter(self, tracker: ChapterTracker) -> None:
        tracker.set_manual_chapter("tavern-cellar")

        pair = tracker.sibling_chapters()

        assert pair.previous is not None and pair.previous.id == "tavern-barkeep"
        assert pair.next is not None and pair.next.id == "tavern-back-room"
        assert pair.next.document_id == ADVENTURE_ID
        assert pair.next.path == "Chapter 1 - The Tavern > The Back Room"

    def test_siblings_without_position(self, tracker: ChapterTracker) -> None:
        pair = tracker.sibling_chapters()

        assert pair.previous is None and pair.next is None


class TestQueries:
    def test_all_chapters_lists_reading_order(self, tracker: ChapterTracker) -> None:
        chapters = tracker.all_chapters()

        assert len(chapters) == 8
        assert chapters[0].id == "intro"

    def test_search_chapters_returns_first_entry_of_each_page(self, tracker: ChapterTracker) -> None:
        assert [entry.id for entry in tracker.search_chapters("tavern back room")] == ["tavern"]
        assert [entry.id for entry in tracker.search_chapters("the moonlight")] == ["forest", "intro", "tavern"]
        assert tracker.search_chapters("a b") == []
        assert tracker.search_chapters("dragon") == []

    def test_short_keywords_need_matching_index_minimum(self) -> None:
        settings = TrackerSettings(min_keyword_length=2)
        index = InMemoryContentIndex(min_keyword_length=settings.min_keyword_length)
        index.add_document(ADVENTURE_ID, ADVENTURE_NAME, build_adventure_tree())
        tracker = ChapterTracker(index, settings=settings)
        tracker.select_document(ADVENTURE_ID)

        assert [entry.id for entry in tracker.search_chapters("go to")] == ["intro"]
        assert tracker.update_from_stage(StageSignal(id="s1", name="Go to")).id == "intro"  # type: ignore[union-attr]

    def test_format_uses_settings_defaults(self, adventure_index: InMemoryContentIndex) -> None:
        settings = TrackerSettings(max_content_length=5, truncation_marker="[...]")
        tracker = ChapterTracker(adventure_index, settings=settings)
        tracker.select_document(ADVENTURE_ID)
        tracker.set_manual_chapter("tavern")

        text = tracker.format_for_downstream()

        assert text.startswith("CURRENT CHAPTER: Chapter 1 - The Tavern\nPATH: Chapter 1 - The Tavern\n\n")
        assert "CONTENT:\nThe h[...]\n" in text
        assert text.endswith("AVAILABLE SUBSECTIONS:\n- The Barkeep\n- The Cellar\n- The Back Room")
        assert "CONTENT:\nThe heroes enter the tavern\n" in tracker.format_for_downstream(100)

    def test_snapshot_summarizes_state(self, tracker: ChapterTracker) -> None:
        tracker.update_from_stage(StageSignal(id="s1", name="The Cellar"))

        snapshot = tracker.snapshot()

        assert snapshot["document_id"] == ADVENTURE_ID
        assert snapshot["active_stage_id"] == "s1"
        assert snapshot["current"]["id"] == "tavern-cellar"
        assert snapshot["source"]["type"] == "stage"
        assert snapshot["subchapters"] == ["cellar-rats"]
        assert snapshot["history"] == []
        assert snapshot["cache"]["stores"] == 1

    def test_clear_and_clear_cache(self, tracker: ChapterTracker) -> None:
        tracker.update_from_stage(StageSignal(id="s1", name="The Cellar"))

        tracker.clear()
        assert tracker.current_chapter is None
        assert len(tracker.cache) == 1

        tracker.clear_cache()
        assert len(tracker.cache) == 0


class TestReconcile:
    def test_vanished_chapter_clears_position(self, tracker: ChapterTracker, adventure_index: InMemoryContentIndex) -> None:
        bus = EventBus()
        tracker.bind(bus)
        received = _record_positions(bus)
        tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep"))
        tracker.update_from_stage(StageSignal(id="s2", name="The Clearing"))
        adventure_index.add_document(
            ADVENTURE_ID,
            ADVENTURE_NAME,
            ChapterTree.from_dicts([{"id": "tavern", "title": "Chapter 1 - The Tavern"}]),
        )

        bus.publish(ContentIndexRebuilt(document_id=ADVENTURE_ID))

        assert tracker.current_chapter is None
        assert len(tracker.cache) == 0
        assert received[-1].chapter is None
        assert received[-1].previous_id == "forest-clearing"

    def test_surviving_chapter_refreshes_subchapters(
        self,
        tracker: ChapterTracker,
        adventure_index: InMemoryContentIndex,
    ) -> None:
        tracker.update_from_stage(StageSignal(id="s1", name="The Cellar"))
        tracker.update_from_stage(StageSignal(id="s2", name="The Barkeep"))
        adventure_index.add_document(
            ADVENTURE_ID,
            ADVENTURE_NAME,
            ChapterTree.from_dicts([
                {
                    "id": "tavern",
                    "title": "Chapter 1 - The Tavern",
                    "children": [
                        {"id": "tavern-barkeep", "title": "The Barkeep", "children": [{"id": "tab", "title": "Tab"}]},
                    ],
                },
            ]),
        )

        dropped = tracker.reconcile()

        assert dropped == 1
        assert tracker.cache.keys() == [(ADVENTURE_ID, "s2")]
        assert tracker.current_chapter.id == "tavern-barkeep"  # type: ignore[union-attr]
        assert [sub.id for sub in tracker.subchapters()] == ["tab"]

    def test_surviving_chapter_is_reloaded_and_history_pruned(
        self,
        tracker: ChapterTracker,
        adventure_index: InMemoryContentIndex,
    ) -> None:
        tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep"))
        tracker.update_from_stage(StageSignal(id="s2", name="Chapter 1 - The Tavern"))
        adventure_index.add_document(
            ADVENTURE_ID,
            ADVENTURE_NAME,
            ChapterTree.from_dicts([
                {"id": "tavern", "title": "Chapter 1 - The Renamed Inn", "content": "New paint everywhere"},
            ]),
        )

        assert tracker.reconcile() == 1

        current = tracker.current_chapter
        assert current is not None
        assert current.title == "Chapter 1 - The Renamed Inn"
        assert current.path == "Chapter 1 - The Renamed Inn"
        assert "New paint everywhere" in tracker.format_for_downstream()
        assert tracker.history() == []
        assert tracker.navigate_back() is None
        cached = tracker.update_from_stage(StageSignal(id="s2", name="Chapter 1 - The Tavern"))
        assert cached is not None and cached.title == "Chapter 1 - The Renamed Inn"

    def test_rebuild_of_other_document_is_ignored(self, tracker: ChapterTracker) -> None:
        bus = EventBus()
        tracker.bind(bus)
        tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep"))

        bus.publish(ContentIndexRebuilt(document_id="other-module"))

        assert tracker.current_chapter is not None


class TestEventWiring:
    def test_host_events_drive_tracker(self, adventure_index: InMemoryContentIndex) -> None:
        bus = EventBus()
        tracker = ChapterTracker(adventure_index, event_bus=bus)
        received = _record_positions(bus)

        bus.publish(DocumentSelected(document_id=ADVENTURE_ID))
        bus.publish(StageChanged(signal=StageSignal(id="s1", name="The Barkeep")))
        bus.publish(StageChanged(signal=StageSignal(id="s1", name="The Barkeep")))
        bus.publish(ChapterSelected(chapter_id="forest"))
        bus.publish(NavigateBackRequested())

        assert [event.chapter.id for event in received if event.chapter] == [
            "tavern-barkeep",
            "forest",
            "tavern-barkeep",
        ]
        assert received[1].previous_id == "tavern-barkeep"
        assert received[0].source.kind is SourceKind.STAGE
        assert received[2].source.kind is SourceKind.MANUAL
        assert tracker.current_chapter.id == "tavern-barkeep"  # type: ignore[union-attr]

    def test_unbind_stops_handling(self, tracker: ChapterTracker) -> None:
        bus = EventBus()
        tracker.bind(bus)
        assert bus.handler_count() == 5

        tracker.unbind()
        bus.publish(StageChanged(signal=StageSignal(id="s1", name="The Barkeep")))

        assert bus.handler_count() == 0
        assert tracker.current_chapter is None

    def test_rebinding_moves_subscriptions(self, tracker: ChapterTracker) -> None:
        first = EventBus()
        second = EventBus()
        tracker.bind(first)
        tracker.bind(first)

        tracker.bind(second)

        assert first.handler_count() == 0
        assert second.handler_count() == 5


class TestTelemetry:
    def test_unresolved_and_navigation_events(self, tracker: ChapterTracker, telemetry_events: list[dict]) -> None:
        tracker.update_from_stage(StageSignal(id="s9", name="Dragon Lair"))
        tracker.update_from_stage(StageSignal(id="s1", name="The Barkeep"))
        tracker.update_from_stage(StageSignal(id="s2", name="The Cellar"))
        tracker.navigate_back()

        names = [event["event"] for event in telemetry_events]
        assert names == ["chapter.unresolved", "chapter.resolved", "chapter.resolved", "chapter.navigated"]
        assert telemetry_events[0] == {
            "event": "chapter.unresolved",
            "document_id": ADVENTURE_ID,
            "stage_id": "s9",
        }
        assert telemetry_events[1]["strategy"] == Strategy.NAME_MATCH.value
        assert telemetry_events[-1]["chapter_id"] == "tavern-barkeep"
