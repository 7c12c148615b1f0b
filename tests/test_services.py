"""Tests for the GhostPlanner facade."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from dayplanner_core import (
    CalendarStore,
    CandidateSuggestion,
    DayContext,
    GhostPlanner,
    PlacedSuggestion,
    PlannerConfig,
    PlannerEventKind,
    RefreshReason,
    RefreshState,
    SuggestionGenerator,
    TimeInterval,
)
from dayplanner_core.telemetry import clear_handlers, register_handler

TZ = ZoneInfo("UTC")
DAY = date(2026, 3, 2)
CONFIG = PlannerConfig(timezone="UTC", follow_up_delay_seconds=60)


class InMemoryCalendarStore(CalendarStore):
    def __init__(self) -> None:
        self.blocks: list[TimeInterval] = []
        self.committed: list[PlacedSuggestion] = []

    async def current_day_blocks(self, day: date) -> Sequence[TimeInterval]:
        return list(self.blocks)

    async def quiet_hour_windows(self, day: date) -> Sequence[TimeInterval]:
        return []

    async def commit(self, suggestion: PlacedSuggestion) -> None:
        self.committed.append(suggestion)


class RecordingGenerator(SuggestionGenerator):
    def __init__(self) -> None:
        self.reasons: list[Optional[RefreshReason]] = []

    async def generate(
        self, context: DayContext, reason: Optional[RefreshReason] = None
    ) -> Sequence[CandidateSuggestion]:
        self.reasons.append(reason)
        return [
            CandidateSuggestion(
                title="Walk", requested_duration=timedelta(minutes=20), related_goal="Health"
            ),
            CandidateSuggestion(title="Read", requested_duration=timedelta(minutes=30), weight=0.2),
        ]


def _clock() -> datetime:
    return datetime.combine(DAY, time(9, 0), tzinfo=TZ)


def _planner(config: PlannerConfig = CONFIG, **kwargs):
    store = InMemoryCalendarStore()
    generator = RecordingGenerator()
    planner = GhostPlanner(store, generator, config=config, clock=_clock, **kwargs)
    return planner, store, generator


def setup_function():
    clear_handlers()


def test_day_defaults_to_clock_date():
    planner, _, _ = _planner()
    assert planner.day == DAY
    assert planner.state is RefreshState.IDLE


def test_subscribers_receive_placement_snapshots():
    planner, _, _ = _planner()
    events = []
    unsubscribe = planner.subscribe(events.append)

    async def _go():
        await planner.force_refresh()
        unsubscribe()
        await planner.force_refresh()

    asyncio.run(_go())
    assert len(events) == 1
    assert events[0].kind is PlannerEventKind.PLACEMENTS
    assert [p.title for p in events[0].placements] == ["Read", "Walk"]
    assert events[0].placements == planner.current_placements()


def test_selection_events_and_identity_across_passes():
    planner, _, _ = _planner()
    events = []
    planner.subscribe(events.append)

    async def _go():
        await planner.force_refresh()
        read = planner.current_placements()[0]
        planner.toggle_selection(read.id)
        await planner.force_refresh()
        return read

    read = asyncio.run(_go())
    kinds = [e.kind for e in events]
    assert kinds == [
        PlannerEventKind.PLACEMENTS,
        PlannerEventKind.SELECTION,
        PlannerEventKind.PLACEMENTS,
    ]
    assert planner.current_placements()[0].id == read.id
    assert planner.selected_ids() == frozenset({read.id})
    assert events[-1].selected == frozenset({read.id})


def test_failing_listener_does_not_block_others():
    captured = []
    register_handler(captured.append)
    planner, _, _ = _planner()
    received = []

    def broken(event):
        raise RuntimeError("render failed")

    planner.subscribe(broken)
    planner.subscribe(received.append)
    asyncio.run(planner.force_refresh())

    assert len(received) == 1
    assert captured[0].source == "planner"


def test_accept_selected_through_planner():
    planner, store, _ = _planner()

    async def _go():
        await planner.force_refresh()
        accepted = await planner.accept_selected()
        await planner.stop_refresh_loop()
        return accepted

    accepted = asyncio.run(_go())
    assert len(accepted) == 2
    assert len(store.committed) == 2
    assert planner.current_placements() == ()
    assert planner.state is RefreshState.CANCELLED


def test_notify_external_edit_bypasses_cache():
    planner, store, generator = _planner()

    async def _go():
        await planner.force_refresh()
        store.blocks.append(
            TimeInterval(
                start=datetime.combine(DAY, time(9, 0), tzinfo=TZ),
                end=datetime.combine(DAY, time(12, 0), tzinfo=TZ),
            )
        )
        await planner.notify_external_edit()

    asyncio.run(_go())
    assert generator.reasons == [RefreshReason.FORCED, RefreshReason.EDITED_BLOCK]
    assert all(p.start >= datetime.combine(DAY, time(12, 0), tzinfo=TZ)
               for p in planner.current_placements())


def test_pin_toggle_reorders_on_next_pass():
    planner, _, generator = _planner()

    async def _go():
        await planner.force_refresh()
        planner.toggle_goal_pin("Health")
        assert planner.scheduler.pending.pending is RefreshReason.PIN_CHANGE
        await planner.force_refresh()

    asyncio.run(_go())
    assert planner.preferences.pinned_goals == frozenset({"Health"})
    assert generator.reasons[-1] is RefreshReason.PIN_CHANGE
    walk = next(p for p in planner.current_placements() if p.title == "Walk")
    assert walk.start == datetime.combine(DAY, time(9, 0), tzinfo=TZ)
    assert "pinned: Health" in walk.candidate.reason


def test_feedback_and_pillar_requests():
    planner, _, _ = _planner()
    planner.toggle_pillar_emphasis("Learning")
    assert planner.scheduler.pending.pending is RefreshReason.PIN_CHANGE
    planner.record_feedback()
    assert planner.scheduler.pending.pending is RefreshReason.FEEDBACK
    assert planner.preferences.emphasized_pillars == frozenset({"Learning"})


def test_switch_day_clears_selection():
    planner, _, generator = _planner()
    tomorrow = DAY + timedelta(days=1)

    async def _go():
        await planner.force_refresh()
        planner.toggle_selection(planner.current_placements()[0].id)
        await planner.switch_day(DAY)
        same_day_selected = planner.selected_ids()
        await planner.switch_day(tomorrow)
        return same_day_selected

    same_day_selected = asyncio.run(_go())
    assert len(same_day_selected) == 1
    assert planner.day == tomorrow
    assert planner.selected_ids() == frozenset()
    assert generator.reasons[-1] is RefreshReason.DAY_CHANGE


def test_positive_feedback_reorders_next_pass():
    planner, _, generator = _planner(replace(CONFIG, feedback_boost=0.5))

    async def _go():
        await planner.force_refresh()
        before = planner.current_placements()[0].title
        planner.record_feedback(goal="Health", positive=True)
        await planner.force_refresh()
        return before

    before = asyncio.run(_go())
    assert before == "Read"
    assert generator.reasons[-1] is RefreshReason.FEEDBACK
    assert planner.preferences.goal_feedback["Health"].positive == 1
    first = planner.current_placements()[0]
    assert first.title == "Walk"
    assert "feedback: Health" in first.candidate.reason
