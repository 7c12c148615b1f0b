"""Tests for dayplanner_core selection and staging."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from dayplanner_core.config import PlannerConfig
from dayplanner_core.models import (
    CandidateSuggestion,
    DayContext,
    PlacedSuggestion,
    RefreshReason,
    TimeInterval,
)
from dayplanner_core.ports import CalendarStore, SuggestionGenerator
from dayplanner_core.refresh import RefreshScheduler
from dayplanner_core.selection import SelectionStaging
from dayplanner_core.telemetry import clear_handlers, register_handler

TZ = ZoneInfo("UTC")
DAY = date(2026, 3, 2)
# Long follow-up delay so passes triggered by accept/dismiss do not interfere
CONFIG = PlannerConfig(timezone="UTC", follow_up_delay_seconds=60)


class InMemoryCalendarStore(CalendarStore):
    def __init__(self, fail_titles: Sequence[str] = ()) -> None:
        self.committed: list[PlacedSuggestion] = []
        self.fail_titles = set(fail_titles)

    async def current_day_blocks(self, day: date) -> Sequence[TimeInterval]:
        return []

    async def quiet_hour_windows(self, day: date) -> Sequence[TimeInterval]:
        return []

    async def commit(self, suggestion: PlacedSuggestion) -> None:
        if suggestion.title in self.fail_titles:
            raise ConnectionError("write rejected")
        self.committed.append(suggestion)


class FixedGenerator(SuggestionGenerator):
    async def generate(
        self, context: DayContext, reason: Optional[RefreshReason] = None
    ) -> Sequence[CandidateSuggestion]:
        return [
            CandidateSuggestion(title=title, requested_duration=timedelta(minutes=20))
            for title in ("Walk", "Read", "Stretch")
        ]


def _staging(store: Optional[InMemoryCalendarStore] = None):
    store = store or InMemoryCalendarStore()
    scheduler = RefreshScheduler(
        store,
        FixedGenerator(),
        day=DAY,
        config=CONFIG,
        clock=lambda: datetime.combine(DAY, time(9, 0), tzinfo=TZ),
    )
    changes: list[frozenset[str]] = []
    staging = SelectionStaging(scheduler, store, on_change=changes.append)
    return staging, scheduler, store, changes


def setup_function():
    clear_handlers()


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def test_toggle_selects_and_deselects():
    staging, scheduler, _, changes = _staging()

    async def _go():
        await scheduler.force_refresh()
        walk = scheduler.placements[0]
        assert staging.toggle(walk.id)
        selected = staging.selected
        assert staging.toggle(walk.id)
        await scheduler.stop()
        return walk, selected

    walk, selected = asyncio.run(_go())
    assert selected == frozenset({walk.id})
    assert staging.selected == frozenset()
    assert changes == [frozenset({walk.id}), frozenset()]


def test_toggle_stale_id_is_ignored():
    staging, scheduler, _, changes = _staging()

    async def _go():
        await scheduler.force_refresh()
        return staging.toggle("gone")

    assert asyncio.run(_go()) is False
    assert changes == []


def test_prune_drops_withdrawn_ids():
    staging, scheduler, _, _ = _staging()

    async def _go():
        await scheduler.force_refresh()
        walk = scheduler.placements[0]
        staging.toggle(walk.id)
        scheduler.withdraw([walk.id])
        staging.prune()

    asyncio.run(_go())
    assert staging.selected == frozenset()


# ---------------------------------------------------------------------------
# Accepting
# ---------------------------------------------------------------------------

def test_accept_selected_with_empty_selection_accepts_everything():
    staging, scheduler, store, _ = _staging()

    async def _go():
        await scheduler.force_refresh()
        assert len(scheduler.placements) == 3
        accepted = await staging.accept_selected()
        await scheduler.stop()
        return accepted

    accepted = asyncio.run(_go())
    assert [p.title for p in accepted] == ["Walk", "Read", "Stretch"]
    assert store.committed == accepted
    assert scheduler.placements == ()


def test_accept_selected_commits_only_chosen():
    staging, scheduler, store, _ = _staging()

    async def _go():
        await scheduler.force_refresh()
        read = scheduler.placements[1]
        staging.toggle(read.id)
        accepted = await staging.accept_selected()
        await scheduler.stop()
        return accepted

    accepted = asyncio.run(_go())
    assert [p.title for p in accepted] == ["Read"]
    assert [p.title for p in scheduler.placements] == ["Walk", "Stretch"]
    assert staging.selected == frozenset()


def test_accept_all_then_accept_again_is_noop():
    staging, scheduler, store, _ = _staging()

    async def _go():
        await scheduler.force_refresh()
        first = await staging.accept_all()
        second = await staging.accept_all()
        third = await staging.accept_selected()
        await scheduler.stop()
        return first, second, third

    first, second, third = asyncio.run(_go())
    assert len(first) == 3
    assert second == []
    assert third == []
    assert len(store.committed) == 3


def test_accept_schedules_follow_up_with_accepted_reason():
    staging, scheduler, _, _ = _staging()

    async def _go():
        await scheduler.force_refresh()
        await staging.accept_all()
        pending = scheduler.pending.pending
        await scheduler.stop()
        return pending

    assert asyncio.run(_go()) is RefreshReason.ACCEPTED


def test_commit_failure_keeps_suggestion():
    events = []
    register_handler(events.append)
    store = InMemoryCalendarStore(fail_titles=["Read"])
    staging, scheduler, _, _ = _staging(store)

    async def _go():
        await scheduler.force_refresh()
        accepted = await staging.accept_all()
        await scheduler.stop()
        return accepted

    accepted = asyncio.run(_go())
    assert [p.title for p in accepted] == ["Walk", "Stretch"]
    assert [p.title for p in scheduler.placements] == ["Read"]
    assert events[0].operation == "commit"
    assert events[0].context["title"] == "Read"


# ---------------------------------------------------------------------------
# Dismissing
# ---------------------------------------------------------------------------

def test_dismiss_removes_without_commit():
    staging, scheduler, store, _ = _staging()

    async def _go():
        await scheduler.force_refresh()
        walk = scheduler.placements[0]
        staging.toggle(walk.id)
        dismissed = await staging.dismiss(walk.id)
        pending = scheduler.pending.pending
        await scheduler.stop()
        return dismissed, pending

    dismissed, pending = asyncio.run(_go())
    assert dismissed is True
    assert pending is RefreshReason.REJECTED
    assert store.committed == []
    assert [p.title for p in scheduler.placements] == ["Read", "Stretch"]
    assert staging.selected == frozenset()


def test_dismiss_unknown_id():
    staging, scheduler, _, _ = _staging()

    async def _go():
        await scheduler.force_refresh()
        return await staging.dismiss("gone")

    assert asyncio.run(_go()) is False
