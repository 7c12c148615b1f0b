"""Planner facade wiring the refresh loop, selection and change notifications.

The presentation layer talks only to GhostPlanner: it reads immutable
snapshots, subscribes to change events and calls the user-facing
operations. It holds no scheduling logic of its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from .config import PlannerConfig
from .generation import CachingSuggestionGenerator
from .models import PlacedSuggestion, RefreshReason
from .ports import CalendarStore, SuggestionGenerator
from .prioritization import SuggestionPreferences
from .refresh import RefreshOutcome, RefreshScheduler, RefreshState
from .selection import SelectionStaging
from .telemetry import capture_error

logger = logging.getLogger(__name__)


class PlannerEventKind(str, Enum):
    PLACEMENTS = "placements"
    SELECTION = "selection"


@dataclass(frozen=True)
class PlannerEvent:
    """Snapshot delivered to listeners after every publish or selection change."""

    kind: PlannerEventKind
    placements: tuple[PlacedSuggestion, ...]
    selected: frozenset[str] = field(default_factory=frozenset)


Listener = Callable[[PlannerEvent], None]


class GhostPlanner:
    """Coordinator for opportunistic suggestion placement on one day."""

    def __init__(
        self,
        store: CalendarStore,
        generator: SuggestionGenerator,
        *,
        day: Optional[date] = None,
        config: Optional[PlannerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        cache_suggestions: bool = True,
    ) -> None:
        self.config = config or PlannerConfig()
        if cache_suggestions:
            generator = CachingSuggestionGenerator(
                generator, max_age_seconds=self.config.generator_cache_seconds
            )
        self._preferences = SuggestionPreferences()
        self._listeners: list[Listener] = []

        if day is None:
            day = (clock() if clock else datetime.now(self.config.tzinfo)).date()
        self.scheduler = RefreshScheduler(
            store,
            generator,
            day=day,
            config=self.config,
            clock=clock,
            preferences=lambda: self._preferences,
            on_publish=self._handle_publish,
        )
        self.selection = SelectionStaging(
            self.scheduler, store, on_change=self._handle_selection
        )

    # ------------------------------------------------------------------
    # Snapshots and subscriptions
    # ------------------------------------------------------------------

    @property
    def day(self) -> date:
        return self.scheduler.day

    @property
    def state(self) -> RefreshState:
        return self.scheduler.state

    @property
    def preferences(self) -> SuggestionPreferences:
        return self._preferences

    def current_placements(self) -> tuple[PlacedSuggestion, ...]:
        return self.scheduler.placements

    def selected_ids(self) -> frozenset[str]:
        return self.selection.selected

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: PlannerEventKind) -> None:
        event = PlannerEvent(
            kind=kind,
            placements=self.scheduler.placements,
            selected=self.selection.selected,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                capture_error(exc, source="planner", operation="notify", context={"kind": kind.value})

    def _handle_publish(self, placements: Sequence[PlacedSuggestion]) -> None:
        self.selection.prune()
        self._emit(PlannerEventKind.PLACEMENTS)

    def _handle_selection(self, selected: frozenset[str]) -> None:
        self._emit(PlannerEventKind.SELECTION)

    # ------------------------------------------------------------------
    # Selection and staging
    # ------------------------------------------------------------------

    def toggle_selection(self, suggestion_id: str) -> bool:
        return self.selection.toggle(suggestion_id)

    async def accept_all(self) -> list[PlacedSuggestion]:
        return await self.selection.accept_all()

    async def accept_selected(self) -> list[PlacedSuggestion]:
        return await self.selection.accept_selected()

    async def dismiss(self, suggestion_id: str) -> bool:
        return await self.selection.dismiss(suggestion_id)

    # ------------------------------------------------------------------
    # Refresh control
    # ------------------------------------------------------------------

    async def start_refresh_loop(self, *, force: bool = True) -> None:
        await self.scheduler.start(force=force)

    async def stop_refresh_loop(self) -> None:
        await self.scheduler.stop()
        self.selection.clear()

    async def pause_refresh_loop(self) -> None:
        await self.scheduler.pause()

    async def force_refresh(self) -> Optional[RefreshOutcome]:
        return await self.scheduler.force_refresh()

    async def switch_day(self, day: date) -> None:
        """Move to another day; placements and selection start over."""
        if day == self.scheduler.day:
            return
        self.selection.clear()
        await self.scheduler.switch_day(day)

    async def notify_external_edit(self) -> Optional[RefreshOutcome]:
        """Call after the calendar changed outside this engine."""
        return await self.scheduler.force_refresh(RefreshReason.EDITED_BLOCK)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def toggle_goal_pin(self, goal: str) -> None:
        self._preferences = self._preferences.toggle_goal(goal)
        self.scheduler.request(RefreshReason.PIN_CHANGE)

    def toggle_pillar_emphasis(self, pillar: str) -> None:
        self._preferences = self._preferences.toggle_pillar(pillar)
        self.scheduler.request(RefreshReason.PIN_CHANGE)

    def record_feedback(
        self,
        *,
        goal: Optional[str] = None,
        pillar: Optional[str] = None,
        positive: bool = True,
    ) -> None:
        """Tally feedback for a goal and/or pillar and ask the next pass for fresh ideas.

        Goals and pillars with a net positive tally rank higher from then on.
        """
        self._preferences = self._preferences.record_feedback(
            goal=goal, pillar=pillar, positive=positive
        )
        self.scheduler.request(RefreshReason.FEEDBACK)
