"""Selection and staging of placed suggestions.

Tracks which ghost suggestions the user has picked and hands accepted
ones to the calendar store. Reads placements from the RefreshScheduler;
never publishes a recomputed list itself.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from .models import PlacedSuggestion, RefreshReason
from .ports import CalendarStore
from .refresh import RefreshScheduler
from .telemetry import capture_error

logger = logging.getLogger(__name__)


class SelectionStaging:
    """Owns the selection set; delegates commits to the calendar store."""

    def __init__(
        self,
        scheduler: RefreshScheduler,
        store: CalendarStore,
        *,
        on_change: Optional[Callable[[frozenset[str]], None]] = None,
    ) -> None:
        self._scheduler = scheduler
        self._store = store
        self._on_change = on_change
        self._selected: frozenset[str] = frozenset()

    @property
    def selected(self) -> frozenset[str]:
        return self._selected

    def _valid_ids(self) -> set[str]:
        return {p.id for p in self._scheduler.placements}

    def _set_selection(self, selected: Iterable[str]) -> None:
        updated = frozenset(selected) & self._valid_ids()
        if updated == self._selected:
            return
        self._selected = updated
        if self._on_change is not None:
            try:
                self._on_change(updated)
            except Exception as exc:
                capture_error(exc, source="selection", operation="notify")

    def prune(self) -> None:
        """Drop selected ids that are no longer published."""
        self._set_selection(self._selected)

    def clear(self) -> None:
        self._set_selection(())

    def toggle(self, suggestion_id: str) -> bool:
        """Flip selection of *suggestion_id*. Returns False for unknown ids."""
        if suggestion_id not in self._valid_ids():
            logger.debug("Ignoring toggle for stale suggestion %s", suggestion_id)
            return False
        self._set_selection(self._selected ^ {suggestion_id})
        return True

    async def accept_all(self) -> list[PlacedSuggestion]:
        """Commit every placed suggestion."""
        return await self._accept(list(self._scheduler.placements))

    async def accept_selected(self) -> list[PlacedSuggestion]:
        """Commit the selected suggestions, or everything when nothing is selected.

        An empty selection means "no explicit preference", not "accept nothing".
        """
        placements = list(self._scheduler.placements)
        chosen = [p for p in placements if p.id in self._selected]
        return await self._accept(chosen or placements)

    async def dismiss(self, suggestion_id: str) -> bool:
        """Drop one suggestion without committing it. Returns False for unknown ids."""
        removed = self._scheduler.withdraw([suggestion_id])
        if not removed:
            logger.debug("Ignoring dismiss for stale suggestion %s", suggestion_id)
            return False
        self.prune()
        self._scheduler.schedule_follow_up(RefreshReason.REJECTED)
        logger.info("Dismissed suggestion %r", removed[0].title)
        return True

    async def _accept(self, suggestions: Sequence[PlacedSuggestion]) -> list[PlacedSuggestion]:
        if not suggestions:
            return []

        committed: list[PlacedSuggestion] = []
        for suggestion in suggestions:
            try:
                await self._store.commit(suggestion)
            except Exception as exc:
                capture_error(
                    exc,
                    source="selection",
                    operation="commit",
                    context={"suggestion_id": suggestion.id, "title": suggestion.title},
                )
                continue
            committed.append(suggestion)

        if committed:
            self._scheduler.withdraw([s.id for s in committed])
            self._set_selection(self._selected - {s.id for s in committed})
            self._scheduler.schedule_follow_up(RefreshReason.ACCEPTED)
            logger.info("Accepted %d suggestion(s)", len(committed))
        return committed
