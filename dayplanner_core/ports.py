"""Interfaces for external collaborators (calendar store, suggestion source).

Adapters (Notion, Anthropic) implement these protocols. Core services
depend only on these abstractions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Sequence

from .models import (
    CandidateSuggestion,
    DayContext,
    PlacedSuggestion,
    RefreshReason,
    TimeInterval,
)


class CalendarStore(ABC):
    """Read/write access to the committed calendar."""

    @abstractmethod
    async def current_day_blocks(self, day: date) -> Sequence[TimeInterval]:
        """Return the busy intervals committed on *day*."""

    @abstractmethod
    async def quiet_hour_windows(self, day: date) -> Sequence[TimeInterval]:
        """Return recurring quiet periods resolved to concrete intervals on *day*."""

    @abstractmethod
    async def commit(self, suggestion: PlacedSuggestion) -> None:
        """Persist an accepted suggestion as a committed block."""


class SuggestionGenerator(ABC):
    """Source of untimed activity suggestions (e.g. an LLM)."""

    @abstractmethod
    async def generate(
        self,
        context: DayContext,
        reason: Optional[RefreshReason] = None,
    ) -> Sequence[CandidateSuggestion]:
        """Return candidates for the day, best first. May raise."""
