"""Domain models for the planner core."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Optional, Sequence

from .errors import ValidationError


class EnergyLevel(str, Enum):
    SUNRISE = "sunrise"  # sharp focus
    DAYLIGHT = "daylight"  # steady work
    MOONLIGHT = "moonlight"  # gentle flow


class RefreshReason(str, Enum):
    PERIODIC = "periodic"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EDITED_BLOCK = "edited_block"
    PIN_CHANGE = "pin_change"
    FEEDBACK = "feedback"
    EXTERNAL_EVENT = "external_event"
    DAY_CHANGE = "day_change"
    FORCED = "forced"


def new_suggestion_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValidationError(
                "TimeInterval end must be after start",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def overlaps(self, other: TimeInterval) -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: TimeInterval) -> bool:
        return self.start <= other.start and other.end <= self.end


@dataclass(frozen=True)
class QuietWindow:
    """Recurring daily window in which nothing may be suggested.

    A window whose end is at or before its start wraps past midnight
    (22:00-06:00 covers both the early morning and the late evening of
    any given date).
    """

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start == self.end:
            raise ValidationError("QuietWindow start and end cannot be equal")

    @classmethod
    def parse(cls, start: str, end: str) -> QuietWindow:
        """Build a window from HH:MM strings."""
        try:
            return cls(start=time.fromisoformat(start), end=time.fromisoformat(end))
        except ValueError as exc:
            raise ValidationError(
                f"Invalid quiet window {start!r}-{end!r}", start=start, end=end
            ) from exc

    @property
    def wraps_midnight(self) -> bool:
        return self.end < self.start

    def resolve(self, day: date, tz: Optional[tzinfo] = None) -> list[TimeInterval]:
        """Return the concrete intervals this window covers on *day*."""
        day_start = datetime.combine(day, time.min, tzinfo=tz)
        next_day = day_start + timedelta(days=1)
        start = datetime.combine(day, self.start, tzinfo=tz)
        end = datetime.combine(day, self.end, tzinfo=tz)
        if not self.wraps_midnight:
            return [TimeInterval(start=start, end=end)]

        intervals = []
        if end > day_start:
            intervals.append(TimeInterval(start=day_start, end=end))
        if next_day > start:
            intervals.append(TimeInterval(start=start, end=next_day))
        return intervals

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


@dataclass(frozen=True)
class CandidateSuggestion:
    """Untimed activity proposed by the suggestion generator."""

    title: str
    requested_duration: timedelta
    energy: EnergyLevel = EnergyLevel.DAYLIGHT
    emoji: str = ""
    explanation: str = ""
    confidence: float = 0.5
    weight: Optional[float] = None
    related_goal: Optional[str] = None
    related_pillar: Optional[str] = None
    reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValidationError("CandidateSuggestion title cannot be empty")
        if self.requested_duration <= timedelta(0):
            raise ValidationError(
                "CandidateSuggestion requested_duration must be positive",
                title=self.title,
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(
                "CandidateSuggestion confidence must be between 0 and 1",
                title=self.title,
            )


@dataclass(frozen=True)
class PlacedSuggestion:
    """A candidate with a concrete start and (possibly shrunk) duration."""

    candidate: CandidateSuggestion
    start: datetime
    duration: timedelta
    id: str = field(default_factory=new_suggestion_id)

    def __post_init__(self) -> None:
        if self.duration <= timedelta(0):
            raise ValidationError(
                "PlacedSuggestion duration must be positive",
                title=self.candidate.title,
            )

    @property
    def title(self) -> str:
        return self.candidate.title

    @property
    def energy(self) -> EnergyLevel:
        return self.candidate.energy

    @property
    def end(self) -> datetime:
        return self.start + self.duration

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start, end=self.end)

    def with_id(self, suggestion_id: str) -> PlacedSuggestion:
        return replace(self, id=suggestion_id)


@dataclass(frozen=True)
class DayContext:
    """Summary of a day handed to the suggestion generator."""

    day: date
    blocks: Sequence[TimeInterval] = ()
    gaps: Sequence[TimeInterval] = ()
    reason: Optional[RefreshReason] = None

    @property
    def free_minutes(self) -> int:
        return sum(g.duration_minutes for g in self.gaps)
