"""Tests for dayplanner_core domain models and energy aliases."""

from datetime import date, datetime, timedelta

import pytest

from dayplanner_core.aliases import resolve_energy
from dayplanner_core.errors import ValidationError
from dayplanner_core.models import (
    CandidateSuggestion,
    DayContext,
    EnergyLevel,
    PlacedSuggestion,
    TimeInterval,
)


def _candidate(**kwargs) -> CandidateSuggestion:
    fields = {"title": "Walk", "requested_duration": timedelta(minutes=20)}
    fields.update(kwargs)
    return CandidateSuggestion(**fields)


def test_candidate_validation():
    with pytest.raises(ValidationError):
        _candidate(title="  ")
    with pytest.raises(ValidationError):
        _candidate(requested_duration=timedelta(0))
    with pytest.raises(ValidationError):
        _candidate(confidence=1.5)


def test_placed_suggestion_derived_fields():
    start = datetime(2026, 3, 2, 9, 0)
    placed = PlacedSuggestion(
        candidate=_candidate(energy=EnergyLevel.SUNRISE),
        start=start,
        duration=timedelta(minutes=15),
    )
    assert placed.end == start + timedelta(minutes=15)
    assert placed.interval == TimeInterval(start=start, end=placed.end)
    assert placed.energy is EnergyLevel.SUNRISE
    assert placed.id
    assert placed.with_id("abc").id == "abc"
    assert placed.with_id("abc").start == start


def test_placed_ids_are_unique():
    start = datetime(2026, 3, 2, 9, 0)
    a = PlacedSuggestion(candidate=_candidate(), start=start, duration=timedelta(minutes=10))
    b = PlacedSuggestion(candidate=_candidate(), start=start, duration=timedelta(minutes=10))
    assert a.id != b.id


def test_day_context_free_minutes():
    gaps = (
        TimeInterval(start=datetime(2026, 3, 2, 9), end=datetime(2026, 3, 2, 10)),
        TimeInterval(start=datetime(2026, 3, 2, 11), end=datetime(2026, 3, 2, 11, 25)),
    )
    assert DayContext(day=date(2026, 3, 2), gaps=gaps).free_minutes == 85


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("sunrise", EnergyLevel.SUNRISE),
        ("Moonlight", EnergyLevel.MOONLIGHT),
        ("🌙", EnergyLevel.MOONLIGHT),
        ("☀️", EnergyLevel.DAYLIGHT),
        (" High ", EnergyLevel.SUNRISE),
        ("steady work", EnergyLevel.DAYLIGHT),
    ],
)
def test_resolve_energy(raw, expected):
    assert resolve_energy(raw) is expected


def test_resolve_energy_unknown():
    with pytest.raises(ValueError):
        resolve_energy("volcanic")
