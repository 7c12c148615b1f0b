"""Placement engine: fit untimed candidates into a day's free gaps.

Greedy, in candidate order. Each placement consumes capacity from the gap
it lands in, so later candidates see what is left. Candidates that find
no room are omitted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from .models import CandidateSuggestion, PlacedSuggestion, TimeInterval, new_suggestion_id

logger = logging.getLogger(__name__)

MIN_DURATION = timedelta(minutes=10)
SNAP = timedelta(minutes=5)
BUFFER = timedelta(minutes=2)


def snap_up(moment: datetime, step: timedelta = SNAP) -> datetime:
    """Round *moment* forward to the next multiple of *step* past the hour.

    Seconds are discarded first, so 09:02:30 snaps to 09:05 and 09:05:00
    stays put.
    """
    step_minutes = int(step.total_seconds() // 60)
    floored = moment.replace(second=0, microsecond=0)
    remainder = floored.minute % step_minutes
    if remainder == 0:
        return moment if floored == moment else floored + step
    return floored + timedelta(minutes=step_minutes - remainder)


def _gap_order(gaps: Sequence[TimeInterval], desired: timedelta) -> list[int]:
    """Indexes of gaps to try: full-fit gaps first, then the rest, each chronological."""
    full = [i for i, g in enumerate(gaps) if g.duration >= desired]
    partial = [i for i, g in enumerate(gaps) if g.duration < desired]
    return full + partial


def _first_conflict(
    interval: TimeInterval,
    placed: Sequence[PlacedSuggestion],
) -> Optional[PlacedSuggestion]:
    for existing in placed:
        if existing.interval.overlaps(interval):
            return existing
    return None


def _place_in_gap(
    candidate: CandidateSuggestion,
    gap: TimeInterval,
    placed: Sequence[PlacedSuggestion],
    *,
    now: Optional[datetime],
    min_duration: timedelta,
    snap: timedelta,
    buffer: timedelta,
) -> Optional[tuple[TimeInterval, timedelta]]:
    """Try to fit *candidate* into *gap*.

    Returns (interval, buffer_used) on success, or None when the gap has no
    usable room left for this candidate.
    """
    anchor = gap.start if now is None else max(gap.start, now)
    desired = max(min_duration, candidate.requested_duration)

    while True:
        start = snap_up(anchor, snap)
        if start >= gap.end:
            return None
        available = gap.end - start
        if available < min_duration:
            return None

        reserve = buffer if available - desired > buffer else timedelta(0)
        length = min(desired, available - reserve)
        if length < min_duration:
            return None

        interval = TimeInterval(start=start, end=start + length)
        conflict = _first_conflict(interval, placed)
        if conflict is None:
            return interval, reserve
        # Retry after the suggestion already sitting here
        anchor = max(anchor, conflict.end)


def place(
    candidates: Sequence[CandidateSuggestion],
    gaps: Sequence[TimeInterval],
    *,
    now: Optional[datetime] = None,
    min_duration: timedelta = MIN_DURATION,
    snap: timedelta = SNAP,
    buffer: timedelta = BUFFER,
    id_factory: Callable[[], str] = new_suggestion_id,
) -> list[PlacedSuggestion]:
    """Assign a start and duration to each candidate that fits.

    Args:
        candidates: Suggestions in priority order.
        gaps: Disjoint free intervals for the day.
        now: Current instant when placing on today; placements never
            start before it. None for other days.
        min_duration: Shortest placement allowed; longer requests may be
            shrunk down to this.
        snap: Start times are rounded forward to this grid.
        buffer: Breathing room reserved after a placement when the gap
            has more than enough space.
        id_factory: Source of fresh suggestion ids.

    Returns:
        Placed suggestions sorted by start time.
    """
    remaining = sorted(gaps, key=lambda g: g.start)
    placed: list[PlacedSuggestion] = []

    for candidate in candidates:
        if not remaining:
            break
        desired = max(min_duration, candidate.requested_duration)
        exhausted: set[int] = set()
        result: Optional[PlacedSuggestion] = None

        for index in _gap_order(remaining, desired):
            gap = remaining[index]
            outcome = _place_in_gap(
                candidate,
                gap,
                placed,
                now=now,
                min_duration=min_duration,
                snap=snap,
                buffer=buffer,
            )
            if outcome is None:
                exhausted.add(index)
                continue

            interval, reserve = outcome
            result = PlacedSuggestion(
                candidate=candidate,
                start=interval.start,
                duration=interval.duration,
                id=id_factory(),
            )
            consumed_end = interval.end + reserve
            if gap.end - consumed_end >= min_duration:
                remaining[index] = TimeInterval(start=consumed_end, end=gap.end)
            else:
                exhausted.add(index)
            break

        remaining = [g for i, g in enumerate(remaining) if i not in exhausted]
        if result is None:
            logger.debug("No room for %r", candidate.title)
            continue
        placed.append(result)

    placed.sort(key=lambda p: p.start)
    logger.debug("Placed %d of %d candidates", len(placed), len(candidates))
    return placed
