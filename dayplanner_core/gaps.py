"""Gap calculation: free time left in a day after commitments and quiet hours.

Pure functions. Adapters provide the committed blocks and resolved quiet
windows through CalendarStore.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Sequence

from .intervals import clip, subtract
from .models import QuietWindow, TimeInterval

logger = logging.getLogger(__name__)

MIN_GAP = timedelta(minutes=10)


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> TimeInterval:
    """Return [start of day, start of next day) for *day*."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return TimeInterval(start=start, end=start + timedelta(days=1))


def resolve_quiet_windows(
    windows: Sequence[QuietWindow],
    day: date,
    tz: Optional[tzinfo] = None,
) -> list[TimeInterval]:
    """Resolve recurring quiet windows into concrete intervals on *day*."""
    resolved: list[TimeInterval] = []
    for window in windows:
        resolved.extend(window.resolve(day, tz))
    return sorted(resolved, key=lambda i: i.start)


def compute_gaps(
    day: date,
    blocks: Sequence[TimeInterval],
    quiet_windows: Sequence[TimeInterval],
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    min_gap: timedelta = MIN_GAP,
) -> list[TimeInterval]:
    """Return the ordered, disjoint free intervals of *day*.

    Args:
        day: The calendar date to analyse.
        blocks: Committed busy intervals (any order, may spill past the day).
        quiet_windows: Quiet hours already resolved for this date.
        now: Current instant. When it falls inside the day, gaps start no
            earlier than it.
        tz: Timezone used to build the day boundary.
        min_gap: Gaps shorter than this are dropped.

    Returns:
        Gaps sorted by start, each at least min_gap long, never before
        *now* for the current day and never outside the day.
    """
    bounds = day_bounds(day, tz)
    cursor = bounds.start
    if now is not None and bounds.start <= now < bounds.end:
        cursor = now
    day_end = bounds.end

    raw: list[TimeInterval] = []
    for block in sorted(blocks, key=lambda b: b.start):
        block_start = max(block.start, bounds.start)
        if block_start > cursor + min_gap:
            raw.append(TimeInterval(start=cursor, end=min(block_start, day_end)))
        cursor = max(cursor, min(block.end, day_end))
        if cursor >= day_end:
            break
    if day_end > cursor + min_gap:
        raw.append(TimeInterval(start=cursor, end=day_end))

    quiet = [c for c in (clip(w, bounds) for w in quiet_windows) if c is not None]
    gaps: list[TimeInterval] = []
    for gap in raw:
        gaps.extend(piece for piece in subtract(gap, quiet) if piece.duration >= min_gap)
    gaps.sort(key=lambda g: g.start)

    logger.debug(
        "Computed %d gaps for %s (%d blocks, %d quiet windows)",
        len(gaps),
        day.isoformat(),
        len(blocks),
        len(quiet),
    )
    return gaps
