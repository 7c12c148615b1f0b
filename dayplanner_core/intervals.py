"""Primitive operations on half-open time intervals.

Pure functions over TimeInterval. Results are new intervals; inputs are
never mutated.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Optional, Sequence

from .models import TimeInterval


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """True if the two intervals share any time (touching ends do not count)."""
    return a.overlaps(b)


def total_duration(intervals: Iterable[TimeInterval]) -> timedelta:
    return sum((i.duration for i in intervals), timedelta(0))


def subtract_one(base: TimeInterval, cutter: TimeInterval) -> list[TimeInterval]:
    """Remove *cutter* from *base*.

    A cutter fully inside base splits it in two, a partial overlap trims
    one edge, and a disjoint cutter leaves base untouched.
    """
    if not base.overlaps(cutter):
        return [base]

    pieces = []
    if cutter.start > base.start:
        pieces.append(TimeInterval(start=base.start, end=cutter.start))
    if cutter.end < base.end:
        pieces.append(TimeInterval(start=cutter.end, end=base.end))
    return pieces


def subtract(base: TimeInterval, cutters: Sequence[TimeInterval]) -> list[TimeInterval]:
    """Remove every cutter from *base*, returning the remaining pieces in order."""
    remaining = [base]
    for cutter in cutters:
        next_remaining: list[TimeInterval] = []
        for piece in remaining:
            next_remaining.extend(subtract_one(piece, cutter))
        remaining = next_remaining
        if not remaining:
            break
    return sorted(remaining, key=lambda i: i.start)


def merge_adjacent(intervals: Iterable[TimeInterval]) -> list[TimeInterval]:
    """Coalesce overlapping or touching intervals into a sorted disjoint list."""
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    merged: list[TimeInterval] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = TimeInterval(start=last.start, end=interval.end)
        else:
            merged.append(interval)
    return merged


def clip(interval: TimeInterval, bounds: TimeInterval) -> Optional[TimeInterval]:
    """Intersect *interval* with *bounds*, or None if they do not overlap."""
    if not interval.overlaps(bounds):
        return None
    return TimeInterval(
        start=max(interval.start, bounds.start),
        end=min(interval.end, bounds.end),
    )
