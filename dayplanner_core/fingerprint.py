"""Identity-preserving diffing between refresh passes.

Two placements with the same fingerprint are the same suggestion as far
as the user is concerned, even when computed in different passes. Ids
carried over through reconcile() keep selection state and avoid churn.
"""

from __future__ import annotations

from typing import Sequence

from .models import PlacedSuggestion


def fingerprint(suggestion: PlacedSuggestion) -> str:
    """Return ``title|duration_seconds|energy|start_epoch_minutes``."""
    duration_key = round(suggestion.duration.total_seconds())
    start_key = int(suggestion.start.timestamp()) // 60
    return (
        f"{suggestion.title.lower()}|{duration_key}|"
        f"{suggestion.energy.value}|{start_key}"
    )


def reconcile(
    previous: Sequence[PlacedSuggestion],
    next_placements: Sequence[PlacedSuggestion],
) -> list[PlacedSuggestion]:
    """Carry ids over from *previous* onto matching items in *next_placements*.

    Items whose fingerprint was not seen before keep their fresh id. When
    several previous items share a fingerprint, the earliest one wins and
    each previous id is handed out at most once.
    """
    known: dict[str, list[str]] = {}
    for item in previous:
        known.setdefault(fingerprint(item), []).append(item.id)

    result = []
    for item in next_placements:
        ids = known.get(fingerprint(item))
        if ids:
            result.append(item.with_id(ids.pop(0)))
        else:
            result.append(item)
    return result


def has_changed(
    previous: Sequence[PlacedSuggestion],
    next_placements: Sequence[PlacedSuggestion],
) -> bool:
    """Ordered comparison of fingerprints.

    A reshuffle with the same multiset of fingerprints still counts as a
    change because the layout moved.
    """
    if len(previous) != len(next_placements):
        return True
    return any(
        fingerprint(a) != fingerprint(b) for a, b in zip(previous, next_placements)
    )
