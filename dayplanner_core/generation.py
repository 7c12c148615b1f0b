"""Candidate generation helpers: response parsing and a caching wrapper.

The refresh loop ticks every few seconds, far more often than an LLM
should be asked for fresh ideas. CachingSuggestionGenerator sits between
the loop and the real generator and only calls through when something
meaningful changed.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import date, timedelta
from typing import Any, Callable, Optional, Sequence

from .aliases import resolve_energy
from .errors import GeneratorError, ValidationError
from .models import CandidateSuggestion, DayContext, EnergyLevel, RefreshReason
from .ports import SuggestionGenerator

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 30
CACHE_SECONDS = 900


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _strip_code_fence(text: str) -> str:
    """Return the body of a markdown code block, or *text* unchanged."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    body = []
    for line in text.split("\n")[1:]:
        if line.startswith("```"):
            break
        body.append(line)
    return "\n".join(body)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _candidate_from_dict(entry: dict[str, Any]) -> CandidateSuggestion:
    minutes = entry.get("duration_minutes", DEFAULT_DURATION_MINUTES)
    energy_raw = entry.get("energy")
    energy = resolve_energy(str(energy_raw)) if energy_raw else EnergyLevel.DAYLIGHT
    confidence = min(1.0, max(0.0, float(entry.get("confidence", 0.5))))
    weight = entry.get("weight")

    return CandidateSuggestion(
        title=str(entry.get("title", "")),
        requested_duration=timedelta(minutes=float(minutes)),
        energy=energy,
        emoji=str(entry.get("emoji") or ""),
        explanation=str(entry.get("explanation") or ""),
        confidence=confidence,
        weight=float(weight) if weight is not None else None,
        related_goal=_optional_str(entry.get("related_goal")),
        related_pillar=_optional_str(entry.get("related_pillar")),
        reason=_optional_str(entry.get("reason")),
    )


def parse_candidates(text: str) -> list[CandidateSuggestion]:
    """Parse a generator response into candidates.

    Accepts a JSON list or ``{"suggestions": [...]}``, optionally inside a
    markdown code fence. Malformed entries are skipped; an unparseable
    document raises GeneratorError.
    """
    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise GeneratorError("Generator response is not valid JSON", preview=text[:200]) from exc

    if isinstance(data, dict):
        data = data.get("suggestions")
    if not isinstance(data, list):
        raise GeneratorError("Generator response must contain a list of suggestions")

    candidates = []
    for entry in data:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-object suggestion entry: %r", entry)
            continue
        try:
            candidates.append(_candidate_from_dict(entry))
        except (ValidationError, ValueError, TypeError) as exc:
            logger.warning("Skipping malformed suggestion %r: %s", entry.get("title"), exc)
    return candidates


# ---------------------------------------------------------------------------
# Caching wrapper
# ---------------------------------------------------------------------------

class CachingSuggestionGenerator(SuggestionGenerator):
    """Reuse the last generator result until something meaningful changes.

    Calls through when the cache is empty, the day changed, a reason
    other than PERIODIC is given, or the cached result is older than
    *max_age_seconds*. Failures propagate and leave the cache intact.
    """

    def __init__(
        self,
        inner: SuggestionGenerator,
        *,
        max_age_seconds: float = CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._max_age = max_age_seconds
        self._clock = clock
        self._cached: list[CandidateSuggestion] = []
        self._cached_day: Optional[date] = None
        self._fetched_at: Optional[float] = None

    def invalidate(self) -> None:
        self._cached = []
        self._cached_day = None
        self._fetched_at = None

    def _is_stale(self, context: DayContext, reason: Optional[RefreshReason]) -> bool:
        if not self._cached or self._fetched_at is None:
            return True
        if self._cached_day != context.day:
            return True
        if reason is not None and reason is not RefreshReason.PERIODIC:
            return True
        return self._clock() - self._fetched_at > self._max_age

    async def generate(
        self,
        context: DayContext,
        reason: Optional[RefreshReason] = None,
    ) -> Sequence[CandidateSuggestion]:
        if not self._is_stale(context, reason):
            return list(self._cached)

        logger.debug(
            "Requesting fresh suggestions for %s (reason=%s)",
            context.day.isoformat(),
            reason.value if reason else None,
        )
        fresh = list(await self._inner.generate(context, reason))
        self._cached = fresh
        self._cached_day = context.day
        self._fetched_at = self._clock()
        return list(fresh)
