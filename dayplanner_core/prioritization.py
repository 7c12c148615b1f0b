"""Suggestion weighting: order candidates before placement.

The placement engine is greedy in input order, so the order decides who
gets the best gaps. Scores combine the generator's own weight with boosts
for pinned goals, emphasized pillars and positive feedback, scaled by
confidence:

    score = (weight + goal_boost + pillar_boost + feedback_boost) * confidence

Each boost leaves a short annotation in the candidate's reason so the
UI can explain why a suggestion ranked where it did.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Sequence

from .models import CandidateSuggestion

logger = logging.getLogger(__name__)

PIN_BOOST = 0.3
PILLAR_BOOST = 0.2
FEEDBACK_BOOST = 0.1
BADGE_MAX_LENGTH = 18


# ---------------------------------------------------------------------------
# Inputs and outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeedbackStats:
    """Running thumbs-up / thumbs-down tally for one goal or pillar."""

    positive: int = 0
    negative: int = 0

    def register(self, positive: bool) -> FeedbackStats:
        if positive:
            return replace(self, positive=self.positive + 1)
        return replace(self, negative=self.negative + 1)

    @property
    def total(self) -> int:
        return self.positive + self.negative

    @property
    def net_score(self) -> float:
        """(positive - negative) / total, in [-1, 1]; 0 with no feedback."""
        if not self.total:
            return 0.0
        return (self.positive - self.negative) / self.total

    @property
    def has_positive_signal(self) -> bool:
        return self.net_score > 0


def _with_feedback(
    stats: Mapping[str, FeedbackStats], key: Optional[str], positive: bool
) -> dict[str, FeedbackStats]:
    updated = dict(stats)
    if key:
        updated[key] = updated.get(key, FeedbackStats()).register(positive)
    return updated


@dataclass(frozen=True)
class SuggestionPreferences:
    """User emphasis that nudges ranking."""

    pinned_goals: frozenset[str] = field(default_factory=frozenset)
    emphasized_pillars: frozenset[str] = field(default_factory=frozenset)
    goal_feedback: Mapping[str, FeedbackStats] = field(default_factory=dict)
    pillar_feedback: Mapping[str, FeedbackStats] = field(default_factory=dict)

    def toggle_goal(self, goal: str) -> SuggestionPreferences:
        return replace(self, pinned_goals=self.pinned_goals ^ {goal})

    def toggle_pillar(self, pillar: str) -> SuggestionPreferences:
        return replace(self, emphasized_pillars=self.emphasized_pillars ^ {pillar})

    def record_feedback(
        self,
        *,
        goal: Optional[str] = None,
        pillar: Optional[str] = None,
        positive: bool = True,
    ) -> SuggestionPreferences:
        """Tally one piece of feedback against a goal and/or pillar."""
        return replace(
            self,
            goal_feedback=_with_feedback(self.goal_feedback, goal, positive),
            pillar_feedback=_with_feedback(self.pillar_feedback, pillar, positive),
        )


@dataclass(frozen=True)
class WeightedSuggestion:
    """Scoring breakdown for a single candidate."""

    candidate: CandidateSuggestion
    base: float
    goal_boost: float
    pillar_boost: float
    feedback_boost: float
    score: float


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def _short(title: str, max_length: int = BADGE_MAX_LENGTH) -> str:
    title = title.strip()
    if len(title) <= max_length:
        return title
    return title[: max_length - 1].rstrip() + "…"


def _combined_reason(base: Optional[str], additions: Sequence[str]) -> Optional[str]:
    parts = [base] if base else []
    parts.extend(additions)
    return " · ".join(parts) if parts else None


def _feedback_boost(
    candidate: CandidateSuggestion,
    preferences: SuggestionPreferences,
    boost: float,
) -> tuple[float, Optional[str]]:
    """Average positive feedback strength across the candidate's goal and pillar."""
    strengths = []
    labels = []
    for key, stats_by_key in (
        (candidate.related_goal, preferences.goal_feedback),
        (candidate.related_pillar, preferences.pillar_feedback),
    ):
        stats = stats_by_key.get(key) if key else None
        if stats is None or not stats.has_positive_signal:
            continue
        strengths.append(min(1.0, stats.net_score))
        labels.append(_short(key))

    if not strengths:
        return 0.0, None
    return boost * sum(strengths) / len(strengths), f"feedback: {', '.join(labels)}"


def score_candidate(
    candidate: CandidateSuggestion,
    preferences: SuggestionPreferences,
    *,
    pin_boost: float = PIN_BOOST,
    pillar_boost: float = PILLAR_BOOST,
    feedback_boost: float = FEEDBACK_BOOST,
) -> WeightedSuggestion:
    """Score one candidate and annotate its reason with any boosts applied."""
    base = candidate.weight or 0.0
    annotations = []

    goal = 0.0
    if candidate.related_goal and candidate.related_goal in preferences.pinned_goals:
        goal = pin_boost
        annotations.append(f"pinned: {_short(candidate.related_goal)}")

    pillar = 0.0
    if candidate.related_pillar and candidate.related_pillar in preferences.emphasized_pillars:
        pillar = pillar_boost
        annotations.append(f"pillar: {_short(candidate.related_pillar)}")

    feedback, note = _feedback_boost(candidate, preferences, feedback_boost)
    if note:
        annotations.append(note)

    score = (base + goal + pillar + feedback) * candidate.confidence
    updated = replace(
        candidate,
        weight=score,
        reason=_combined_reason(candidate.reason or candidate.explanation, annotations),
    )
    return WeightedSuggestion(
        candidate=updated,
        base=base,
        goal_boost=goal,
        pillar_boost=pillar,
        feedback_boost=feedback,
        score=score,
    )


def prioritize(
    candidates: Sequence[CandidateSuggestion],
    preferences: Optional[SuggestionPreferences] = None,
    *,
    pin_boost: float = PIN_BOOST,
    pillar_boost: float = PILLAR_BOOST,
    feedback_boost: float = FEEDBACK_BOOST,
) -> list[CandidateSuggestion]:
    """Return candidates sorted best first (stable for equal scores)."""
    if not candidates:
        return []
    preferences = preferences or SuggestionPreferences()
    weighted = [
        score_candidate(
            c,
            preferences,
            pin_boost=pin_boost,
            pillar_boost=pillar_boost,
            feedback_boost=feedback_boost,
        )
        for c in candidates
    ]
    weighted.sort(key=lambda w: w.score, reverse=True)
    if logger.isEnabledFor(logging.DEBUG):
        for w in weighted[:3]:
            logger.debug(
                "Top suggestion %r score=%.3f (base=%.2f goal=%.2f pillar=%.2f feedback=%.2f)",
                w.candidate.title,
                w.score,
                w.base,
                w.goal_boost,
                w.pillar_boost,
                w.feedback_boost,
            )
    return [w.candidate for w in weighted]
