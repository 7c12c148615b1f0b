"""Suggestion generator backed by the Anthropic Messages API."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional, Sequence

from anthropic import Anthropic

from ..config import PlannerConfig
from ..errors import DependencyError, GeneratorError
from ..generation import parse_candidates
from ..models import CandidateSuggestion, DayContext, RefreshReason
from ..ports import SuggestionGenerator

logger = logging.getLogger(__name__)

MAX_TOKENS = 1200
MAX_SUGGESTIONS = 6

SYSTEM_PROMPT = """You are a gentle day-planning assistant.

Given a summary of someone's day, propose a few small activities that
would fit into their free time. Favour variety: mix focused work, movement,
rest and personal care. Never propose anything longer than the largest
free gap.

## Energy tags
- sunrise: sharp focus, demanding work
- daylight: steady, sustained work
- moonlight: gentle, low-energy activities

## Your Response Format
You MUST respond with valid JSON only. No markdown, no explanation, just JSON:

[
  {
    "title": "Short activity name",
    "duration_minutes": 30,
    "energy": "sunrise|daylight|moonlight",
    "emoji": "🌊",
    "explanation": "One sentence on why this fits now",
    "confidence": 0.8,
    "weight": 0.5
  }
]

Order suggestions from most to least valuable."""


def build_prompt(context: DayContext, reason: Optional[RefreshReason] = None) -> str:
    """Describe the day for the model."""
    lines = [f"Date: {context.day.isoformat()}"]

    if context.blocks:
        lines.append("\n## Committed blocks")
        lines.extend(f"- {b.start:%H:%M}-{b.end:%H:%M}" for b in context.blocks)
    else:
        lines.append("\nNo committed blocks yet.")

    if context.gaps:
        lines.append("\n## Free gaps")
        lines.extend(
            f"- {g.start:%H:%M}-{g.end:%H:%M} ({g.duration_minutes} min)" for g in context.gaps
        )
    lines.append(f"\nTotal free time: {context.free_minutes} minutes")

    if reason is not None:
        lines.append(f"Refresh reason: {reason.value}")

    lines.append(f"\nPropose up to {MAX_SUGGESTIONS} activities. Remember: respond with JSON only.")
    return "\n".join(lines)


class AnthropicSuggestionGenerator(SuggestionGenerator):
    """Ask Claude for untimed activity suggestions."""

    def __init__(self, client: Anthropic, model: str, *, max_tokens: int = MAX_TOKENS) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

    @classmethod
    def from_config(cls, config: PlannerConfig) -> "AnthropicSuggestionGenerator":
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise DependencyError("ANTHROPIC_API_KEY environment variable is required")
        return cls(Anthropic(api_key=api_key), config.anthropic_model)

    async def generate(
        self,
        context: DayContext,
        reason: Optional[RefreshReason] = None,
    ) -> Sequence[CandidateSuggestion]:
        if not context.gaps:
            return []

        prompt = build_prompt(context, reason)

        def _run_create():
            return self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )

        response = await asyncio.to_thread(_run_create)
        if not response.content:
            raise GeneratorError("Empty response from suggestion model", model=self._model)

        text = response.content[0].text.strip()
        logger.debug("Suggestion model response: %s", text[:500])
        return parse_candidates(text)[:MAX_SUGGESTIONS]
