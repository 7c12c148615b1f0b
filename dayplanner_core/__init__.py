"""Core logic for opportunistic suggestion placement ("ghost scheduling").

Adapters (Notion, Anthropic, UI shells) should call into this package
instead of implementing placement or refresh decisions directly.
"""

from .aliases import ENERGY_ALIASES, resolve_energy
from .config import PlannerConfig, load_quiet_hours
from .errors import (
    ConfigError,
    DayPlannerCoreError,
    DependencyError,
    GeneratorError,
    ValidationError,
)
from .fingerprint import fingerprint, has_changed, reconcile
from .gaps import compute_gaps, day_bounds, resolve_quiet_windows
from .generation import CachingSuggestionGenerator, parse_candidates
from .intervals import merge_adjacent, overlaps, subtract, total_duration
from .models import (
    CandidateSuggestion,
    DayContext,
    EnergyLevel,
    PlacedSuggestion,
    QuietWindow,
    RefreshReason,
    TimeInterval,
)
from .placement import place, snap_up
from .ports import CalendarStore, SuggestionGenerator
from .prioritization import FeedbackStats, SuggestionPreferences, prioritize
from .refresh import PendingReason, RefreshOutcome, RefreshScheduler, RefreshState
from .selection import SelectionStaging
from .services import GhostPlanner, PlannerEvent, PlannerEventKind
from .telemetry import ErrorEvent, capture_error, recent_errors, register_handler

__all__ = [
    "CachingSuggestionGenerator",
    "CalendarStore",
    "CandidateSuggestion",
    "ConfigError",
    "DayContext",
    "DayPlannerCoreError",
    "DependencyError",
    "ENERGY_ALIASES",
    "EnergyLevel",
    "ErrorEvent",
    "FeedbackStats",
    "GeneratorError",
    "GhostPlanner",
    "PendingReason",
    "PlacedSuggestion",
    "PlannerConfig",
    "PlannerEvent",
    "PlannerEventKind",
    "QuietWindow",
    "RefreshOutcome",
    "RefreshReason",
    "RefreshScheduler",
    "RefreshState",
    "SelectionStaging",
    "SuggestionGenerator",
    "SuggestionPreferences",
    "TimeInterval",
    "ValidationError",
    "capture_error",
    "compute_gaps",
    "day_bounds",
    "fingerprint",
    "has_changed",
    "load_quiet_hours",
    "merge_adjacent",
    "overlaps",
    "place",
    "parse_candidates",
    "prioritize",
    "recent_errors",
    "reconcile",
    "register_handler",
    "resolve_energy",
    "resolve_quiet_windows",
    "snap_up",
    "subtract",
    "total_duration",
]
