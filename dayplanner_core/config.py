"""Centralized configuration with validation and defaults.

All environment variables and planner tuning constants are resolved here.
Adapters should use PlannerConfig instead of reading os.environ directly.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta, tzinfo
from pathlib import Path
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigError, ValidationError
from .models import QuietWindow

# Matches 32 hex chars (no dashes) or 8-4-4-4-12 UUID format
_NOTION_ID_RE = re.compile(
    r"^[0-9a-f]{32}$|^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

DEFAULT_QUIET_HOURS = (QuietWindow.parse("22:00", "06:00"),)


def _validate_notion_id(value: str, label: str) -> None:
    """Raise ConfigError if *value* is not a valid Notion ID."""
    if not value:
        raise ConfigError(f"{label} is required (set the corresponding env var)")
    if not _NOTION_ID_RE.match(value):
        raise ConfigError(f"{label} is not a valid Notion ID: {value!r}")


def load_quiet_hours(path: Union[str, Path]) -> tuple[QuietWindow, ...]:
    """Load recurring quiet-hour windows from a YAML file.

    Expected format::

        quiet_hours:
          - start: "22:00"
            end: "06:00"
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read quiet hours file: {path}", path=str(path)) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Quiet hours file is not valid YAML: {path}", path=str(path)) from exc

    entries = data.get("quiet_hours", []) if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigError("quiet_hours must be a list of {start, end} entries", path=str(path))

    windows = []
    for entry in entries:
        if not isinstance(entry, dict) or "start" not in entry or "end" not in entry:
            raise ConfigError(f"Invalid quiet hours entry: {entry!r}", path=str(path))
        try:
            windows.append(QuietWindow.parse(str(entry["start"]), str(entry["end"])))
        except ValidationError as exc:
            raise ConfigError(str(exc), path=str(path)) from exc
    return tuple(windows)


def _resolve_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {name!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class PlannerConfig:
    """Validated configuration for the suggestion placement engine."""

    # Calendar
    timezone: str = "America/Los_Angeles"
    quiet_hours: tuple[QuietWindow, ...] = DEFAULT_QUIET_HOURS

    # Gap and placement rules
    min_gap_minutes: int = 10
    min_duration_minutes: int = 10
    snap_minutes: int = 5
    buffer_minutes: int = 2

    # Refresh cadence
    refresh_interval_seconds: float = 8.0
    follow_up_delay_seconds: float = 2.0
    generator_cache_seconds: int = 900

    # Weighting
    pin_boost: float = 0.3
    pillar_boost: float = 0.2
    feedback_boost: float = 0.1

    # Adapters
    notion_token: str = ""
    calendar_database_id: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"

    @classmethod
    def from_env(cls) -> PlannerConfig:
        """Load config from environment variables.

        Environment variables override the dataclass defaults so that
        tuning constants are defined in exactly one place.
        """
        defaults = cls()
        token = os.environ.get("NOTION_TOKEN") or os.environ.get("NOTION_API_KEY", "")
        quiet_path = os.environ.get("PLANNER_QUIET_HOURS")
        quiet_hours = load_quiet_hours(quiet_path) if quiet_path else defaults.quiet_hours

        return cls(
            timezone=os.environ.get("PLANNER_TIMEZONE", defaults.timezone),
            quiet_hours=quiet_hours,
            min_gap_minutes=_env_int("PLANNER_MIN_GAP_MINUTES", defaults.min_gap_minutes),
            min_duration_minutes=_env_int(
                "PLANNER_MIN_DURATION_MINUTES", defaults.min_duration_minutes
            ),
            snap_minutes=_env_int("PLANNER_SNAP_MINUTES", defaults.snap_minutes),
            buffer_minutes=_env_int("PLANNER_BUFFER_MINUTES", defaults.buffer_minutes),
            refresh_interval_seconds=_env_float(
                "PLANNER_REFRESH_INTERVAL", defaults.refresh_interval_seconds
            ),
            follow_up_delay_seconds=_env_float(
                "PLANNER_FOLLOW_UP_DELAY", defaults.follow_up_delay_seconds
            ),
            generator_cache_seconds=_env_int(
                "PLANNER_GENERATOR_CACHE_SECONDS", defaults.generator_cache_seconds
            ),
            pin_boost=_env_float("PLANNER_PIN_BOOST", defaults.pin_boost),
            pillar_boost=_env_float("PLANNER_PILLAR_BOOST", defaults.pillar_boost),
            feedback_boost=_env_float("PLANNER_FEEDBACK_BOOST", defaults.feedback_boost),
            notion_token=token,
            calendar_database_id=os.environ.get(
                "PLANNER_CALENDAR_DB", defaults.calendar_database_id
            ),
            anthropic_model=os.environ.get(
                "PLANNER_ANTHROPIC_MODEL", defaults.anthropic_model
            ),
        )

    @property
    def tzinfo(self) -> tzinfo:
        return _resolve_timezone(self.timezone)

    @property
    def min_gap(self) -> timedelta:
        return timedelta(minutes=self.min_gap_minutes)

    @property
    def min_duration(self) -> timedelta:
        return timedelta(minutes=self.min_duration_minutes)

    @property
    def snap(self) -> timedelta:
        return timedelta(minutes=self.snap_minutes)

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_minutes)

    def validate(self) -> None:
        """Raise ConfigError if tuning values are out of range."""
        _resolve_timezone(self.timezone)
        if self.min_gap_minutes <= 0:
            raise ConfigError("PLANNER_MIN_GAP_MINUTES must be positive")
        if self.min_duration_minutes <= 0:
            raise ConfigError("PLANNER_MIN_DURATION_MINUTES must be positive")
        if self.snap_minutes <= 0 or 60 % self.snap_minutes != 0:
            raise ConfigError("PLANNER_SNAP_MINUTES must be a positive divisor of 60")
        if self.buffer_minutes < 0:
            raise ConfigError("PLANNER_BUFFER_MINUTES cannot be negative")
        if self.refresh_interval_seconds <= 0:
            raise ConfigError("PLANNER_REFRESH_INTERVAL must be positive")
        if self.follow_up_delay_seconds < 0:
            raise ConfigError("PLANNER_FOLLOW_UP_DELAY cannot be negative")
        if self.generator_cache_seconds < 0:
            raise ConfigError("PLANNER_GENERATOR_CACHE_SECONDS cannot be negative")
        if min(self.pin_boost, self.pillar_boost, self.feedback_boost) < 0:
            raise ConfigError("Weighting boosts cannot be negative")

    def validate_notion(self) -> None:
        """Raise ConfigError if the Notion calendar store cannot be configured."""
        if not self.notion_token:
            raise ConfigError(
                "NOTION_TOKEN or NOTION_API_KEY environment variable is required"
            )
        _validate_notion_id(self.calendar_database_id, "PLANNER_CALENDAR_DB")
