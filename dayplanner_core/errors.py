"""Exception taxonomy for the planner core.

Every DayPlannerCoreError carries keyword context (ids, dates, raw values)
and is reported to an optional process-wide hook as soon as it is built.
Most of them are caught close to where they are raised (a malformed
generator entry, a calendar page without a time range), so without a hook
they are only logged at DEBUG.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

ErrorHook = Callable[[Exception, dict[str, Any]], None]

_hook: Optional[ErrorHook] = None


def set_error_hook(hook: Optional[ErrorHook]) -> None:
    """Install *hook* to receive ``(error, payload)`` for every core error.

    Pass None to go back to DEBUG logging.
    """
    global _hook
    _hook = hook


class DayPlannerCoreError(Exception):
    """Base exception for dayplanner_core."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context = dict(context)
        self._report()

    def to_dict(self) -> dict[str, Any]:
        return {"error_type": type(self).__name__, "message": str(self), **self.context}

    def _report(self) -> None:
        payload = self.to_dict()
        if _hook is None:
            logger.debug("Core error raised: %s", payload)
            return
        try:
            _hook(self, payload)
        except Exception:
            logger.warning("Error hook failed for %s", payload["error_type"], exc_info=True)


class ValidationError(DayPlannerCoreError):
    """Invalid domain input, e.g. an interval whose end is not after its start."""


class ConfigError(DayPlannerCoreError):
    """Missing or out-of-range configuration."""


class DependencyError(DayPlannerCoreError):
    """An adapter cannot reach its backing service (credentials, client setup)."""


class GeneratorError(DayPlannerCoreError):
    """The suggestion generator answered with something unusable."""
