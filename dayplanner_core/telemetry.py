"""Error capture for failures the planner recovers from.

A refresh pass that loses its generator, a listener that raises while
rendering, a calendar commit that is rejected: none of these stop the
planner, but each is recorded here. Every capture is logged, kept in a
short in-memory history (so a UI can show "suggestions unavailable") and
handed to any registered handlers.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

HISTORY_SIZE = 50

ErrorHandler = Callable[["ErrorEvent"], None]

_handlers: list[ErrorHandler] = []
_history: deque[ErrorEvent] = deque(maxlen=HISTORY_SIZE)


@dataclass(frozen=True)
class ErrorEvent:
    """One recovered failure."""

    error: Exception
    source: str  # component: "refresh", "selection", "planner"
    operation: str  # step within it: "generate", "load_day", "commit", "notify"
    context: dict[str, Any] = field(default_factory=dict)
    level: int = logging.ERROR
    timestamp: float = field(default_factory=time.time)

    @property
    def error_type(self) -> str:
        return type(self.error).__name__

    @property
    def message(self) -> str:
        return str(self.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.error_type,
            "message": self.message,
            "source": self.source,
            "operation": self.operation,
            "level": logging.getLevelName(self.level),
            "context": self.context,
            "timestamp": self.timestamp,
        }


def register_handler(handler: ErrorHandler) -> Callable[[], None]:
    """Add *handler*; returns a callable that removes it again."""
    _handlers.append(handler)

    def unregister() -> None:
        if handler in _handlers:
            _handlers.remove(handler)

    return unregister


def clear_handlers() -> None:
    """Drop every handler and forget the history."""
    _handlers.clear()
    _history.clear()


def recent_errors(source: Optional[str] = None) -> list[ErrorEvent]:
    """Captured events, oldest first, optionally only those from *source*."""
    return [e for e in _history if source is None or e.source == source]


def capture_error(
    error: Exception,
    *,
    source: str,
    operation: str,
    context: Optional[dict[str, Any]] = None,
    level: int = logging.ERROR,
) -> ErrorEvent:
    """Record a recovered failure and return the resulting event."""
    event = ErrorEvent(
        error=error,
        source=source,
        operation=operation,
        context=context or {},
        level=level,
    )
    _history.append(event)

    logger.log(
        level,
        "%s.%s failed: %s: %s",
        source,
        operation,
        event.error_type,
        event.message,
        exc_info=error,
        extra={"telemetry": event.to_dict()},
    )

    for handler in list(_handlers):
        try:
            handler(event)
        except Exception:
            logger.debug("Telemetry handler %r failed", handler, exc_info=True)

    return event
