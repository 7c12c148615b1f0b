"""Refresh scheduler: the cooperative loop that keeps suggestions current.

One pass = fetch the day -> compute gaps -> ask the generator -> weight ->
place -> reconcile ids -> publish if forced or changed. The loop repeats a
pass every refresh interval until paused or stopped.

Passes never overlap (a lock serialises them) and every await inside a
pass is a cancellation checkpoint: once stop(), pause() or a day switch
bumps the epoch, an in-flight pass publishes nothing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from .config import PlannerConfig
from .fingerprint import has_changed, reconcile
from .gaps import compute_gaps
from .models import (
    CandidateSuggestion,
    DayContext,
    PlacedSuggestion,
    RefreshReason,
    TimeInterval,
)
from .placement import place
from .ports import CalendarStore, SuggestionGenerator
from .prioritization import SuggestionPreferences, prioritize
from .telemetry import capture_error

logger = logging.getLogger(__name__)

PublishCallback = Callable[[Sequence[PlacedSuggestion]], None]


class RefreshState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"


class PendingReason:
    """Single-slot holder for the next refresh reason. Latest request wins."""

    def __init__(self) -> None:
        self._reason: Optional[RefreshReason] = None

    @property
    def pending(self) -> Optional[RefreshReason]:
        return self._reason

    def request(self, reason: RefreshReason) -> None:
        self._reason = reason

    def consume(self) -> Optional[RefreshReason]:
        reason, self._reason = self._reason, None
        return reason


@dataclass(frozen=True)
class RefreshOutcome:
    """What a single pass did."""

    reason: Optional[RefreshReason]
    candidate_count: int
    placements: tuple[PlacedSuggestion, ...]
    published: bool


class RefreshScheduler:
    """Owns the refresh lifecycle and the published placement list."""

    def __init__(
        self,
        store: CalendarStore,
        generator: SuggestionGenerator,
        *,
        day: date,
        config: Optional[PlannerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        preferences: Optional[Callable[[], SuggestionPreferences]] = None,
        on_publish: Optional[PublishCallback] = None,
    ) -> None:
        self._store = store
        self._generator = generator
        self._day = day
        self.config = config or PlannerConfig()
        self._tz = self.config.tzinfo
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._preferences = preferences or (lambda: SuggestionPreferences())
        self._on_publish = on_publish

        self.pending = PendingReason()
        self._state = RefreshState.IDLE
        self._placements: tuple[PlacedSuggestion, ...] = ()
        self._lock = asyncio.Lock()
        self._epoch = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._follow_up_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def day(self) -> date:
        return self._day

    @property
    def placements(self) -> tuple[PlacedSuggestion, ...]:
        return self._placements

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, *, force: bool = False) -> None:
        """(Re)start the periodic loop. A running loop is stopped first."""
        await self._cancel_tasks()
        self._state = RefreshState.RUNNING
        self._loop_task = asyncio.create_task(self._run_loop(self._epoch, force))
        logger.info("Refresh loop started for %s", self._day.isoformat())

    async def stop(self) -> None:
        """Tear down the loop and any pending follow-up. Running -> Cancelled."""
        await self._cancel_tasks()
        self._state = RefreshState.CANCELLED
        logger.info("Refresh loop stopped for %s", self._day.isoformat())

    async def pause(self) -> None:
        """Stop the periodic cadence but keep accepting forced refreshes."""
        await self._cancel_tasks()
        self._state = RefreshState.IDLE
        logger.info("Refresh loop paused for %s", self._day.isoformat())

    async def resume(self) -> None:
        await self.start(force=True)

    async def switch_day(self, day: date) -> None:
        """Replace the day context; existing placements are superseded wholesale."""
        was_running = self._state is RefreshState.RUNNING
        await self._cancel_tasks()
        self._day = day
        self._publish(())
        self.pending.request(RefreshReason.DAY_CHANGE)
        logger.info("Switched refresh context to %s", day.isoformat())

        if was_running:
            await self.start(force=True)
        elif self._state is RefreshState.IDLE:
            await self.force_refresh()

    async def _cancel_tasks(self) -> None:
        self._epoch += 1
        current = asyncio.current_task()
        for task in (self._loop_task, self._follow_up_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._follow_up_task = None

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def force_refresh(
        self, reason: Optional[RefreshReason] = None
    ) -> Optional[RefreshOutcome]:
        """Run one immediate pass that publishes unconditionally.

        Uses *reason*, else the pending reason, else FORCED. Does not touch
        the loop's own timer. No-op once the scheduler has been stopped.
        """
        if self._state is RefreshState.CANCELLED:
            return None
        reason = reason or self.pending.consume() or RefreshReason.FORCED
        return await self._refresh(reason, force=True, epoch=self._epoch)

    def request(self, reason: RefreshReason) -> None:
        """Record a reason for the next pass without triggering one."""
        self.pending.request(reason)

    def schedule_follow_up(self, reason: RefreshReason, delay: Optional[float] = None) -> None:
        """Record *reason* and arm a forced pass after *delay* seconds.

        Re-arming before the timer fires replaces the earlier one.
        """
        self.pending.request(reason)
        if self._state is RefreshState.CANCELLED:
            return
        if self._follow_up_task is not None and not self._follow_up_task.done():
            self._follow_up_task.cancel()
        delay = self.config.follow_up_delay_seconds if delay is None else delay
        self._follow_up_task = asyncio.create_task(self._delayed_refresh(delay, self._epoch))

    async def _delayed_refresh(self, delay: float, epoch: int) -> None:
        await asyncio.sleep(delay)
        if epoch != self._epoch:
            return
        await self.force_refresh()

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    def withdraw(self, ids: Sequence[str]) -> tuple[PlacedSuggestion, ...]:
        """Remove suggestions by id and publish the remainder. Returns the removed items."""
        wanted = set(ids)
        removed = tuple(p for p in self._placements if p.id in wanted)
        if removed:
            self._publish(tuple(p for p in self._placements if p.id not in wanted))
        return removed

    def _publish(self, placements: Sequence[PlacedSuggestion]) -> None:
        self._placements = tuple(placements)
        if self._on_publish is None:
            return
        try:
            self._on_publish(self._placements)
        except Exception as exc:
            capture_error(exc, source="refresh", operation="publish")

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    async def _run_loop(self, epoch: int, force: bool) -> None:
        forced = force
        try:
            while epoch == self._epoch:
                reason = self.pending.consume()
                if forced:
                    # Non-periodic reason so a caching generator calls through
                    reason = reason or RefreshReason.FORCED
                await self._refresh(reason, force=forced, epoch=epoch)
                forced = False
                await asyncio.sleep(self.config.refresh_interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Refresh loop cancelled")
            raise

    def _placement_now(self, day: date) -> Optional[datetime]:
        now = self._clock()
        return now if now.date() == day else None

    async def _generate(
        self, context: DayContext, reason: Optional[RefreshReason]
    ) -> list[CandidateSuggestion]:
        try:
            return list(await self._generator.generate(context, reason))
        except Exception as exc:
            capture_error(
                exc,
                source="refresh",
                operation="generate",
                context={"day": context.day.isoformat()},
                level=logging.WARNING,
            )
            return []

    async def _load_day(
        self, day: date
    ) -> Optional[tuple[Sequence[TimeInterval], Sequence[TimeInterval]]]:
        try:
            blocks = await self._store.current_day_blocks(day)
            quiet = await self._store.quiet_hour_windows(day)
        except Exception as exc:
            capture_error(
                exc,
                source="refresh",
                operation="load_day",
                context={"day": day.isoformat()},
                level=logging.WARNING,
            )
            return None
        return blocks, quiet

    async def _refresh(
        self,
        reason: Optional[RefreshReason],
        *,
        force: bool,
        epoch: int,
    ) -> Optional[RefreshOutcome]:
        async with self._lock:
            if epoch != self._epoch:
                return None
            day = self._day
            cfg = self.config

            loaded = await self._load_day(day)
            if loaded is None or epoch != self._epoch:
                return None
            blocks, quiet = loaded

            gaps = compute_gaps(
                day,
                blocks,
                quiet,
                now=self._placement_now(day),
                tz=self._tz,
                min_gap=cfg.min_gap,
            )
            context = DayContext(day=day, blocks=tuple(blocks), gaps=tuple(gaps), reason=reason)
            candidates = await self._generate(context, reason)
            if epoch != self._epoch:
                logger.debug("Discarding refresh pass for %s after cancellation", day)
                return None

            ordered = prioritize(
                candidates,
                self._preferences(),
                pin_boost=cfg.pin_boost,
                pillar_boost=cfg.pillar_boost,
                feedback_boost=cfg.feedback_boost,
            )
            placed = place(
                ordered,
                gaps,
                now=self._placement_now(day),
                min_duration=cfg.min_duration,
                snap=cfg.snap,
                buffer=cfg.buffer,
            )
            placed = reconcile(self._placements, placed)
            publish = force or has_changed(self._placements, placed)
            if publish:
                self._publish(placed)

            logger.debug(
                "Refresh pass for %s (reason=%s): %d candidates, %d placed, %s",
                day.isoformat(),
                reason.value if reason else None,
                len(candidates),
                len(placed),
                "published" if publish else "unchanged",
            )
            return RefreshOutcome(
                reason=reason,
                candidate_count=len(candidates),
                placements=tuple(placed),
                published=publish,
            )
