"""
Debounced recomputation.

Change notifications arrive in bursts. The scheduler folds each burst into a
single recompute cycle once the stream has been quiet for the debounce
interval, and never runs two cycles at the same time:

    IDLE --notify--> PENDING_RECOMPUTE --timer--> RECOMPUTING --done--> IDLE

A timer that fires while a cycle is running only marks the in-flight cycle
as stale; exactly one follow-up cycle runs after it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

logger = logging.getLogger(__name__)

Cycle = Callable[[], Awaitable[None]]
ErrorHandler = Callable[[Exception], None]


class SchedulerState(str, Enum):
    IDLE = "idle"
    PENDING_RECOMPUTE = "pending_recompute"
    RECOMPUTING = "recomputing"


class RecomputeScheduler:
    def __init__(
        self,
        cycle: Cycle,
        debounce_seconds: float = 0.5,
        on_error: ErrorHandler | None = None,
    ):
        self._cycle = cycle
        self.debounce_seconds = debounce_seconds
        self._on_error = on_error
        self._timer: asyncio.TimerHandle | None = None
        self._current: asyncio.Future | None = None
        self._rerun = False
        self._closed = False
        self.cycles_run = 0

    @property
    def state(self) -> SchedulerState:
        if self._current is not None:
            return SchedulerState.RECOMPUTING
        if self._timer is not None:
            return SchedulerState.PENDING_RECOMPUTE
        return SchedulerState.IDLE

    def notify(self) -> None:
        """Record that the underlying data changed and (re)arm the debounce timer."""
        if self._closed:
            return
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self._closed:
            return
        if self._current is not None:
            self._rerun = True
            return
        self._start_cycle()

    def _start_cycle(self) -> asyncio.Future:
        self._rerun = False
        self._current = asyncio.ensure_future(self._run_cycle())
        self._current.add_done_callback(self._on_cycle_done)
        return self._current

    async def _run_cycle(self) -> None:
        self.cycles_run += 1
        logger.debug(f"Recompute cycle #{self.cycles_run} started")
        await self._cycle()

    def _on_cycle_done(self, future: asyncio.Future) -> None:
        self._current = None
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Recompute cycle failed: {error}")
            if self._on_error is not None:
                try:
                    self._on_error(error)
                except Exception as e:
                    logger.error(f"Recompute error handler failed: {e}")
        if self._closed:
            return
        if self._rerun:
            self._start_cycle()

    async def refresh_now(self) -> None:
        """Run a cycle now, or join the one already running.

        Pending notifications are folded into the cycle; errors raised by the
        cycle propagate to the caller.
        """
        if self._closed:
            raise RuntimeError("Scheduler is closed")
        if self._current is not None:
            await asyncio.shield(self._current)
            return
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await asyncio.shield(self._start_cycle())

    async def close(self) -> None:
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        current = self._current
        if current is not None:
            current.cancel()
            try:
                await current
            except (asyncio.CancelledError, Exception):
                pass
        logger.info("Recompute scheduler closed")
