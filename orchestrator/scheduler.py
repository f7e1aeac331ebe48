"""
Orchestrator - Refresh Scheduler.

============================================================
RESPONSIBILITY
============================================================
Drives periodic refreshes with an explicit lifecycle.

- start() / stop() own a single background task
- tick() runs one refresh; tests call it directly
- Clock and sleep are injected for deterministic tests

============================================================
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from core.clock import ClockFactory, ClockProtocol


logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[Any]]
SleepFunction = Callable[[float], Awaitable[None]]


class RefreshScheduler:
    """
    Calls a refresh coroutine every `interval_seconds`.

    A failing refresh is logged and the loop continues.
    """

    def __init__(
        self,
        refresh: RefreshCallback,
        interval_seconds: float,
        clock: Optional[ClockProtocol] = None,
        sleep: Optional[SleepFunction] = None,
    ):
        """
        Args:
            refresh: Coroutine function run on every tick
            interval_seconds: Target period between tick starts
            clock: Clock used to measure tick duration
            sleep: Awaitable sleep (defaults to asyncio.sleep)
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._refresh = refresh
        self._interval = interval_seconds
        self._clock = clock or ClockFactory.get_clock()
        self._sleep = sleep or asyncio.sleep

        self._task: Optional[asyncio.Task] = None
        self._stop_requested = False
        self._tick_count = 0
        self._failure_count = 0
        self._last_tick_at: Optional[datetime] = None

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_tick_at(self) -> Optional[datetime]:
        return self._last_tick_at

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    def start(self) -> None:
        """Start the background loop. Must be called from a running event loop."""
        if self.is_running:
            logger.warning("Refresh scheduler already running")
            return
        self._stop_requested = False
        self._task = asyncio.create_task(self._run())
        logger.info(f"Refresh scheduler started | interval={self._interval}s")

    async def stop(self) -> None:
        """Stop the loop and wait for it to exit."""
        self._stop_requested = True
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"Refresh scheduler stopped | ticks={self._tick_count}")

    async def tick(self) -> bool:
        """
        Run one refresh.

        Returns:
            True if the refresh completed without raising
        """
        self._tick_count += 1
        self._last_tick_at = self._clock.now()
        try:
            await self._refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failure_count += 1
            logger.error(f"Scheduled refresh failed: {e}", exc_info=True)
            return False
        return True

    def _next_delay(self, started: float) -> float:
        return max(0.0, self._interval - self._clock.elapsed_since(started))

    async def _run(self) -> None:
        while not self._stop_requested:
            started = self._clock.monotonic()
            await self.tick()
            if self._stop_requested:
                break
            delay = self._next_delay(started)
            logger.debug(f"Waiting {delay:.1f}s until next refresh")
            await self._sleep(delay)


__all__ = [
    "RefreshScheduler",
]
