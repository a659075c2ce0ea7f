"""Fixed-cadence background task with an overlap guard."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

LOGGER = logging.getLogger("Bridge.Periodic")


class PeriodicTask:
    """Run *callback* every *interval* seconds.

    The ticker keeps its cadence regardless of how long a cycle takes. A tick
    that lands while the previous cycle is still in flight is skipped rather
    than stacked.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        *,
        run_immediately: bool = True,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.name = name
        self.interval = interval
        self._callback = callback
        self._run_immediately = run_immediately
        self._ticker: asyncio.Task | None = None
        self._current: asyncio.Task | None = None
        self.runs = 0
        self.skipped = 0

    @property
    def is_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def cycle_in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    def start(self) -> asyncio.Task:
        if self.is_running:
            raise RuntimeError(f"{self.name} is already running")

        self._ticker = asyncio.create_task(self._tick_loop(), name=f"{self.name}-ticker")
        LOGGER.info(f"[{self.name}] Started, every {self.interval:g}s")
        return self._ticker

    def tick(self) -> bool:
        """Launch one cycle unless the previous one is still running."""
        if self.cycle_in_flight:
            self.skipped += 1
            LOGGER.warning(f"[{self.name}] Previous cycle still running, skipping this tick")
            return False

        self.runs += 1
        self._current = asyncio.create_task(self._run_cycle(), name=f"{self.name}-cycle")
        return True

    async def wait_current(self) -> None:
        """Wait for the in-flight cycle, if any."""
        if self._current is not None:
            await asyncio.shield(self._current)

    async def stop(self) -> None:
        ticker, self._ticker = self._ticker, None
        current, self._current = self._current, None

        for task in (ticker, current):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        LOGGER.debug(f"[{self.name}] Stopped")

    async def _tick_loop(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self.interval)

        while True:
            self.tick()
            await asyncio.sleep(self.interval)

    async def _run_cycle(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            LOGGER.exception(f"[{self.name}] Cycle failed: {e}")
