"""Periodic background tasks on an asyncio loop."""

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs a blocking function every ``interval`` seconds in a worker thread.

    At most one run is in flight at a time; a tick that comes due while the
    previous run is still going is skipped.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], object],
        run_immediately: bool = False,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.func = func
        self.run_immediately = run_immediately
        self.runs = 0
        self.failures = 0
        self.skipped = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def busy(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> asyncio.Task:
        """Start the timer loop. Must be called from a running event loop."""
        if self.running:
            return self._loop_task
        self._loop_task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        logger.debug("Started %s every %.1fs", self.name, self.interval)
        return self._loop_task

    async def stop(self) -> None:
        """Cancel the timer and wait for an in-flight run to finish."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if self._inflight is not None:
            await self._inflight
            self._inflight = None

    def trigger(self) -> bool:
        """Launch a run now unless one is already in flight.

        Returns:
            True if a run was launched.
        """
        if self.busy:
            self.skipped += 1
            logger.warning("Skipping %s tick: previous run still in progress", self.name)
            return False
        self._inflight = asyncio.create_task(self._run_once())
        return True

    async def _loop(self) -> None:
        if self.run_immediately:
            self.trigger()
        while True:
            await asyncio.sleep(self.interval)
            self.trigger()

    async def _run_once(self) -> None:
        started = time.monotonic()
        try:
            await asyncio.to_thread(self.func)
            self.runs += 1
        except Exception:
            self.failures += 1
            logger.exception("%s tick failed", self.name)
        else:
            logger.debug("%s tick took %.2fs", self.name, time.monotonic() - started)


class Scheduler:
    """Owns a set of periodic tasks."""

    def __init__(self):
        self.tasks: dict[str, PeriodicTask] = {}

    def add(
        self,
        name: str,
        interval: float,
        func: Callable[[], object],
        run_immediately: bool = False,
    ) -> PeriodicTask:
        if name in self.tasks:
            raise ValueError(f"Task {name} already scheduled")
        task = PeriodicTask(name, interval, func, run_immediately=run_immediately)
        self.tasks[name] = task
        return task

    def start(self) -> None:
        for task in self.tasks.values():
            task.start()
        logger.info("Scheduler started with %d tasks", len(self.tasks))

    async def stop(self) -> None:
        await asyncio.gather(*(task.stop() for task in self.tasks.values()))
        logger.info("Scheduler stopped")
