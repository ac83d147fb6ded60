"""Cancellable periodic asyncio tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``func`` every ``interval`` seconds on its own asyncio task.

    The first run happens one interval after ``start()``. An exception raised by
    ``func`` is logged and the loop carries on, so one bad tick never stops the
    schedule. A slow tick only delays its own next run.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], Awaitable[object]]) -> None:
        self.name = name
        self.interval = interval
        self._func = func
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the loop. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop(), name=self.name)
        logger.debug("Periodic task %s started (%.1fs)", self.name, self.interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. Safe to call multiple times."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._func()
            except Exception:
                logger.exception("Periodic task %s failed", self.name)
