"""Periodic background maintenance for in-memory stores.

The cache and the abuse guard expire state lazily on access; a sweeper bounds
memory for keys and clients that are never touched again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Run a synchronous maintenance action on a fixed interval.

    Usage:
        sweeper = PeriodicSweeper("cache", 60.0, cache.purge_expired)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, name: str, interval_seconds: float, action: Callable[[], object]) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self.interval_seconds = interval_seconds
        self._action = action
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> object:
        """Run the action now; failures are logged, never raised."""
        try:
            return self._action()
        except Exception:
            logger.exception("maintenance.sweep_failed", extra={"sweeper": self.name})
            return None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.run_once()

    def start(self) -> None:
        """Schedule the loop on the running event loop (idempotent)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._loop(), name=f"sweeper:{self.name}"
        )
        logger.info(
            "maintenance.started",
            extra={"sweeper": self.name, "interval_s": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("maintenance.stopped", extra={"sweeper": self.name})
