"""
Periodic expiration job.

Runs the expiration sweep every EXPIRATION_CHECK_INTERVAL_SECONDS as a
background asyncio task. The API process starts it in its lifespan and
stops it on shutdown.
"""

import asyncio
import logging
from typing import Optional

from lifecycle.services.expiration import ExpirationSweeper

logger = logging.getLogger("expiration_job")


class ExpirationJob:
    """
    Background loop around ExpirationSweeper.expire_stale_bookings().

    Example:
        job = ExpirationJob(sweeper, interval_seconds=60)
        job.start()
        ...
        await job.stop()
    """

    def __init__(self, sweeper: ExpirationSweeper, interval_seconds: float = 60):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.sweeper = sweeper
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """
        Schedule the loop on the running event loop.

        Returns False (and logs a warning) if the job is already running.
        """
        if self.is_running:
            logger.warning("Expiration job already running, ignoring start")
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Expiration job started (every {self.interval_seconds}s)")
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiration job stopped")

    def run_once(self) -> int:
        """Run a single sweep. Never raises."""
        self.runs += 1
        try:
            expired = self.sweeper.expire_stale_bookings()
        except Exception:
            logger.exception("Expiration sweep raised")
            return 0
        if expired:
            logger.info(f"Expiration job run #{self.runs}: expired {expired} booking(s)")
        return expired

    async def _run(self) -> None:
        while True:
            self.run_once()
            await asyncio.sleep(self.interval_seconds)
