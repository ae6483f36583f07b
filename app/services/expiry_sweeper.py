"""
Periodic completion of approved bookings whose end time has passed.

Runs as a background task owned by the application lifespan so list and
detail requests never pay for it.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Booking
from app.services import booking_workflow

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(self, session_factory: Callable[[], AsyncSession], interval_seconds: float):
        self._session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, *, now: Optional[datetime] = None) -> Optional[List[Booking]]:
        """Run a single sweep. Returns None when another sweep is still in progress."""
        if self._lock.locked():
            logger.info("Expiry sweep already running; skipping this tick")
            return None
        async with self._lock:
            async with self._session_factory() as db:
                return await booking_workflow.run_expiry_sweep(db, now=now)

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Expiry sweep failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="expiry-sweeper")
        logger.info(f"Expiry sweeper started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")
