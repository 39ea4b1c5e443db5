"""Daily sync trigger running inside the application event loop."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from ..errors import SyncError, SyncInProgressError
from .sync import SyncOrchestrator

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime, hour: int, minute: int) -> float:
    """Seconds from ``now`` (timezone-aware) to the next ``hour:minute`` strictly after it."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class DailyScheduler:
    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        hour: int,
        minute: int = 0,
        tz_name: str = "Asia/Jakarta",
    ) -> None:
        self.orchestrator = orchestrator
        self.hour = hour
        self.minute = minute
        self.tz = ZoneInfo(tz_name)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def describe(self) -> str:
        return f"daily at {self.hour:02d}:{self.minute:02d} {self.tz.key}"

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Sync scheduler started (%s)", self.describe())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Sync scheduler stopped")
        self._task = None

    async def _loop(self) -> None:
        while True:
            delay = seconds_until_next_run(datetime.now(self.tz), self.hour, self.minute)
            logger.info("Next scheduled sync in %.0f seconds", delay)
            await asyncio.sleep(delay)
            await self.fire()

    async def fire(self) -> None:
        """Run one scheduled sync; failures are logged and never stop the loop."""
        try:
            result = await self.orchestrator.run("scheduled")
            logger.info("Scheduled sync published %d outlets", result.published)
        except SyncInProgressError:
            logger.warning("Scheduled sync skipped: a run is already in progress")
        except SyncError as exc:
            logger.error("Scheduled sync failed: %s", exc)
        except Exception:
            logger.exception("Scheduled sync crashed")
