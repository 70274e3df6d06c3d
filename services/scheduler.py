"""In-process timer that fires the rolling and daily computations."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Set

from services.evaporation import EvaporationComputer

logger = logging.getLogger(__name__)


def next_rolling_fire(now: datetime, interval_minutes: int = 10) -> datetime:
    """Next wall-clock minute divisible by ``interval_minutes``, strictly after ``now``.

    Like cron ``*/n`` the count restarts every hour, so the top of the hour
    always fires even when ``interval_minutes`` does not divide 60.
    """
    base = now.replace(second=0, microsecond=0)
    minute = min((base.minute // interval_minutes + 1) * interval_minutes, 60)
    return base.replace(minute=0) + timedelta(minutes=minute)


def next_daily_fire(now: datetime, hour: int = 7) -> datetime:
    """Next ``hour:00`` wall-clock instant strictly after ``now``."""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class EvaporationScheduler:
    """
    Runs the rolling job every ``rolling_interval_minutes`` and the daily job
    at ``daily_hour:00`` local time.

    Usage:
        scheduler = EvaporationScheduler(computer)
        await scheduler.start()
        ...
        await scheduler.stop()

    Each due job is launched as its own task, so a slow cycle never delays the
    next trigger and overlapping cycles are allowed.
    """

    def __init__(
        self,
        computer: EvaporationComputer,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.computer = computer
        self._clock = clock or (lambda: datetime.now(computer.zone))
        self._sleep = sleep
        self._running = False
        self._scheduler_task: Optional[asyncio.Task] = None
        self._jobs: Set[asyncio.Task] = set()
        self._last_fire: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._scheduler_task = asyncio.create_task(self._run_scheduler())
        logger.info("Evaporation scheduler started")

    async def stop(self) -> None:
        self._running = False
        if self._scheduler_task:
            self._scheduler_task.cancel()
            try:
                await self._scheduler_task
            except asyncio.CancelledError:
                pass
            self._scheduler_task = None
        await self.drain()
        logger.info("Evaporation scheduler stopped")

    async def drain(self) -> None:
        """Wait for launched cycles to finish."""
        if self._jobs:
            await asyncio.gather(*list(self._jobs), return_exceptions=True)

    async def run_due(self, fire_at: datetime) -> None:
        """Launch every job scheduled exactly at ``fire_at``."""
        settings = self.computer.settings
        if fire_at == next_rolling_fire(
            fire_at - timedelta(seconds=1), settings.rolling_interval_minutes
        ):
            self._launch("rolling", self.computer.compute_rolling(fire_at))
        if fire_at == next_daily_fire(fire_at - timedelta(seconds=1), settings.daily_hour):
            self._launch("daily", self.computer.compute_daily(fire_at))

    def next_fire(self, now: datetime) -> datetime:
        settings = self.computer.settings
        return min(
            next_rolling_fire(now, settings.rolling_interval_minutes),
            next_daily_fire(now, settings.daily_hour),
        )

    def _launch(self, job: str, cycle: Awaitable[object]) -> None:
        logger.info("Triggering scheduled cycle", extra={"job": job})
        task = asyncio.ensure_future(cycle)
        self._jobs.add(task)
        task.add_done_callback(self._jobs.discard)

    async def _run_scheduler(self) -> None:
        while self._running:
            try:
                now = self._clock()
                # Sleeps may wake marginally early; never fire the same instant twice.
                after = now if self._last_fire is None else max(now, self._last_fire)
                fire_at = self.next_fire(after)
                await self._sleep(max((fire_at - now).total_seconds(), 0.0))
                self._last_fire = fire_at
                await self.run_due(fire_at)
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.exception("Scheduler error: %s", exc)
                await self._sleep(60)
