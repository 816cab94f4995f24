"""
scheduler.py — Daily hero-stats broadcast at STATS_TIME, at most once per calendar day.

tick() is called every minute by the bot's ticker loop.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from datetime import time as dtime
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class DailyStatsScheduler:
    def __init__(self, stats_time: dtime | None, job: Callable[[], Awaitable[None]]) -> None:
        self.stats_time = stats_time
        self._job = job
        self._lock = threading.Lock()
        self._last_run_day: date | None = None

    @property
    def enabled(self) -> bool:
        return self.stats_time is not None

    def should_run(self, now: datetime) -> bool:
        """True once when the local HH:MM matches; marks today as done."""
        if self.stats_time is None:
            return False
        if (now.hour, now.minute) != (self.stats_time.hour, self.stats_time.minute):
            return False
        with self._lock:
            if self._last_run_day == now.date():
                return False
            self._last_run_day = now.date()
        return True

    async def tick(self, now: datetime | None = None) -> bool:
        """Runs the job if due. Returns whether it ran."""
        now = now or datetime.now()
        if not self.should_run(now):
            return False
        logger.info("[stats] daily broadcast at %s", now.strftime("%Y-%m-%d %H:%M"))
        try:
            await self._job()
        except Exception as exc:
            # the day stays marked as done: a failed broadcast is not retried until tomorrow
            logger.exception("[stats] daily broadcast failed: %s", exc)
        return True
