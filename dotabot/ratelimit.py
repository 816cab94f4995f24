"""
ratelimit.py — Minimum delay between upstream calls.

One limiter instance is shared by every caller that uses the same upstream
credential (poll loop, daily stats, interactive commands), so the budget is
global rather than per task.
"""

from __future__ import annotations

import asyncio
import time


class RateLimiter:
    """Enforces a minimum inter-request delay based on max_per_minute.

    max_per_minute <= 0 disables pacing (used by tests).
    """

    def __init__(self, max_per_minute: int) -> None:
        self._min_delay = 60.0 / max_per_minute if max_per_minute > 0 else 0.0
        self._last_call: float = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Sleeps if needed so we never exceed max_per_minute."""
        if self._min_delay <= 0:
            return
        async with self._lock:
            elapsed = time.monotonic() - self._last_call
            if elapsed < self._min_delay:
                await asyncio.sleep(self._min_delay - elapsed)
            self._last_call = time.monotonic()
