"""
Rate limiter for outbound TMDB requests.

AsyncLimiter instances are bound to the event loop they were first used on, so
the limiter wrapper keeps one AsyncLimiter per loop and swaps it when the loop
changes (e.g. between pytest-asyncio tests or repeated asyncio.run() calls from
the CLI).

Usage:
    from utils.rate_limiter import get_rate_limiter

    limiter = get_rate_limiter(max_rate=35, time_period=1)
    async with limiter:
        ...
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from aiolimiter import AsyncLimiter

from utils.get_logger import get_logger

logger = get_logger(__name__)

_lock = threading.Lock()
_limiters: dict[tuple[int, float], LoopAwareRateLimiter] = {}


class LoopAwareRateLimiter:
    """AsyncLimiter wrapper that follows the running event loop."""

    def __init__(self, max_rate: int, time_period: float):
        self.max_rate = max_rate
        self.time_period = time_period
        self._limiter: AsyncLimiter | None = None
        self._loop_id: int | None = None

    def _current_limiter(self) -> AsyncLimiter:
        loop_id = id(asyncio.get_running_loop())
        if self._limiter is None or self._loop_id != loop_id:
            self._limiter = AsyncLimiter(self.max_rate, self.time_period)
            self._loop_id = loop_id
            logger.debug(
                f"Bound rate limiter to loop {loop_id}: "
                f"{self.max_rate} requests per {self.time_period}s"
            )
        return self._limiter

    async def __aenter__(self) -> LoopAwareRateLimiter:
        await self._current_limiter().acquire()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        return None


def get_rate_limiter(max_rate: int, time_period: float = 1.0) -> LoopAwareRateLimiter:
    """Get the shared limiter for a (max_rate, time_period) configuration.

    TMDB allows roughly 40 requests per second; callers default to 35 to keep
    headroom.
    """
    key = (max_rate, time_period)
    if key not in _limiters:
        with _lock:
            if key not in _limiters:
                _limiters[key] = LoopAwareRateLimiter(max_rate, time_period)
                logger.debug(f"Created rate limiter: {max_rate} requests per {time_period}s")
    return _limiters[key]
