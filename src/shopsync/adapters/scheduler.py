"""Call-budget scheduler for outbound requests.

The scheduler paces opaque, zero-argument operations so that no more than
``max_calls`` of them are dispatched within any window of ``period`` seconds.
Operations are admitted strictly in submission order; once dispatched they run
concurrently and may complete in any order.
"""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from aiolimiter import AsyncLimiter

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = getLogger(__name__)

DEFAULT_MAX_CALLS = 2
DEFAULT_PERIOD_SECONDS = 1.0


class RequestScheduler:
    """FIFO, budget-paced dispatcher for deferred operations.

    Pacing is a leaky bucket with capacity one that drains every
    ``period / max_calls`` seconds: consecutive dispatches are spaced evenly, so
    any window of ``period`` seconds sees at most ``max_calls`` of them.
    """

    def __init__(
        self,
        max_calls: int = DEFAULT_MAX_CALLS,
        period: float = DEFAULT_PERIOD_SECONDS,
    ) -> None:
        if max_calls < 1:
            raise ValueError(f"max_calls must be at least 1, got {max_calls}")
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.max_calls = max_calls
        self.period = period
        self._limiter = AsyncLimiter(1, period / max_calls)
        self._admission = asyncio.Lock()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Number of submitted operations still waiting for budget."""
        return self._pending

    async def submit[T](self, operation: Callable[[], Awaitable[T]]) -> T:
        self._pending += 1
        if self._pending > 1:
            log.debug("Request queued behind %s others", self._pending - 1)
        try:
            async with self._admission:
                await self._limiter.acquire()
        finally:
            self._pending -= 1
        return await operation()
