# arxivkit/throttle.py
"""Token bucket admission control for async callers."""

import asyncio
import functools
import logging
import math
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class TokenBucketLimiter:
    """Grant at most `tokens_per_interval` admissions per `interval_ms`.

    Tokens accrue continuously and the bucket starts full. Callers that find
    it empty wait in a FIFO queue drained by a single background task, which
    wakes every `ceil(interval_ms / capacity)` ms and exits once the queue is
    empty.

    Share one instance between calls to rate limit them together.
    """

    def __init__(
        self,
        tokens_per_interval: int,
        interval_ms: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.capacity = max(1, int(tokens_per_interval))
        self.interval_ms = max(1.0, float(interval_ms))
        self.tokens = self.capacity
        self._clock = clock
        self._sleep = sleep
        self._last_refill = clock()
        self._queue: deque[asyncio.Future[None]] = deque()
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def tick_ms(self) -> int:
        return math.ceil(self.interval_ms / self.capacity)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def _refill(self) -> None:
        now = self._clock()
        elapsed_ms = (now - self._last_refill) * 1000
        if elapsed_ms <= 0:
            return
        new_tokens = math.floor(elapsed_ms / self.interval_ms * self.capacity)
        # Leave the timestamp alone on a zero-token refill so fractions keep accruing
        if new_tokens >= 1:
            self.tokens = min(self.capacity, self.tokens + new_tokens)
            self._last_refill = now

    async def acquire(self) -> None:
        """Wait for a token and consume it."""
        self._refill()
        if self.tokens > 0 and not self._queue:
            self.tokens -= 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._queue.append(waiter)
        logger.debug("Rate limit reached, %d caller(s) queued", len(self._queue))
        self._ensure_drain()
        await waiter

    def _ensure_drain(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._queue:
            await self._sleep(self.tick_ms / 1000)
            self._refill()
            while self.tokens > 0 and self._queue:
                waiter = self._queue.popleft()
                if waiter.done():
                    # Cancelled while queued
                    continue
                self.tokens -= 1
                waiter.set_result(None)

    def close(self) -> None:
        """Stop the drain task and cancel every queued caller."""
        if self._drain_task is not None:
            self._drain_task.cancel()
            self._drain_task = None
        while self._queue:
            self._queue.popleft().cancel()


def throttle(
    calls: int, period: float
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Limit an async callable to `calls` invocations per `period` seconds.

    All invocations of the decorated function share one limiter, exposed as
    the wrapper's `limiter` attribute.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        limiter = TokenBucketLimiter(calls, period * 1000)

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            await limiter.acquire()
            return await func(*args, **kwargs)

        wrapper.limiter = limiter  # type: ignore[attr-defined]
        return wrapper

    return decorator
