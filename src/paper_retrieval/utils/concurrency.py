"""
Per-provider concurrency and rate limiting.

Every provider gets exactly one ConcurrencyLimiter for the life of the
process, handed out by a LimiterRegistry that is built once at startup and
passed to whoever issues provider calls.

Admission of one call:
    1. rate gate: wait until 1/requests_per_second has passed since the
       previous admission (not the previous completion)
    2. concurrency gate: if max_concurrent calls are in flight, queue FIFO
       until a finishing call hands its slot over
Callers pass the two gates one at a time in arrival order, so consecutive
admissions are always spaced by the minimum interval and the in-flight count
never exceeds max_concurrent.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Dict, List, Optional, TypeVar

from paper_retrieval.exceptions import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ConcurrencyConfig:
    """Request budget a provider declares for itself."""

    max_concurrent: int
    requests_per_second: float

    def __post_init__(self):
        if not isinstance(self.max_concurrent, int) or self.max_concurrent < 1:
            raise ValidationError(
                f"max_concurrent must be a positive int, got {self.max_concurrent!r}"
            )
        if self.requests_per_second <= 0:
            raise ValidationError(
                f"requests_per_second must be positive, got {self.requests_per_second!r}"
            )

    @property
    def min_interval(self) -> float:
        """Minimum spacing between admissions, in seconds."""
        return 1.0 / self.requests_per_second


class ConcurrencyLimiter:
    """Bounds in-flight requests and enforces minimum spacing between them."""

    def __init__(self, config: ConcurrencyConfig, name: str = ""):
        self.config = config
        self.name = name
        self._active = 0
        self._last_admission: Optional[float] = None
        self._waiters: Deque[asyncio.Future] = deque()
        self._admission_lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        """Number of operations currently running."""
        return self._active

    @property
    def queued_count(self) -> int:
        """Number of callers waiting for a concurrency slot."""
        return sum(1 for w in self._waiters if not w.done())

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation()`` once admitted; its result or error passes through."""
        await self._acquire()
        try:
            return await operation()
        finally:
            self._release()

    async def _acquire(self) -> None:
        async with self._admission_lock:
            if self._last_admission is not None:
                wait = self.config.min_interval - (time.monotonic() - self._last_admission)
                if wait > 0:
                    logger.debug(f"{self.name}: rate gate, sleeping {wait * 1000:.0f}ms")
                    await asyncio.sleep(wait)

            if self._active >= self.config.max_concurrent:
                waiter = asyncio.get_running_loop().create_future()
                self._waiters.append(waiter)
                logger.debug(f"{self.name}: {self._active} in flight, queued")
                try:
                    await waiter
                except asyncio.CancelledError:
                    if waiter.done() and not waiter.cancelled():
                        # slot was handed over just before cancellation
                        self._release()
                    raise
                # the releasing call handed its slot over; count is unchanged
            else:
                self._active += 1

            self._last_admission = time.monotonic()

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._active -= 1


class LimiterRegistry:
    """One ConcurrencyLimiter per provider name, created lazily and kept forever."""

    def __init__(self):
        self._limiters: Dict[str, ConcurrencyLimiter] = {}

    def get(self, name: str, config: ConcurrencyConfig) -> ConcurrencyLimiter:
        """Return the limiter for *name*, creating it from *config* on first use.

        Later calls ignore *config*: a provider's budget is fixed once its
        limiter exists.
        """
        limiter = self._limiters.get(name)
        if limiter is None:
            limiter = ConcurrencyLimiter(config, name=name)
            self._limiters[name] = limiter
            logger.debug(
                f"Created limiter for {name}: max_concurrent={config.max_concurrent}, "
                f"rps={config.requests_per_second}"
            )
        return limiter

    def names(self) -> List[str]:
        return list(self._limiters)

    def __contains__(self, name: str) -> bool:
        return name in self._limiters

    def __len__(self) -> int:
        return len(self._limiters)
