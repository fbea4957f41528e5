import asyncio
import contextlib
import time
from collections.abc import AsyncGenerator, Callable

from loguru import logger


class WeightedRateLimiter:
    """An asynchronous token bucket where each request spends a weight.

    Exchanges such as Binance meter their REST APIs by request weight rather
    than request count (a ticker costs 2, the full exchange info 20). The
    bucket holds `capacity` units and refills continuously at
    `capacity / period_sec` units per second, so no background task is needed.

    Usage:
        limiter = WeightedRateLimiter(1200, 60)  # 1200 weight per minute
        async with limiter.acquire(weight=2):
            await make_api_call()
    """

    def __init__(
        self,
        capacity: int,
        period_sec: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initializes the rate limiter.

        Args:
            capacity: The total weight allowed per period.
            period_sec: The period in seconds.
            clock: A monotonic clock, injectable for tests.
        """
        if not isinstance(capacity, int) or capacity <= 0:
            err_msg = "Capacity must be a positive integer."
            raise ValueError(err_msg)
        if not isinstance(period_sec, int | float) or period_sec <= 0:
            err_msg = "Period must be a positive number."
            raise ValueError(err_msg)

        self.capacity = capacity
        self.period_sec = period_sec
        self._clock = clock
        self._available = float(capacity)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    @property
    def refill_rate(self) -> float:
        """Weight units restored per second."""
        return self.capacity / self.period_sec

    @property
    def available(self) -> float:
        """The weight that could be spent right now."""
        self._refill()
        return self._available

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._available = min(
                float(self.capacity), self._available + elapsed * self.refill_rate
            )
            self._last_refill = now

    async def wait(self, weight: int = 1) -> None:
        """Blocks until `weight` units are available, then spends them."""
        if weight <= 0:
            err_msg = "Weight must be a positive integer."
            raise ValueError(err_msg)
        if weight > self.capacity:
            err_msg = f"Weight {weight} exceeds limiter capacity {self.capacity}."
            raise ValueError(err_msg)

        # The lock keeps waiters in FIFO order so a heavy request is not starved.
        async with self._lock:
            while True:
                self._refill()
                if self._available >= weight:
                    self._available -= weight
                    return
                shortfall = weight - self._available
                delay = shortfall / self.refill_rate
                logger.debug(f"Rate limit reached; waiting {delay:.2f}s for {weight}.")
                await asyncio.sleep(delay)

    @contextlib.asynccontextmanager
    async def acquire(self, weight: int = 1) -> AsyncGenerator[None, None]:
        """Spends `weight` units, waiting if necessary. Use as an async context manager."""
        await self.wait(weight)
        yield

