import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from loguru import logger

from coinboard.types import ChartResponse

T = TypeVar("T")

NO_DATA_ERROR = "No data received"


@dataclass
class PollState(Generic[T]):
    data: T | None = None
    loading: bool = False
    error: str | None = None


def chart_error(response: ChartResponse) -> str | None:
    """Validator for chart pollers: a chart response carries its own error."""
    return response.error


class Poller(Generic[T]):
    """Fetches a value now and then every `interval_s` seconds.

    The latest outcome is kept in `state`. A fetch that returns None or
    raises sets `state.error` and keeps the previous data. `on_update` is
    called with the state after every fetch.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T | None]],
        interval_s: float,
        validate: Callable[[T], str | None] | None = None,
        on_update: Callable[[PollState[T]], Any] | None = None,
        name: str = "poller",
    ) -> None:
        if interval_s <= 0:
            err_msg = "Polling interval must be positive."
            raise ValueError(err_msg)
        self.fetch = fetch
        self.interval_s = interval_s
        self.validate = validate
        self.on_update = on_update
        self.name = name
        self.state: PollState[T] = PollState()
        self._task: asyncio.Task[None] | None = None
        self._running = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    async def refetch(self) -> PollState[T]:
        """Runs one fetch and updates the state."""
        self.state.loading = True
        try:
            result = await self.fetch()
        except asyncio.CancelledError:
            self.state.loading = False
            raise
        except Exception as e:
            logger.warning(f"[{self.name}] Fetch failed: {e}")
            self.state.error = str(e) or type(e).__name__
        else:
            if result is None:
                self.state.error = NO_DATA_ERROR
            else:
                self.state.data = result
                self.state.error = self.validate(result) if self.validate else None
        self.state.loading = False

        if self.on_update is not None:
            try:
                self.on_update(self.state)
            except Exception:
                logger.exception(f"[{self.name}] Update callback failed.")
        return self.state

    def start(self) -> None:
        """Fetches immediately, then every `interval_s` seconds in the background."""
        if self._task is None or self._task.done():
            self._running.set()
            self._task = asyncio.create_task(self._run())
            logger.info(f"[{self.name}] Polling every {self.interval_s:g}s.")
        else:
            logger.warning(f"[{self.name}] Poller is already running.")

    async def stop(self) -> None:
        if not self._running.is_set():
            logger.warning(f"[{self.name}] Poller is not running.")
            return

        self._running.clear()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            finally:
                self._task = None
        logger.info(f"[{self.name}] Poller stopped.")

    async def _run(self) -> None:
        while self._running.is_set():
            await self.refetch()
            await asyncio.sleep(self.interval_s)
