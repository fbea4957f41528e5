import asyncio
import itertools
from typing import Any

from loguru import logger

CRYPTO_CHANGED = "crypto-changed"


class CryptoBroadcaster:
    """A fan-out channel that keeps every view on the same selected coin.

    A view that changes the coin calls `broadcast_crypto`; every subscribed
    queue then receives the normalized code. Messages that are not a
    well-formed `crypto-changed` event are dropped.
    """

    def __init__(self, input_queue: "asyncio.Queue[Any] | None" = None) -> None:
        self.input_queue: asyncio.Queue[Any] = input_queue or asyncio.Queue()
        self._subscriptions: dict[int, asyncio.Queue[str]] = {}
        self._id_generator = itertools.count(1)
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._running = asyncio.Event()

    def start(self) -> None:
        """Starts the fan-out loop in a background task."""
        if self._task is None or self._task.done():
            self._running.set()
            self._task = asyncio.create_task(self._run())
            logger.info("Crypto broadcaster started.")
        else:
            logger.warning("Crypto broadcaster is already running.")

    async def stop(self) -> None:
        if not self._running.is_set():
            logger.warning("Crypto broadcaster is not running.")
            return

        logger.info("Stopping crypto broadcaster...")
        self._running.clear()
        if self._task:
            try:
                self.input_queue.put_nowait(None)
                self._task.cancel()
                await self._task
            except asyncio.CancelledError:
                pass
            finally:
                self._task = None
        logger.info("Crypto broadcaster stopped.")

    async def subscribe(self, queue: "asyncio.Queue[str]") -> int:
        """Registers a queue for coin changes and returns its subscription ID."""
        async with self._lock:
            sub_id = next(self._id_generator)
            self._subscriptions[sub_id] = queue
            logger.debug(f"New crypto subscription (ID: {sub_id}).")
            return sub_id

    async def unsubscribe(self, sub_id: int) -> None:
        async with self._lock:
            if self._subscriptions.pop(sub_id, None) is None:
                logger.warning(f"Attempted to unsubscribe with invalid ID: {sub_id}")
            else:
                logger.debug(f"Unsubscribed crypto subscription {sub_id}.")

    def broadcast_crypto(self, crypto: str) -> None:
        self.input_queue.put_nowait({"type": CRYPTO_CHANGED, "crypto": crypto})

    @staticmethod
    def parse_message(message: Any) -> str | None:
        """The normalized coin code carried by a message, or None if malformed."""
        if not isinstance(message, dict) or message.get("type") != CRYPTO_CHANGED:
            return None
        crypto = message.get("crypto")
        if not isinstance(crypto, str) or not crypto.strip():
            return None
        return crypto.strip().lower()

    async def dispatch(self, message: Any) -> int:
        """Delivers one message to all subscribers.

        Returns:
            The number of queues the message was delivered to.
        """
        crypto = self.parse_message(message)
        if crypto is None:
            logger.debug(f"Dropping malformed broadcast message: {message!r}")
            return 0

        async with self._lock:
            queues = list(self._subscriptions.values())

        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(crypto)
                delivered += 1
            except asyncio.QueueFull:  # noqa: PERF203
                logger.warning("Subscriber queue is full; crypto change was dropped.")
        return delivered

    async def _run(self) -> None:
        while self._running.is_set():
            try:
                message = await self.input_queue.get()
                if message is None:  # Sentinel for shutdown
                    continue
                await self.dispatch(message)
                self.input_queue.task_done()
            except asyncio.CancelledError:
                logger.info("Crypto broadcaster loop cancelled.")
                break
            except Exception:
                logger.exception("Unexpected error in crypto broadcaster loop.")
                await asyncio.sleep(1)
