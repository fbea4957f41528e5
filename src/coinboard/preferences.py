import asyncio
import json
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
from loguru import logger

# One year, in seconds.
DEFAULT_MAX_AGE_S = 31_536_000

SELECTED_CRYPTO_KEY = "crypto"


class PreferenceStore:
    """Small persistent key/value store for user choices.

    Entries are kept in a JSON file as `{name: {"value": ..., "expires": ...}}`
    with `expires` in Unix seconds. Expired entries read as missing. Disk I/O
    goes through `aiofiles` so the event loop shared with the UI never blocks.
    """

    def __init__(
        self,
        path: Path,
        max_age_s: int = DEFAULT_MAX_AGE_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.max_age_s = max_age_s
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def load(self) -> None:
        """Reads the store from disk. A missing or corrupt file reads as empty."""
        async with self._lock:
            if not await aiofiles.os.path.exists(self.path):
                self._entries = {}
                return
            try:
                async with aiofiles.open(self.path, encoding="utf-8") as f:
                    raw = json.loads(await f.read())
            except (OSError, ValueError) as e:
                logger.error(f"Could not read preferences from '{self.path}': {e}")
                self._entries = {}
                return

            if not isinstance(raw, dict):
                logger.error(f"Ignoring malformed preferences file '{self.path}'.")
                self._entries = {}
                return
            self._entries = {
                k: v for k, v in raw.items() if isinstance(v, dict) and "value" in v
            }
            logger.debug(f"Loaded {len(self._entries)} preferences from '{self.path}'.")

    def get(self, name: str) -> Any:
        """The stored value, or None when missing or expired."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        expires = entry.get("expires")
        if isinstance(expires, int | float) and expires <= self._clock():
            return None
        return entry["value"]

    async def set(self, name: str, value: Any, max_age_s: int | None = None) -> None:
        """Stores a value and writes the store back to disk."""
        age = self.max_age_s if max_age_s is None else max_age_s
        async with self._lock:
            self._entries[name] = {"value": value, "expires": self._clock() + age}
            await self._save()

    async def delete(self, name: str) -> None:
        async with self._lock:
            if self._entries.pop(name, None) is not None:
                await self._save()

    async def _save(self) -> None:
        now = self._clock()
        live = {
            k: v
            for k, v in self._entries.items()
            if not isinstance(v.get("expires"), int | float) or v["expires"] > now
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, mode="w", encoding="utf-8") as f:
                await f.write(json.dumps(live, ensure_ascii=False, indent=2))
        except OSError as e:
            logger.error(f"Could not write preferences to '{self.path}': {e}")
