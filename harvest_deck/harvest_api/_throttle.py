"""Per-account spacing of Harvest API requests."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Hashable

from .const import DEFAULT_THROTTLE_SECONDS


class RequestThrottle:
    """Keeps a minimum interval between requests made with the same key.

    Harvest applies its request quota per access token, so each account
    gets its own lock and clock: a busy or slow account never delays the
    requests of another one.
    """

    def __init__(self, min_interval: float = DEFAULT_THROTTLE_SECONDS) -> None:
        self._min_interval = min_interval
        self._last_request: dict[Hashable, float] = {}
        self._locks: dict[Hashable, asyncio.Lock] = {}

    async def acquire(self, key: Hashable) -> None:
        """Wait until ``min_interval`` has passed since the last request for ``key``."""
        if self._min_interval <= 0:
            return
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            wait = self._min_interval - (time.monotonic() - self._last_request.get(key, 0.0))
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request[key] = time.monotonic()
