"""
Keyed asyncio Locks

One asyncio.Lock per key (session id, user id, rate limit bucket), created
on first use and dropped again once no task holds or waits for it, so the
map stays as small as the set of keys in use right now.

Usage:
    from memora.services.locks import KeyedLock

    locks = KeyedLock()
    async with locks.hold(session_id):
        ...
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLock:
    """Per-key mutual exclusion within one event loop."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, key: str) -> bool:
        return key in self._locks

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for key for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        # Counts the holder and every waiter
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]
