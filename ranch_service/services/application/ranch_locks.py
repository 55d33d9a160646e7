"""
Per-ranch mutual exclusion for aggregate mutations.
"""
import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator


class RanchLockRegistry:
    """
    Hands out one asyncio.Lock per ranch id.

    Guards the load-mutate-save cycle of a ranch within this process. The
    optimistic version check on save covers writers in other processes.
    A lock is dropped once no task holds or waits on it, so the registry
    only tracks ranches with mutations in flight.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: Counter[str] = Counter()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, ranch_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(ranch_id, asyncio.Lock())
        self._users[ranch_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[ranch_id] -= 1
            if self._users[ranch_id] == 0:
                del self._users[ranch_id]
                del self._locks[ranch_id]
