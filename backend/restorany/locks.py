"""Per-venue critical sections for ledger writes."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class VenueLocks:
    """
    One asyncio.Lock per venue id, created on demand and dropped once idle.

    Usage:
        async with locks.hold(venue_id):
            # uniqueness check, review write and aggregate recompute
            ...
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, venue_id: str) -> AsyncIterator[None]:
        key = str(venue_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def active(self) -> int:
        return len(self._locks)
