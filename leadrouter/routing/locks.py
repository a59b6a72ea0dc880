"""Per-lead serialisation of dispatches."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class LeadLocks:
    """One asyncio.Lock per lead id, created on demand.

    Locks are dropped once no task holds or waits on them, so the table
    only contains leads with a dispatch in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, lead_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(lead_id, asyncio.Lock())
        self._users[lead_id] = self._users.get(lead_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[lead_id] -= 1
            if self._users[lead_id] == 0:
                del self._users[lead_id]
                del self._locks[lead_id]

    def __len__(self) -> int:
        return len(self._locks)
