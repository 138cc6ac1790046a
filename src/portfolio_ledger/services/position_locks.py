"""Per-position serialization of ledger writes."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

PositionKey = tuple[int, str]


class PositionLockRegistry:
    """Keyed ``asyncio.Lock``s, one per (owner, symbol) in use.

    Holding the lock across validate, mutate and commit keeps two sells on
    the same position from both passing the holdings check. Different
    owners or symbols never wait on each other. Locks are dropped once no
    task holds or waits for them.

    This covers one process; row locks taken by
    ``LotRepository.lock_position_lots`` cover several.
    """

    def __init__(self) -> None:
        self._locks: dict[PositionKey, asyncio.Lock] = {}
        self._users: dict[PositionKey, int] = {}

    @asynccontextmanager
    async def hold(self, owner_id: int, symbol: str) -> AsyncIterator[None]:
        """Hold the lock for one position for the duration of the block."""
        key = (owner_id, symbol)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            if lock.locked():
                logger.debug(f"Waiting for position lock {owner_id}/{symbol}")
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


position_locks = PositionLockRegistry()
