"""Per-category asyncio locks."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ProgressUpdateTimeoutError(TimeoutError):
    """Raised when a category lock could not be acquired in time."""

    def __init__(self, category: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout}s waiting for category '{category}'")
        self.category = category
        self.timeout = timeout


class CategoryLockRegistry:
    """Hands out one lock per category key.

    Updates for the same category queue behind each other; updates for
    different categories never contend.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, category: str) -> asyncio.Lock:
        lock = self._locks.get(category)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[category] = lock
        return lock

    @asynccontextmanager
    async def hold(self, category: str, timeout: float | None = None) -> AsyncIterator[None]:
        """Hold the lock for ``category`` for the duration of the block."""
        lock = self.lock_for(category)
        if timeout is None:
            await lock.acquire()
        else:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise ProgressUpdateTimeoutError(category, timeout) from e
        try:
            yield
        finally:
            lock.release()

    def __len__(self) -> int:
        return len(self._locks)


__all__ = ["CategoryLockRegistry", "ProgressUpdateTimeoutError"]
