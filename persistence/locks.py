from __future__ import annotations

import asyncio
import contextlib
import threading
from pathlib import Path
from typing import AsyncIterator


class PathLockRegistry:
    """
    Provides a stable lock per normalized file path to avoid global contention.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, path: Path) -> threading.Lock:
        key = str(path.resolve())
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


GLOBAL_PATH_LOCKS = PathLockRegistry()


class KeyLockRegistry:
    """
    One asyncio lock per store key.

    Read-modify-write sequences hold the lock of every key they rewrite so two
    coroutines in this process cannot interleave on the same record. Writers in
    other processes are not covered; across processes the last write wins.

    A key's lock exists only while some coroutine holds or waits on it, so the
    registry does not grow with the number of keys ever touched.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def active_keys(self) -> list[str]:
        return sorted(self._locks)

    @contextlib.asynccontextmanager
    async def _hold_one(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @contextlib.asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        # Sorted acquisition keeps two multi-key holders from deadlocking.
        async with contextlib.AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self._hold_one(key))
            yield
