from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from json_store import atomic_write_json, read_json

from .interfaces import KeyedStore, StoreBackendError
from .locks import GLOBAL_PATH_LOCKS

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "homescreen_"


class LocalKeyedStore(KeyedStore):
    """
    Flat, namespaced key-value map kept on this machine.

    - Every key is stored as `namespace + key` so several stores can share one file.
    - With `path=None` the map lives in memory only.
    - With a path, the map is one JSON document rewritten atomically on each write.
    - Listing is a linear scan over all entries.
    """

    def __init__(self, path: Path | None = None, *, namespace: str = DEFAULT_NAMESPACE):
        self._path = path
        self._namespace = namespace
        self._memory: dict[str, str] = {}

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def namespace(self) -> str:
        return self._namespace

    def _load(self) -> dict[str, str]:
        if self._path is None:
            return self._memory
        raw = read_json(self._path)
        if not isinstance(raw, dict):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _save(self, entries: dict[str, str]) -> None:
        if self._path is None:
            self._memory = entries
            return
        atomic_write_json(self._path, entries)

    def _get_sync(self, key: str) -> str | None:
        if self._path is None:
            return self._memory.get(self._namespace + key)
        with GLOBAL_PATH_LOCKS.lock_for(self._path):
            return self._load().get(self._namespace + key)

    def _update_sync(self, key: str, value: str | None) -> None:
        full_key = self._namespace + key
        if self._path is None:
            if value is None:
                self._memory.pop(full_key, None)
            else:
                self._memory[full_key] = value
            return
        with GLOBAL_PATH_LOCKS.lock_for(self._path):
            entries = self._load()
            if value is None:
                if full_key not in entries:
                    return
                entries.pop(full_key)
            else:
                entries[full_key] = value
            self._save(entries)

    def _list_sync(self, prefix: str) -> list[str]:
        full_prefix = self._namespace + prefix
        if self._path is None:
            entries = self._memory
        else:
            with GLOBAL_PATH_LOCKS.lock_for(self._path):
                entries = self._load()
        return [k[len(self._namespace):] for k in entries if k.startswith(full_prefix)]

    def _clear_sync(self) -> None:
        if self._path is None:
            self._memory = {k: v for k, v in self._memory.items() if not k.startswith(self._namespace)}
            return
        with GLOBAL_PATH_LOCKS.lock_for(self._path):
            entries = self._load()
            kept = {k: v for k, v in entries.items() if not k.startswith(self._namespace)}
            self._save(kept)

    async def _run(self, func, *args):
        if self._path is None:
            return func(*args)
        return await asyncio.to_thread(func, *args)

    async def get(self, key: str) -> str | None:
        return await self._run(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        try:
            await self._run(self._update_sync, key, value)
        except OSError as e:
            logger.warning("LOCAL STORE: set failed for %s: %r", key, e)
            raise StoreBackendError("set", key, e) from e

    async def delete(self, key: str) -> None:
        try:
            await self._run(self._update_sync, key, None)
        except OSError as e:
            logger.warning("LOCAL STORE: delete failed for %s: %r", key, e)
            raise StoreBackendError("delete", key, e) from e

    async def list(self, prefix: str = "") -> list[str]:
        return await self._run(self._list_sync, prefix)

    async def clear(self) -> None:
        try:
            await self._run(self._clear_sync)
        except OSError as e:
            logger.warning("LOCAL STORE: clear failed: %r", e)
            raise StoreBackendError("clear", self._namespace + "*", e) from e

    async def aclose(self) -> None:
        return None
