from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from google.api_core.exceptions import GoogleAPIError

from .interfaces import KeyedStore, StoreBackendError
from .keys import LOCAL_ONLY_KEYS, document_address, list_collections

logger = logging.getLogger(__name__)


class FirestoreKeyedStore(KeyedStore):
    """
    KeyedStore on top of a Firestore client (`firebase_admin.firestore.client()`).

    Each key becomes one document `{collection}/{doc_id}` (see `keys.document_address`)
    holding `value`, `originalKey` and `updatedAt`. Firestore cannot list by key
    prefix, so `list` streams every collection the prefix can reach (see
    `keys.list_collections`) and filters on `originalKey`; cost grows with collection size and there is no pagination.

    Keys in LOCAL_ONLY_KEYS are served by `local` so per-device session state
    never reaches the shared database.
    """

    def __init__(self, client: Any, *, local: KeyedStore, degrade_list_failures: bool = True):
        self._client = client
        self._local = local
        self._degrade_list_failures = degrade_list_failures

    def _document(self, key: str):
        collection, doc_id = document_address(key)
        return self._client.collection(collection).document(doc_id)

    def _get_sync(self, key: str) -> str | None:
        snapshot = self._document(key).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        value = data.get("value")
        return value if isinstance(value, str) else None

    def _set_sync(self, key: str, value: str) -> None:
        self._document(key).set(
            {
                "value": value,
                "originalKey": key,
                "updatedAt": datetime.now(timezone.utc).isoformat(),
            }
        )

    def _delete_sync(self, key: str) -> None:
        self._document(key).delete()

    def _list_sync(self, prefix: str) -> list[str]:
        keys: list[str] = []
        for collection in list_collections(prefix):
            for snapshot in self._client.collection(collection).stream():
                data = snapshot.to_dict() or {}
                original = data.get("originalKey")
                if isinstance(original, str) and original.startswith(prefix):
                    keys.append(original)
        return keys

    async def get(self, key: str) -> str | None:
        if key in LOCAL_ONLY_KEYS:
            return await self._local.get(key)
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except GoogleAPIError as e:
            logger.warning("FIRESTORE: get failed for %s: %r", key, e)
            raise StoreBackendError("get", key, e) from e

    async def set(self, key: str, value: str) -> None:
        if key in LOCAL_ONLY_KEYS:
            await self._local.set(key, value)
            return
        try:
            await asyncio.to_thread(self._set_sync, key, value)
        except GoogleAPIError as e:
            logger.warning("FIRESTORE: set failed for %s: %r", key, e)
            raise StoreBackendError("set", key, e) from e

    async def delete(self, key: str) -> None:
        if key in LOCAL_ONLY_KEYS:
            await self._local.delete(key)
            return
        try:
            await asyncio.to_thread(self._delete_sync, key)
        except GoogleAPIError as e:
            logger.warning("FIRESTORE: delete failed for %s: %r", key, e)
            raise StoreBackendError("delete", key, e) from e

    async def list(self, prefix: str = "") -> list[str]:
        local_keys: list[str] = []
        if any(k.startswith(prefix) for k in LOCAL_ONLY_KEYS):
            local_keys = [k for k in await self._local.list(prefix) if k in LOCAL_ONLY_KEYS]
        try:
            remote_keys = await asyncio.to_thread(self._list_sync, prefix)
        except GoogleAPIError as e:
            if not self._degrade_list_failures:
                raise StoreBackendError("list", prefix, e) from e
            logger.warning("FIRESTORE: list failed for prefix %s, returning no keys: %r", prefix, e)
            remote_keys = []
        return remote_keys + [k for k in local_keys if k not in remote_keys]

    async def clear(self) -> None:
        logger.warning("FIRESTORE: clear is not supported on the shared database; ignoring")

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            await asyncio.to_thread(close)
        await self._local.aclose()
