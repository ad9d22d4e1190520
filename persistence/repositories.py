from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from pydantic import BaseModel

from . import keys
from .interfaces import KeyedStore, MalformedRecordError
from .records import (
    ActionLogEntry,
    AuthUser,
    CurrentScreenPointer,
    NotificationRecord,
    ScreenRecord,
    UserRecord,
    decode_record,
    encode_record,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class _RecordRepository:
    """
    Typed access to whole-record JSON blobs kept in a KeyedStore.

    Single reads raise MalformedRecordError for values that fail validation.
    Prefix scans skip (and log) such values so one bad record cannot hide the rest.
    """

    def __init__(self, store: KeyedStore) -> None:
        self._store = store

    async def _read(self, key: str, model: type[R]) -> R | None:
        raw = await self._store.get(key)
        if raw is None:
            return None
        return decode_record(model, raw, key=key)

    async def _write(self, key: str, record: BaseModel) -> None:
        await self._store.set(key, encode_record(record))

    async def _scan(self, prefix: str, model: type[R], *, skip: Callable[[str], bool] | None = None) -> list[R]:
        records: list[R] = []
        for key in await self._store.list(prefix):
            if skip is not None and skip(key):
                continue
            try:
                record = await self._read(key, model)
            except MalformedRecordError as e:
                logger.warning("SCAN %s: skipping %s", prefix, e)
                continue
            # Deleted between list and get.
            if record is not None:
                records.append(record)
        return records


class UserRepository(_RecordRepository):
    async def get(self, user_id: str) -> UserRecord | None:
        return await self._read(keys.user_key(user_id), UserRecord)

    async def put(self, user: UserRecord) -> None:
        await self._write(keys.user_key(user.id), user)

    async def list_ids(self) -> list[str]:
        return [keys.user_id_from_user_key(k) for k in await self._store.list(keys.user_prefix())]

    async def list_all(self) -> list[UserRecord]:
        return await self._scan(keys.user_prefix(), UserRecord)


class ScreenRepository(_RecordRepository):
    """
    Screens live under `screen:{userId}:{screenId}`; `screen:{userId}:current`
    holds only a pointer to the active one. `isCurrent` on returned records is
    recomputed from that pointer, which is the single source of truth.
    """

    async def current_id(self, user_id: str) -> str | None:
        pointer = await self._read(keys.current_screen_key(user_id), CurrentScreenPointer)
        return pointer.screenId if pointer is not None else None

    @staticmethod
    def _mark(screen: ScreenRecord, current_id: str | None) -> ScreenRecord:
        is_current = screen.id == current_id
        if screen.isCurrent == is_current:
            return screen
        return screen.model_copy(update={"isCurrent": is_current})

    async def get(self, user_id: str, screen_id: str) -> ScreenRecord | None:
        if screen_id == keys.CURRENT:
            # Reserved for the pointer; no screen can carry this id.
            return None
        screen = await self._read(keys.screen_key(user_id, screen_id), ScreenRecord)
        if screen is None:
            return None
        return self._mark(screen, await self.current_id(user_id))

    async def get_current(self, user_id: str) -> ScreenRecord | None:
        current_id = await self.current_id(user_id)
        if current_id is None:
            return None
        screen = await self._read(keys.screen_key(user_id, current_id), ScreenRecord)
        if screen is None:
            logger.warning("SCREENS: %s points at missing screen %s", keys.current_screen_key(user_id), current_id)
            return None
        return self._mark(screen, current_id)

    async def list_for_user(self, user_id: str) -> list[ScreenRecord]:
        current_id = await self.current_id(user_id)
        screens = await self._scan(keys.screen_prefix(user_id), ScreenRecord, skip=keys.is_current_screen_key)
        return [self._mark(s, current_id) for s in screens]

    async def put(self, screen: ScreenRecord) -> None:
        await self._write(keys.screen_key(screen.userId, screen.id), screen)

    async def set_current(self, user_id: str, screen_id: str) -> None:
        await self._write(keys.current_screen_key(user_id), CurrentScreenPointer(screenId=screen_id))

    async def clear_current(self, user_id: str) -> None:
        await self._store.delete(keys.current_screen_key(user_id))

    async def delete(self, user_id: str, screen_id: str) -> None:
        if screen_id == keys.CURRENT:
            return
        await self._store.delete(keys.screen_key(user_id, screen_id))


class NotificationRepository(_RecordRepository):
    async def get(self, to_user_id: str, notification_id: str) -> NotificationRecord | None:
        return await self._read(keys.notification_key(to_user_id, notification_id), NotificationRecord)

    async def put(self, notification: NotificationRecord) -> None:
        await self._write(keys.notification_key(notification.toUserId, notification.id), notification)

    async def list_for_user(self, to_user_id: str) -> list[NotificationRecord]:
        return await self._scan(keys.notification_prefix(to_user_id), NotificationRecord)


class ActionLogRepository(_RecordRepository):
    """Append-only; entries are never rewritten or removed."""

    async def append(self, entry: ActionLogEntry) -> None:
        await self._write(keys.action_key(entry.userId, entry.id), entry)

    async def list_for_user(self, user_id: str) -> list[ActionLogEntry]:
        return await self._scan(keys.action_prefix(user_id), ActionLogEntry)


class SessionRepository(_RecordRepository):
    async def get(self) -> AuthUser | None:
        return await self._read(keys.SESSION_KEY, AuthUser)

    async def put(self, user: AuthUser) -> None:
        await self._write(keys.SESSION_KEY, user)

    async def delete(self) -> None:
        await self._store.delete(keys.SESSION_KEY)


@dataclass(frozen=True)
class Repositories:
    store: KeyedStore
    users: UserRepository
    screens: ScreenRepository
    notifications: NotificationRepository
    actions: ActionLogRepository
    session: SessionRepository

    @classmethod
    def from_store(cls, store: KeyedStore) -> "Repositories":
        return cls(
            store=store,
            users=UserRepository(store),
            screens=ScreenRepository(store),
            notifications=NotificationRepository(store),
            actions=ActionLogRepository(store),
            session=SessionRepository(store),
        )
