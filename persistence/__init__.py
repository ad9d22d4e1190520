from __future__ import annotations

from .factory import build_store
from .interfaces import InvalidKeyError, KeyedStore, MalformedRecordError, StoreBackendError, StoreError
from .local_store import LocalKeyedStore
from .locks import KeyLockRegistry
from .repositories import (
    ActionLogRepository,
    NotificationRepository,
    Repositories,
    ScreenRepository,
    SessionRepository,
    UserRepository,
)

__all__ = [
    "KeyedStore",
    "LocalKeyedStore",
    "build_store",
    "KeyLockRegistry",
    "StoreError",
    "StoreBackendError",
    "MalformedRecordError",
    "InvalidKeyError",
    "Repositories",
    "UserRepository",
    "ScreenRepository",
    "NotificationRepository",
    "ActionLogRepository",
    "SessionRepository",
]
