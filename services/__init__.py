from __future__ import annotations

from dataclasses import dataclass

from persistence.interfaces import KeyedStore
from persistence.locks import KeyLockRegistry
from persistence.repositories import Repositories
from settings import Settings

from .analytics import AnalyticsService
from .notifications import NotificationService
from .posts import PostService
from .profiles import ProfileService
from .session import SessionService
from .vision import HomeScreenValidator


@dataclass(frozen=True)
class Services:
    """Everything request handlers need, built around one explicitly owned store."""

    store: KeyedStore
    repos: Repositories
    posts: PostService
    notifications: NotificationService
    profiles: ProfileService
    analytics: AnalyticsService
    session: SessionService
    validator: HomeScreenValidator
    locks: KeyLockRegistry

    async def aclose(self) -> None:
        await self.store.aclose()


def build_services(store: KeyedStore, settings: Settings) -> Services:
    repos = Repositories.from_store(store)
    locks = KeyLockRegistry()
    notifications = NotificationService(repos, locks)
    return Services(
        store=store,
        repos=repos,
        posts=PostService(repos, locks, notifications),
        notifications=notifications,
        profiles=ProfileService(repos, locks),
        analytics=AnalyticsService(repos),
        session=SessionService(repos, locks),
        validator=HomeScreenValidator(settings),
        locks=locks,
    )


__all__ = [
    "Services",
    "build_services",
    "AnalyticsService",
    "NotificationService",
    "PostService",
    "ProfileService",
    "SessionService",
    "HomeScreenValidator",
]
