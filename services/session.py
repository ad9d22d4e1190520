from __future__ import annotations

import logging

from persistence import keys
from persistence.locks import KeyLockRegistry
from persistence.records import AuthUser, new_id
from persistence.repositories import Repositories

logger = logging.getLogger(__name__)


class SessionService:
    """
    Mock sign-in backed by the local-only `current-user` pointer.

    There is no credential check: each sign-in mints a fresh `user_...` id.
    """

    def __init__(self, repos: Repositories, locks: KeyLockRegistry) -> None:
        self._repos = repos
        self._locks = locks

    async def sign_in(self, email: str, provider: str) -> AuthUser:
        user = AuthUser(id=new_id("user"), email=email, provider=provider)
        async with self._locks.hold(keys.SESSION_KEY):
            await self._repos.session.put(user)
        logger.info("SESSION: signed in %s via %s", user.id, provider)
        return user

    async def restore(self, user_id: str) -> AuthUser | None:
        """The stored session, only when it belongs to `user_id`."""
        user = await self._repos.session.get()
        if user is None or user.id != user_id:
            return None
        return user

    async def sign_out(self, user_id: str) -> bool:
        """Clears the stored session if it is `user_id`'s; returns whether it was."""
        async with self._locks.hold(keys.SESSION_KEY):
            if await self.restore(user_id) is None:
                return False
            await self._repos.session.delete()
        logger.info("SESSION: signed out %s", user_id)
        return True
