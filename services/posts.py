from __future__ import annotations

import logging
import re
from typing import Iterable

from pydantic import BaseModel

from persistence import keys
from persistence.locks import KeyLockRegistry
from persistence.records import (
    MAX_COMMENT_LENGTH,
    MAX_IMAGES,
    CommentRecord,
    NotificationType,
    ScreenRecord,
    Visibility,
    new_id,
)
from persistence.repositories import Repositories

from .notifications import NotificationService
from .profiles import AuthorSummary, summarize_user

logger = logging.getLogger(__name__)

URL_RE = re.compile(r"(https?://|www\.)", re.IGNORECASE)


class ScreenNotFoundError(LookupError):
    pass


class InvalidImagesError(ValueError):
    pass


class InvalidCommentError(ValueError):
    pass


class FeedItem(BaseModel):
    screen: ScreenRecord
    user: AuthorSummary


def contains_url(text: str) -> bool:
    return bool(URL_RE.search(text))


def _toggle(ids: list[str], user_id: str) -> tuple[list[str], bool]:
    """Returns the new membership list and whether `user_id` is now a member."""
    if user_id in ids:
        return [i for i in ids if i != user_id], False
    return [*ids, user_id], True


def _newest_first(screens: Iterable[ScreenRecord]) -> list[ScreenRecord]:
    return sorted(screens, key=lambda s: s.createdAt, reverse=True)


class PostService:
    """
    Screen lifecycle: upload, engagement (like / save / comment), visibility and deletion.

    Every mutation is read-modify-write on a whole record, serialized per key
    through KeyLockRegistry.
    """

    def __init__(self, repos: Repositories, locks: KeyLockRegistry, notifications: NotificationService) -> None:
        self._repos = repos
        self._locks = locks
        self._notifications = notifications

    async def _require(self, owner_id: str, screen_id: str) -> ScreenRecord:
        screen = await self._repos.screens.get(owner_id, screen_id)
        if screen is None:
            raise ScreenNotFoundError(f"{owner_id}/{screen_id}")
        return screen

    async def get(self, owner_id: str, screen_id: str) -> ScreenRecord:
        return await self._require(owner_id, screen_id)

    async def upload(
        self,
        user_id: str,
        images: list[str],
        *,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> ScreenRecord:
        if not 1 <= len(images) <= MAX_IMAGES:
            raise InvalidImagesError(f"a post needs between 1 and {MAX_IMAGES} images (got {len(images)})")
        if any(not isinstance(i, str) or not i.strip() for i in images):
            raise InvalidImagesError("images must be non-empty encoded strings")

        async with self._locks.hold(keys.current_screen_key(user_id)):
            previous_id = await self._repos.screens.current_id(user_id)
            screen = ScreenRecord(
                id=new_id("screen"),
                userId=user_id,
                images=list(images),
                visibility=visibility,
                isCurrent=True,
            )
            # Record first, then the pointer: the pointer never names a missing screen.
            await self._repos.screens.put(screen)
            await self._repos.screens.set_current(user_id, screen.id)

            if previous_id is not None and previous_id != screen.id:
                async with self._locks.hold(keys.screen_key(user_id, previous_id)):
                    previous = await self._repos.screens.get(user_id, previous_id)
                    if previous is not None:
                        await self._repos.screens.put(previous.model_copy(update={"isCurrent": False}))

        logger.info("POSTS: %s uploaded %s (%d images, previous=%s)", user_id, screen.id, len(images), previous_id)
        return screen

    async def toggle_like(self, actor_id: str, owner_id: str, screen_id: str) -> ScreenRecord:
        async with self._locks.hold(keys.screen_key(owner_id, screen_id)):
            screen = await self._require(owner_id, screen_id)
            likes, liked = _toggle(screen.likes, actor_id)
            screen = screen.model_copy(update={"likes": likes})
            await self._repos.screens.put(screen)
        if liked:
            await self._notifications.notify(NotificationType.LIKE, actor_id, owner_id, screen_id)
        return screen

    async def toggle_save(self, actor_id: str, owner_id: str, screen_id: str) -> ScreenRecord:
        async with self._locks.hold(keys.screen_key(owner_id, screen_id)):
            screen = await self._require(owner_id, screen_id)
            saves, _ = _toggle(screen.saves, actor_id)
            screen = screen.model_copy(update={"saves": saves})
            await self._repos.screens.put(screen)
        return screen

    async def add_comment(self, actor_id: str, owner_id: str, screen_id: str, text: str) -> CommentRecord:
        body = (text or "").strip()
        if not body:
            raise InvalidCommentError("comment is empty")
        if len(body) > MAX_COMMENT_LENGTH:
            raise InvalidCommentError(f"comment must be <= {MAX_COMMENT_LENGTH} characters")

        comment = CommentRecord(id=new_id("comment"), userId=actor_id, text=body)
        async with self._locks.hold(keys.screen_key(owner_id, screen_id)):
            screen = await self._require(owner_id, screen_id)
            await self._repos.screens.put(screen.model_copy(update={"comments": [*screen.comments, comment]}))
        await self._notifications.notify(NotificationType.COMMENT, actor_id, owner_id, screen_id, body)
        return comment

    async def set_visibility(self, owner_id: str, screen_id: str, visibility: Visibility) -> ScreenRecord:
        async with self._locks.hold(keys.screen_key(owner_id, screen_id)):
            screen = await self._require(owner_id, screen_id)
            if screen.visibility != visibility:
                screen = screen.model_copy(update={"visibility": visibility})
                await self._repos.screens.put(screen)
        return screen

    async def toggle_visibility(self, owner_id: str, screen_id: str) -> ScreenRecord:
        screen = await self._require(owner_id, screen_id)
        flipped = Visibility.PRIVATE if screen.visibility == Visibility.PUBLIC else Visibility.PUBLIC
        return await self.set_visibility(owner_id, screen_id, flipped)

    async def delete(self, owner_id: str, screen_id: str) -> None:
        """Removes the screen; if it was current the user is left without a current screen."""
        async with self._locks.hold(keys.current_screen_key(owner_id), keys.screen_key(owner_id, screen_id)):
            screen = await self._require(owner_id, screen_id)
            if screen.isCurrent:
                await self._repos.screens.clear_current(owner_id)
            await self._repos.screens.delete(owner_id, screen_id)
        logger.info("POSTS: %s deleted %s (current=%s)", owner_id, screen_id, screen.isCurrent)

    async def feed(self) -> list[FeedItem]:
        """Public current screens of every user, newest first."""
        items: list[FeedItem] = []
        for user in await self._repos.users.list_all():
            screen = await self._repos.screens.get_current(user.id)
            if screen is None or screen.visibility != Visibility.PUBLIC:
                continue
            items.append(FeedItem(screen=screen, user=summarize_user(user, user.id)))
        items.sort(key=lambda i: i.screen.createdAt, reverse=True)
        return items

    async def profile_screens(self, owner_id: str, viewer_id: str | None) -> list[ScreenRecord]:
        """Owner sees everything; others see PUBLIC screens. Current first, then newest first."""
        screens = await self._repos.screens.list_for_user(owner_id)
        if viewer_id != owner_id:
            screens = [s for s in screens if s.visibility == Visibility.PUBLIC]
        return sorted(_newest_first(screens), key=lambda s: not s.isCurrent)

    async def saved_screens(self, viewer_id: str) -> list[FeedItem]:
        items: list[FeedItem] = []
        for user in await self._repos.users.list_all():
            for screen in await self._repos.screens.list_for_user(user.id):
                if viewer_id in screen.saves:
                    items.append(FeedItem(screen=screen, user=summarize_user(user, user.id)))
        items.sort(key=lambda i: i.screen.createdAt, reverse=True)
        return items
