from __future__ import annotations

import logging

from pydantic import BaseModel

from persistence import keys
from persistence.interfaces import StoreError
from persistence.locks import KeyLockRegistry
from persistence.records import NotificationRecord, NotificationType, new_id
from persistence.repositories import Repositories

from .profiles import AuthorSummary, summarize_user

logger = logging.getLogger(__name__)


class NotificationNotFoundError(LookupError):
    pass


class NotificationView(BaseModel):
    notification: NotificationRecord
    fromUser: AuthorSummary


class NotificationService:
    def __init__(self, repos: Repositories, locks: KeyLockRegistry) -> None:
        self._repos = repos
        self._locks = locks

    async def notify(
        self,
        type: NotificationType,
        from_user_id: str,
        to_user_id: str,
        screen_id: str,
        comment_text: str | None = None,
    ) -> NotificationRecord | None:
        """
        Best-effort: nothing is created for self-actions, and store failures are
        logged rather than raised so the triggering action still succeeds.
        """
        if from_user_id == to_user_id:
            logger.debug("NOTIFY: skipping self-notification for %s", from_user_id)
            return None
        notification = NotificationRecord(
            id=new_id("notif"),
            type=type,
            fromUserId=from_user_id,
            toUserId=to_user_id,
            screenId=screen_id,
            commentText=comment_text,
        )
        try:
            await self._repos.notifications.put(notification)
        except StoreError as e:
            logger.warning("NOTIFY: failed to store %s for %s: %r", type.value, to_user_id, e)
            return None
        return notification

    async def list_for_user(self, user_id: str) -> list[NotificationView]:
        notifications = await self._repos.notifications.list_for_user(user_id)
        notifications.sort(key=lambda n: n.createdAt, reverse=True)

        senders = {}
        for sender_id in {n.fromUserId for n in notifications}:
            senders[sender_id] = summarize_user(await self._repos.users.get(sender_id), sender_id)
        return [NotificationView(notification=n, fromUser=senders[n.fromUserId]) for n in notifications]

    async def unread_count(self, user_id: str) -> int:
        return sum(1 for n in await self._repos.notifications.list_for_user(user_id) if not n.isRead)

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        """Returns True when the notification flipped from unread to read."""
        async with self._locks.hold(keys.notification_key(user_id, notification_id)):
            notification = await self._repos.notifications.get(user_id, notification_id)
            if notification is None:
                raise NotificationNotFoundError(notification_id)
            if notification.isRead:
                return False
            await self._repos.notifications.put(notification.model_copy(update={"isRead": True}))
        return True

    async def mark_all_read(self, user_id: str) -> int:
        changed = 0
        for notification in await self._repos.notifications.list_for_user(user_id):
            if notification.isRead:
                continue
            if await self.mark_read(user_id, notification.id):
                changed += 1
        return changed
