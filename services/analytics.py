from __future__ import annotations

import calendar
import csv
import io
import json
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from persistence.interfaces import StoreError
from persistence.records import ActionLogEntry, ActionType, new_id
from persistence.repositories import Repositories

from .profiles import ANONYMOUS_NAME

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
EXPORT_LIMIT = 10000
CSV_HEADERS = ["ID", "User ID", "Action", "Timestamp", "Metadata"]


class ActionStats(BaseModel):
    total: int = 0
    byType: dict[str, int] = Field(default_factory=dict)
    byDay: dict[str, int] = Field(default_factory=dict)
    mostActiveHour: int | None = None
    mostActiveDay: str | None = None


class UserActionStats(ActionStats):
    userId: str
    displayName: str


def _aware(value: datetime | None) -> datetime | None:
    # Naive bounds are taken as UTC, matching how timestamps are written.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _most_common(counts: Counter) -> Any | None:
    # Ties resolve to the smallest key.
    if not counts:
        return None
    return max(sorted(counts), key=lambda k: counts[k])


def compute_stats(actions: list[ActionLogEntry]) -> ActionStats:
    by_type: Counter = Counter(a.actionType.value for a in actions)
    by_day: Counter = Counter(a.timestamp.date().isoformat() for a in actions)
    hours: Counter = Counter(a.timestamp.hour for a in actions)
    weekdays: Counter = Counter(a.timestamp.weekday() for a in actions)

    weekday = _most_common(weekdays)
    return ActionStats(
        total=len(actions),
        byType=dict(by_type),
        byDay=dict(sorted(by_day.items())),
        mostActiveHour=_most_common(hours),
        mostActiveDay=calendar.day_name[weekday] if weekday is not None else None,
    )


class AnalyticsService:
    """Append-only user action log and the aggregates read from it."""

    def __init__(self, repos: Repositories) -> None:
        self._repos = repos

    async def log_action(
        self,
        user_id: str,
        action_type: ActionType,
        metadata: dict[str, Any] | None = None,
        *,
        user_agent: str | None = None,
        screen_width: int | None = None,
        screen_height: int | None = None,
    ) -> ActionLogEntry | None:
        entry = ActionLogEntry(
            id=new_id("action"),
            userId=user_id,
            actionType=action_type,
            metadata=metadata or {},
            userAgent=user_agent,
            screenWidth=screen_width,
            screenHeight=screen_height,
        )
        try:
            await self._repos.actions.append(entry)
        except StoreError as e:
            logger.warning("ACTION LOG: failed to record %s for %s: %r", action_type.value, user_id, e)
            return None
        logger.debug("ACTION LOG: %s %s %s", user_id, action_type.value, entry.metadata)
        return entry

    async def user_actions(
        self,
        user_id: str,
        *,
        action_type: ActionType | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[ActionLogEntry]:
        start, end = _aware(start), _aware(end)
        actions = [
            a
            for a in await self._repos.actions.list_for_user(user_id)
            if (action_type is None or a.actionType == action_type)
            and (start is None or a.timestamp >= start)
            and (end is None or a.timestamp <= end)
        ]
        actions.sort(key=lambda a: a.timestamp, reverse=True)
        return actions[: max(0, limit)]

    async def action_stats(self, user_id: str) -> ActionStats:
        return compute_stats(await self.user_actions(user_id, limit=EXPORT_LIMIT))

    async def all_users_stats(self) -> list[UserActionStats]:
        out: list[UserActionStats] = []
        for user in await self._repos.users.list_all():
            stats = await self.action_stats(user.id)
            out.append(
                UserActionStats(
                    userId=user.id,
                    displayName=user.displayName or ANONYMOUS_NAME,
                    **stats.model_dump(),
                )
            )
        return out

    async def export_actions_csv(self, user_id: str) -> str:
        actions = await self.user_actions(user_id, limit=EXPORT_LIMIT)
        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        buf.write(",".join(CSV_HEADERS) + "\n")
        for a in actions:
            writer.writerow(
                [a.id, a.userId, a.actionType.value, a.timestamp.isoformat(), json.dumps(a.metadata, ensure_ascii=False)]
            )
        return buf.getvalue()
