from __future__ import annotations

import logging
from datetime import date
from typing import Any

from pydantic import BaseModel

from persistence.locks import KeyLockRegistry
from persistence import keys
from persistence.records import AgePublicSetting, UserRecord, utc_now
from persistence.repositories import Repositories

logger = logging.getLogger(__name__)

MAX_DISPLAY_NAME_LENGTH = 20
MAX_BIO_LENGTH = 100
MAX_AGE = 120
ANONYMOUS_NAME = "Anonymous"
DEFAULT_BIO = "Nice to meet you!"

EDITABLE_FIELDS = ("displayName", "bio", "birthDate", "agePublicSetting", "profileImage")


class UserNotFoundError(LookupError):
    pass


class InvalidProfileError(ValueError):
    pass


class AuthorSummary(BaseModel):
    id: str
    displayName: str
    ageDisplay: str | None = None
    profileImage: str | None = None


def calculate_age(birth_date: date, today: date | None = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def format_age(birth_date: date | None, setting: AgePublicSetting, today: date | None = None) -> str | None:
    """"25" for AGE, "20s" for DECADE, None when hidden or unknown."""
    if setting == AgePublicSetting.HIDE or birth_date is None:
        return None
    age = calculate_age(birth_date, today)
    if setting == AgePublicSetting.DECADE:
        return f"{(age // 10) * 10}s"
    return str(age)


def summarize_user(user: UserRecord | None, user_id: str, *, today: date | None = None) -> AuthorSummary:
    if user is None:
        return AuthorSummary(id=user_id, displayName=ANONYMOUS_NAME)
    return AuthorSummary(
        id=user.id,
        displayName=user.displayName or ANONYMOUS_NAME,
        ageDisplay=format_age(user.birthDate, user.agePublicSetting, today),
        profileImage=user.profileImage,
    )


def _validate(user: UserRecord, today: date | None = None) -> None:
    name = (user.displayName or "").strip()
    if not name:
        raise InvalidProfileError("displayName is required")
    if len(name) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidProfileError(f"displayName must be <= {MAX_DISPLAY_NAME_LENGTH} characters")
    if user.bio is not None and len(user.bio) > MAX_BIO_LENGTH:
        raise InvalidProfileError(f"bio must be <= {MAX_BIO_LENGTH} characters")
    if user.birthDate is None:
        raise InvalidProfileError("birthDate is required")
    today = today or date.today()
    if user.birthDate > today:
        raise InvalidProfileError("birthDate cannot be in the future")
    if calculate_age(user.birthDate, today) >= MAX_AGE:
        raise InvalidProfileError(f"age must be below {MAX_AGE}")


class ProfileService:
    def __init__(self, repos: Repositories, locks: KeyLockRegistry) -> None:
        self._repos = repos
        self._locks = locks

    async def get_profile(self, user_id: str) -> UserRecord | None:
        return await self._repos.users.get(user_id)

    async def summary(self, user_id: str) -> AuthorSummary:
        return summarize_user(await self._repos.users.get(user_id), user_id)

    async def complete_setup(
        self,
        user_id: str,
        *,
        display_name: str,
        birth_date: date,
        bio: str | None = DEFAULT_BIO,
        profile_image: str | None = None,
    ) -> UserRecord:
        now = utc_now()
        user = UserRecord(
            id=user_id,
            displayName=display_name.strip(),
            bio=bio,
            birthDate=birth_date,
            agePublicSetting=AgePublicSetting.AGE,
            profileImage=profile_image,
            createdAt=now,
            updatedAt=now,
        )
        _validate(user)
        async with self._locks.hold(keys.user_key(user_id)):
            await self._repos.users.put(user)
        logger.info("PROFILE: created %s", user_id)
        return user

    async def update_profile(self, user_id: str, **changes: Any) -> UserRecord:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidProfileError(f"unsupported profile fields: {sorted(unknown)}")
        async with self._locks.hold(keys.user_key(user_id)):
            user = await self._repos.users.get(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            if isinstance(changes.get("displayName"), str):
                changes["displayName"] = changes["displayName"].strip()
            merged = user.model_dump()
            merged.update(changes)
            merged["updatedAt"] = utc_now()
            updated = UserRecord.model_validate(merged)
            _validate(updated)
            await self._repos.users.put(updated)
        return updated
