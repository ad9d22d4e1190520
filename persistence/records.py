from __future__ import annotations

import secrets
import time
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .interfaces import MalformedRecordError

MAX_IMAGES = 5
MAX_COMMENT_LENGTH = 200


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """`{prefix}_{epoch millis}_{random hex}`; sortable by creation time within one prefix."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class AgePublicSetting(str, Enum):
    AGE = "AGE"
    DECADE = "DECADE"
    HIDE = "HIDE"


class Visibility(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"


class ActionType(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    SIGNUP = "signup"
    POST_CREATE = "post_create"
    POST_VIEW = "post_view"
    POST_DELETE = "post_delete"
    LIKE_ADD = "like_add"
    LIKE_REMOVE = "like_remove"
    SAVE_ADD = "save_add"
    SAVE_REMOVE = "save_remove"
    COMMENT_ADD = "comment_add"
    COMMENT_VIEW = "comment_view"
    PROFILE_VIEW = "profile_view"
    PROFILE_EDIT = "profile_edit"
    SCREEN_CHANGE = "screen_change"
    NOTIFICATION_VIEW = "notification_view"
    NOTIFICATION_CLICK = "notification_click"
    SEARCH = "search"
    FILTER_APPLY = "filter_apply"


def _unique(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


class UserRecord(BaseModel):
    id: str
    displayName: str | None = None
    bio: str | None = None
    birthDate: date | None = None
    agePublicSetting: AgePublicSetting = AgePublicSetting.AGE
    profileImage: str | None = None
    createdAt: datetime = Field(default_factory=utc_now)
    updatedAt: datetime = Field(default_factory=utc_now)


class CommentRecord(BaseModel):
    id: str
    userId: str
    text: str
    createdAt: datetime = Field(default_factory=utc_now)


class ScreenRecord(BaseModel):
    """
    One post. `images` holds inline-encoded screenshots (data URLs or base64).

    Stored as-is under `screen:{userId}:{id}`. `isCurrent` mirrors the user's
    current pointer at write time; readers going through ScreenRepository get
    it recomputed from the pointer.
    """

    id: str
    userId: str
    images: list[str] = Field(min_length=1, max_length=MAX_IMAGES)
    visibility: Visibility = Visibility.PUBLIC
    isCurrent: bool = False
    likes: list[str] = Field(default_factory=list)
    saves: list[str] = Field(default_factory=list)
    comments: list[CommentRecord] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=utc_now)

    @model_validator(mode="before")
    @classmethod
    def _lift_single_image(cls, data: Any) -> Any:
        # Early posts carried one `imageUrl` instead of `images`.
        if isinstance(data, dict) and "images" not in data and data.get("imageUrl"):
            data = {**data, "images": [data["imageUrl"]]}
        return data

    @field_validator("images")
    @classmethod
    def _non_empty_images(cls, images: list[str]) -> list[str]:
        if any(not isinstance(i, str) or not i.strip() for i in images):
            raise ValueError("images must be non-empty strings")
        return images

    @field_validator("likes", "saves")
    @classmethod
    def _as_set(cls, ids: list[str]) -> list[str]:
        return _unique(ids)


class CurrentScreenPointer(BaseModel):
    """Value of `screen:{userId}:current`: the id of the user's active post."""

    screenId: str
    updatedAt: datetime = Field(default_factory=utc_now)

    @model_validator(mode="before")
    @classmethod
    def _from_legacy_copy(cls, data: Any) -> Any:
        # Older writers stored a full copy of the screen under the current key.
        if isinstance(data, dict) and "screenId" not in data and isinstance(data.get("id"), str):
            legacy = {"screenId": data["id"]}
            if data.get("createdAt"):
                legacy["updatedAt"] = data["createdAt"]
            return legacy
        return data


class NotificationRecord(BaseModel):
    id: str
    type: NotificationType
    fromUserId: str
    toUserId: str
    screenId: str
    commentText: str | None = None
    isRead: bool = False
    createdAt: datetime = Field(default_factory=utc_now)


class ActionLogEntry(BaseModel):
    id: str
    userId: str
    actionType: ActionType
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)
    userAgent: str | None = None
    screenWidth: int | None = None
    screenHeight: int | None = None


class AuthUser(BaseModel):
    """Value of the local-only `current-user` session pointer."""

    id: str
    email: str | None = None
    provider: str | None = None
    createdAt: datetime = Field(default_factory=utc_now)


R = TypeVar("R", bound=BaseModel)


def encode_record(record: BaseModel) -> str:
    return record.model_dump_json()


def decode_record(model: type[R], raw: str, *, key: str) -> R:
    """Parse and validate a stored value; anything that does not fit `model` is rejected."""
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedRecordError(key, f"{model.__name__}: {e.error_count()} validation error(s)") from e
