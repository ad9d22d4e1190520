from __future__ import annotations

import json

import pytest

from persistence.interfaces import MalformedRecordError
from persistence.records import (
    CurrentScreenPointer,
    NotificationRecord,
    NotificationType,
    ScreenRecord,
    UserRecord,
    Visibility,
    decode_record,
    encode_record,
)


def test_malformed_values_are_rejected_at_the_boundary():
    with pytest.raises(MalformedRecordError) as exc:
        decode_record(UserRecord, "{not json", key="user:u1")
    assert exc.value.key == "user:u1"

    with pytest.raises(MalformedRecordError):
        decode_record(ScreenRecord, json.dumps({"id": "s1", "userId": "u1", "images": []}), key="screen:u1:s1")

    with pytest.raises(MalformedRecordError):
        decode_record(
            NotificationRecord,
            json.dumps({"id": "n1", "type": "follow", "fromUserId": "a", "toUserId": "b", "screenId": "s"}),
            key="notification:b:n1",
        )


def test_screen_images_bounds_and_membership_sets():
    with pytest.raises(ValueError):
        ScreenRecord(id="s1", userId="u1", images=["a"] * 6)
    with pytest.raises(ValueError):
        ScreenRecord(id="s1", userId="u1", images=["  "])

    screen = ScreenRecord(id="s1", userId="u1", images=["a"], likes=["b", "c", "b"])
    assert screen.likes == ["b", "c"]
    assert screen.visibility == Visibility.PUBLIC
    assert screen.saves == [] and screen.comments == []


def test_legacy_shapes_are_accepted():
    legacy_screen = json.dumps(
        {"id": "s1", "userId": "u1", "imageUrl": "data:image/jpeg;base64,AAAA", "createdAt": "2025-01-02T03:04:05.000Z"}
    )
    screen = decode_record(ScreenRecord, legacy_screen, key="screen:u1:s1")
    assert screen.images == ["data:image/jpeg;base64,AAAA"]

    pointer = decode_record(CurrentScreenPointer, legacy_screen, key="screen:u1:current")
    assert pointer.screenId == "s1"


def test_encoded_records_use_stored_field_names():
    n = NotificationRecord(id="n1", type=NotificationType.LIKE, fromUserId="B", toUserId="A", screenId="s1")
    doc = json.loads(encode_record(n))
    assert doc["type"] == "like"
    assert doc["fromUserId"] == "B"
    assert doc["isRead"] is False
    assert decode_record(NotificationRecord, encode_record(n), key="k") == n
