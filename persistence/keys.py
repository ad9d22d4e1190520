"""
Colon-delimited key schema shared by every store backend.

    user:{userId}
    screen:{userId}:current
    screen:{userId}:{screenId}
    notification:{toUserId}:{notificationId}
    action:{userId}:{actionId}
    current-user                 (session pointer, local-only)
"""

from __future__ import annotations

from .interfaces import InvalidKeyError

SEPARATOR = ":"
CURRENT = "current"
SESSION_KEY = "current-user"

# Keys that hold per-device state and never leave the local backend.
LOCAL_ONLY_KEYS = frozenset({SESSION_KEY})

COLLECTIONS = {
    "user": "users",
    "screen": "screens",
    "notification": "notifications",
    "action": "actions",
}
FALLBACK_COLLECTION = "sessions"


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def current_screen_key(user_id: str) -> str:
    return f"screen:{user_id}:{CURRENT}"


def screen_key(user_id: str, screen_id: str) -> str:
    return f"screen:{user_id}:{screen_id}"


def notification_key(to_user_id: str, notification_id: str) -> str:
    return f"notification:{to_user_id}:{notification_id}"


def action_key(user_id: str, action_id: str) -> str:
    return f"action:{user_id}:{action_id}"


def user_prefix() -> str:
    return "user:"


def screen_prefix(user_id: str) -> str:
    return f"screen:{user_id}:"


def notification_prefix(to_user_id: str) -> str:
    return f"notification:{to_user_id}:"


def action_prefix(user_id: str) -> str:
    return f"action:{user_id}:"


def split_key(key: str) -> list[str]:
    return key.split(SEPARATOR)


def is_current_screen_key(key: str) -> bool:
    parts = split_key(key)
    return len(parts) == 3 and parts[0] == "screen" and parts[2] == CURRENT


def user_id_from_user_key(key: str) -> str:
    if not key.startswith(user_prefix()):
        raise InvalidKeyError(f"not a user key: {key!r}")
    return key[len(user_prefix()):]


def document_address(key: str) -> tuple[str, str]:
    """
    Map a key onto a (collection, document id) pair.

    The leading segment picks the collection and the remaining segments are
    joined with "_" to form the document id: `screen:u1:abc` -> ("screens", "u1_abc").
    Unrecognised keys land in the fallback collection under their full text.
    """
    head, sep, rest = key.partition(SEPARATOR)
    if sep and head in COLLECTIONS and not rest:
        raise InvalidKeyError(f"key {key!r} has no id after its {head!r} segment")
    collection = COLLECTIONS.get(head) if rest else None
    if collection is None:
        doc_id = key
        collection = FALLBACK_COLLECTION
    else:
        doc_id = "_".join(split_key(rest))
    if not doc_id or "/" in doc_id:
        raise InvalidKeyError(f"key {key!r} cannot be used as a document id")
    return collection, doc_id


def list_collections(prefix: str) -> tuple[str, ...]:
    """
    Collections that can hold a key starting with `prefix`.

    A prefix with a complete known leading segment (`notification:u1:`) pins one
    collection. Anything shorter (`""`, `user`, `scr`) may match several, and
    unrecognised keys can start with anything, so the fallback is included.
    """
    head, sep, _ = prefix.partition(SEPARATOR)
    if sep:
        if head in COLLECTIONS:
            return (COLLECTIONS[head],)
        return (FALLBACK_COLLECTION,)
    matching = tuple(c for h, c in COLLECTIONS.items() if h.startswith(prefix))
    return matching + (FALLBACK_COLLECTION,)
