"""Like sets stored as JSON arrays of user ids.

The array is insertion-ordered. ``like`` never adds a second copy of a user
and ``unlike`` removes every copy.

Old rows may hold a plain integer like count instead of an array. Those read
as an empty set; the count cannot be mapped back to users and is dropped
(a warning is logged when it happens).
"""

import json
from collections.abc import Iterable
from enum import Enum
from typing import Any

import structlog

from mirabellier.core.errors import InvalidArgumentError


logger = structlog.get_logger(__name__)


class LikeAction(str, Enum):
    LIKE = "like"
    UNLIKE = "unlike"


def toggle_like(likes: list[str], user_id: str, action: LikeAction | str) -> list[str]:
    """Apply a like/unlike action and return the new like list.

    Raises:
        InvalidArgumentError: Action is neither ``like`` nor ``unlike``
    """
    try:
        action = LikeAction(action)
    except ValueError as e:
        raise InvalidArgumentError("invalid action") from e

    if action is LikeAction.LIKE:
        if user_id in likes:
            return list(likes)
        return [*likes, user_id]

    return [uid for uid in likes if uid != user_id]


def flip_like(likes: list[str], user_id: str) -> list[str]:
    """Like when absent, unlike when present."""
    action = LikeAction.UNLIKE if user_id in likes else LikeAction.LIKE
    return toggle_like(likes, user_id, action)


def _discard_legacy_count(count: Any) -> list[str]:
    logger.warning("legacy_like_count_discarded", count=count)
    return []


def normalize_likes(raw: Any) -> list[str]:
    """Read a likes column into a list of user ids.

    NULL, empty, malformed JSON, non-arrays and legacy integer counts all
    give ``[]``.
    """
    if raw is None or raw == "":
        return []

    if isinstance(raw, bool):
        return []
    if isinstance(raw, int | float):
        return _discard_legacy_count(raw)

    if isinstance(raw, list):
        data: Any = raw
    else:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("likes_column_unreadable")
            return []

    if isinstance(data, bool):
        return []
    if isinstance(data, int | float):
        return _discard_legacy_count(data)
    if not isinstance(data, list):
        return []

    return [uid if isinstance(uid, str) else str(uid) for uid in data]


def serialize_likes(likes: Iterable[str]) -> str:
    return json.dumps(list(likes))


def deserialize_likes(raw: Any) -> list[str]:
    return normalize_likes(raw)
