"""Comment storage format and reply-tree reconstruction.

Comments for posts, videos and pictures are kept as a flat JSON array in the
item's ``comments`` column. Keys stay camelCase (``userId``, ``parentId``,
``createdAt``) so rows written by earlier versions remain readable.

``build_comment_tree`` turns that flat list into a forest of replies:

- every stored comment becomes exactly one node
- a node hangs under its parent when the parent id is known, otherwise it is a
  root (orphan promotion)
- comments that are their own parent, or sit on a parent cycle, are roots
- siblings keep storage order
"""

import json
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from mirabellier.auth.models import User


logger = structlog.get_logger(__name__)

UserResolver = Callable[[str], User | None]


@dataclass
class StoredComment:
    """One comment as persisted in a JSON column."""

    id: str
    user_id: str | None
    text: str
    parent_id: str | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoredComment":
        parent_id = data.get("parentId")
        user_id = data.get("userId")
        return cls(
            id=str(data.get("id", "")),
            user_id=str(user_id) if user_id is not None else None,
            text=str(data.get("text") or ""),
            parent_id=str(parent_id) if parent_id else None,
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "text": self.text,
            "parentId": self.parent_id,
            "createdAt": self.created_at,
        }


@dataclass
class CommentNode:
    """A comment in the reply forest, with its resolved author."""

    id: str
    user_id: str | None
    text: str
    parent_id: str | None
    created_at: str | None
    user: User | None = None
    children: list["CommentNode"] = field(default_factory=list)


def serialize_comments(comments: Iterable[StoredComment]) -> str:
    return json.dumps([comment.to_dict() for comment in comments])


def deserialize_comments(raw: str | None) -> list[StoredComment]:
    """Parse a comments column. NULL, empty or unreadable values give ``[]``."""
    if not raw:
        return []

    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("comments_column_unreadable")
        return []

    if not isinstance(data, list):
        logger.warning("comments_column_not_a_list", value_type=type(data).__name__)
        return []

    return [StoredComment.from_dict(item) for item in data if isinstance(item, dict)]


def _cycle_members(parent_of: dict[str, str | None]) -> set[str]:
    """Ids that lie on a parent cycle (including self-parents)."""
    members: set[str] = set()
    done: set[str] = set()

    for start in parent_of:
        if start in done:
            continue
        path: list[str] = []
        position: dict[str, int] = {}
        current: str | None = start
        while current is not None and current not in done:
            if current in position:
                members.update(path[position[current] :])
                break
            position[current] = len(path)
            path.append(current)
            current = parent_of.get(current)
        done.update(path)

    return members


def build_comment_tree(
    comments: Sequence[StoredComment],
    resolve_user: UserResolver | None = None,
) -> list[CommentNode]:
    """Rebuild the reply forest from the stored flat list.

    Args:
        comments: Comments in storage order (not modified)
        resolve_user: Author lookup; authors are None when omitted or unknown

    Returns:
        Root nodes in storage order
    """
    nodes: list[CommentNode] = []
    index: dict[str, CommentNode] = {}

    for comment in comments:
        user = None
        if resolve_user is not None and comment.user_id:
            user = resolve_user(comment.user_id)
        node = CommentNode(
            id=comment.id,
            user_id=comment.user_id,
            text=comment.text,
            parent_id=comment.parent_id,
            created_at=comment.created_at,
            user=user,
        )
        nodes.append(node)
        # First occurrence owns a duplicated id
        index.setdefault(comment.id, node)

    parent_of = {
        comment_id: node.parent_id if node.parent_id in index else None
        for comment_id, node in index.items()
    }
    on_cycle = _cycle_members(parent_of)

    roots: list[CommentNode] = []
    for node in nodes:
        parent = index.get(node.parent_id) if node.parent_id else None
        owns_id = index[node.id] is node
        if parent is None or (owns_id and node.id in on_cycle):
            roots.append(node)
        else:
            parent.children.append(node)

    return roots


def count_nodes(forest: Iterable[CommentNode]) -> int:
    """Total number of nodes in a forest."""
    return sum(1 + count_nodes(node.children) for node in forest)


def batch_user_resolver(
    comments: Iterable[StoredComment],
    lookup: Callable[[Iterable[str]], dict[str, User]],
) -> UserResolver:
    """Resolve every comment author with one batch lookup."""
    users = lookup(c.user_id for c in comments if c.user_id)
    return users.get
