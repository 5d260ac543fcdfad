"""Content repositories for posts, videos and pictures.

Each repository reads rows joined with the author's user record, rebuilds the
comment forest and normalizes the like set on every read. Comment and like
writes are read-modify-write on the JSON columns and run inside one storage
transaction so concurrent writers to the same item cannot lose updates.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar
from uuid import uuid4

import structlog

from mirabellier.auth.models import User, utc_now_iso
from mirabellier.comments.likes import (
    LikeAction,
    flip_like,
    normalize_likes,
    serialize_likes,
    toggle_like,
)
from mirabellier.comments.tree import (
    CommentNode,
    StoredComment,
    batch_user_resolver,
    build_comment_tree,
    deserialize_comments,
    serialize_comments,
)
from mirabellier.content.models import (
    Author,
    ContentItem,
    FreeformAuthor,
    IdentifiedAuthor,
    Picture,
    Post,
    Video,
    author_from_columns,
    author_to_columns,
)
from mirabellier.content.tags import count_tags, sanitize_tags
from mirabellier.core.errors import (
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)


if TYPE_CHECKING:
    from mirabellier.auth.service import AuthService
    from mirabellier.core.database import Database


logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=ContentItem)


def load_json_column(raw: str | None, column: str) -> Any:
    """Parse a free-form JSON column; unreadable values read as None."""
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("json_column_unreadable", column=column)
        return None


def author_for(user: User | None, author_name: str | None) -> Author:
    """Attribute new content to the caller, else to the given free-text name."""
    if user is not None:
        return IdentifiedAuthor(user_id=user.id)
    return FreeformAuthor(name=(author_name or "").strip() or "Unknown")


class ContentRepository(Generic[T]):
    """Shared reads, ownership checks, comments and likes."""

    table: ClassVar[str]
    item_name: ClassVar[str]
    # Fields PUT may change
    updatable_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, db: Database, auth_service: AuthService):
        self.db = db
        self.auth_service = auth_service

    # ==========================================================================
    # Row mapping
    # ==========================================================================

    def _select_sql(self) -> str:
        return f"""
            SELECT t.*, u.username AS author_username, u.avatar AS author_avatar
            FROM {self.table} t
            LEFT JOIN users u ON u.id = t.user_id
        """

    def _from_row(self, row: sqlite3.Row, base: dict[str, Any]) -> T:
        raise NotImplementedError

    def _build_items(self, rows: Sequence[sqlite3.Row]) -> list[T]:
        """Map rows to items, resolving every comment author in one query."""
        parsed = [(row, deserialize_comments(row["comments"])) for row in rows]
        resolve = batch_user_resolver(
            (c for _, comments in parsed for c in comments),
            self.auth_service.get_users_by_ids,
        )

        items = []
        for row, comments in parsed:
            base = {
                "id": row["id"],
                "author": author_from_columns(row["user_id"], row["author"]),
                "author_username": row["author_username"],
                "author_avatar": row["author_avatar"],
                "likes": normalize_likes(row["likes"]),
                "comments": build_comment_tree(comments, resolve),
                "created_at": row["created_at"],
            }
            items.append(self._from_row(row, base))
        return items

    # ==========================================================================
    # Reads
    # ==========================================================================

    def list(self) -> list[T]:
        """All items, newest first."""
        rows = self.db.fetch_all(
            self._select_sql() + " ORDER BY t.created_at DESC, t.rowid DESC"
        )
        return self._build_items(rows)

    def find(self, item_id: str) -> T | None:
        row = self.db.fetch_one(self._select_sql() + " WHERE t.id = ?", (item_id,))
        return self._build_items([row])[0] if row else None

    def get(self, item_id: str) -> T:
        """Raises NotFoundError when the item doesn't exist."""
        item = self.find(item_id)
        if item is None:
            raise NotFoundError(f"{self.item_name} not found")
        return item

    def _require_row(self, item_id: str, columns: str = "*") -> sqlite3.Row:
        row = self.db.fetch_one(
            f"SELECT {columns} FROM {self.table} WHERE id = ?", (item_id,)
        )
        if row is None:
            raise NotFoundError(f"{self.item_name} not found")
        return row

    # ==========================================================================
    # Writes
    # ==========================================================================

    def _insert(self, author: Author, columns: dict[str, Any]) -> str:
        # Dashless so a share-page slug ending in "-<id>" splits cleanly
        item_id = uuid4().hex
        user_id, author_name = author_to_columns(author)
        values = {
            "id": item_id,
            **columns,
            "user_id": user_id,
            "author": author_name,
            "likes": serialize_likes([]),
            "comments": serialize_comments([]),
            "created_at": utc_now_iso(),
        }
        names = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        self.db.execute(
            f"INSERT INTO {self.table} ({names}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        logger.info(
            f"{self.item_name}_created", item_id=item_id, user_id=user_id
        )
        return item_id

    @staticmethod
    def _check_owner(owner_id: str | None, user: User | None) -> User:
        if user is None:
            raise UnauthenticatedError
        if not owner_id or owner_id != user.id:
            raise ForbiddenError
        return user

    def _encode_updates(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Column values for an update. Subclasses encode JSON fields."""
        return {k: v for k, v in fields.items() if k in self.updatable_fields}

    def update(self, item_id: str, user: User | None, fields: dict[str, Any]) -> T:
        """Change payload fields. Only the owning user may update.

        Raises:
            UnauthenticatedError: Anonymous caller
            NotFoundError: Unknown item
            ForbiddenError: Caller isn't the owner (freeform items have none)
        """
        if user is None:
            raise UnauthenticatedError

        with self.db.transaction():
            row = self._require_row(item_id, "user_id")
            self._check_owner(row["user_id"], user)

            columns = self._encode_updates(fields)
            if columns:
                assignments = ", ".join(f"{name} = ?" for name in columns)
                self.db.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE id = ?",
                    (*columns.values(), item_id),
                )

        logger.info(
            f"{self.item_name}_updated", item_id=item_id, fields=sorted(columns)
        )
        return self.get(item_id)

    def delete(self, item_id: str, user: User | None) -> T:
        """Delete an item. Same ownership rule as update.

        Returns:
            The deleted item (callers remove its stored file)
        """
        if user is None:
            raise UnauthenticatedError

        with self.db.transaction():
            item = self.get(item_id)
            self._check_owner(item.user_id, user)
            self.db.execute(f"DELETE FROM {self.table} WHERE id = ?", (item_id,))

        logger.info(f"{self.item_name}_deleted", item_id=item_id, user_id=user.id)
        return item

    # ==========================================================================
    # Comments and likes
    # ==========================================================================

    def add_comment(
        self,
        item_id: str,
        user: User | None,
        text: str | None,
        parent_id: str | None = None,
    ) -> CommentNode:
        """Append a comment to the item's comment list.

        Raises:
            UnauthenticatedError: Anonymous caller
            ValidationError: Empty text
            NotFoundError: Unknown item
        """
        if user is None:
            raise UnauthenticatedError

        text = (text or "").strip()
        if not text:
            raise ValidationError("text required")

        comment = StoredComment(
            id=str(uuid4()),
            user_id=user.id,
            text=text,
            parent_id=parent_id or None,
            created_at=utc_now_iso(),
        )

        with self.db.transaction():
            row = self._require_row(item_id, "comments")
            comments = deserialize_comments(row["comments"])
            comments.append(comment)
            self.db.execute(
                f"UPDATE {self.table} SET comments = ? WHERE id = ?",
                (serialize_comments(comments), item_id),
            )

        logger.info(
            "comment_added",
            item_type=self.item_name,
            item_id=item_id,
            comment_id=comment.id,
            parent_id=comment.parent_id,
        )
        return CommentNode(
            id=comment.id,
            user_id=comment.user_id,
            text=comment.text,
            parent_id=comment.parent_id,
            created_at=comment.created_at,
            user=user,
        )

    def _apply_like(
        self, likes: list[str], user_id: str, action: str | None
    ) -> list[str]:
        return toggle_like(likes, user_id, action or LikeAction.LIKE)

    def toggle_like(
        self, item_id: str, user: User | None, action: str | None = None
    ) -> list[str]:
        """Like or unlike the item for the caller.

        Returns:
            The item's like list after the change

        Raises:
            UnauthenticatedError: Anonymous caller
            InvalidArgumentError: Unknown action
            NotFoundError: Unknown item
        """
        if user is None:
            raise UnauthenticatedError

        with self.db.transaction():
            row = self._require_row(item_id, "likes")
            likes = self._apply_like(normalize_likes(row["likes"]), user.id, action)
            self.db.execute(
                f"UPDATE {self.table} SET likes = ? WHERE id = ?",
                (serialize_likes(likes), item_id),
            )

        logger.info(
            "like_updated",
            item_type=self.item_name,
            item_id=item_id,
            liked=user.id in likes,
        )
        return likes


# ==============================================================================
# Posts
# ==============================================================================


class PostRepository(ContentRepository[Post]):
    table = "posts"
    item_name = "post"
    updatable_fields = frozenset(
        {"title", "content", "short_description", "thumbnail", "tags"}
    )

    def _from_row(self, row: sqlite3.Row, base: dict[str, Any]) -> Post:
        tags = load_json_column(row["tags"], "tags")
        return Post(
            **base,
            title=row["title"] or "Untitled",
            content=load_json_column(row["content"], "content"),
            short_description=row["short_description"] or None,
            thumbnail=row["thumbnail"] or None,
            tags=tags if isinstance(tags, list) else [],
        )

    def create(
        self,
        user: User | None,
        title: str | None = None,
        content: Any = None,
        short_description: str | None = None,
        thumbnail: str | None = None,
        tags: Any = None,
        author_name: str | None = None,
    ) -> Post:
        item_id = self._insert(
            author_for(user, author_name),
            {
                "title": title or "Untitled",
                "content": json.dumps(content if content is not None else {}),
                "short_description": short_description or None,
                "thumbnail": thumbnail or None,
                "tags": json.dumps(sanitize_tags(tags)),
            },
        )
        return self.get(item_id)

    def _encode_updates(self, fields: dict[str, Any]) -> dict[str, Any]:
        columns = super()._encode_updates(fields)
        # An empty title keeps the current one
        if not columns.get("title", True):
            del columns["title"]
        if "content" in columns:
            content = columns["content"]
            columns["content"] = json.dumps(content if content is not None else {})
        if "tags" in columns:
            columns["tags"] = json.dumps(sanitize_tags(columns["tags"]))
        return columns

    def list_tags(self) -> list[tuple[str, int]]:
        """Every tag in use with its post count."""
        rows = self.db.fetch_all("SELECT tags FROM posts")
        tag_lists = []
        for row in rows:
            tags = load_json_column(row["tags"], "tags")
            if isinstance(tags, list):
                tag_lists.append([t for t in tags if isinstance(t, str)])
        return count_tags(tag_lists)


# ==============================================================================
# Videos
# ==============================================================================


class VideoRepository(ContentRepository[Video]):
    table = "videos"
    item_name = "video"
    updatable_fields = frozenset({"name", "description"})

    def _from_row(self, row: sqlite3.Row, base: dict[str, Any]) -> Video:
        return Video(
            **base,
            name=row["name"] or "",
            description=row["description"] or "",
            url=row["url"] or "",
            source=row["source"],
            original_metadata=load_json_column(
                row["original_metadata"], "original_metadata"
            ),
        )

    def create(
        self,
        user: User | None,
        name: str,
        url: str,
        description: str | None = None,
        author_name: str | None = None,
        source: str = "upload",
        original_metadata: Any = None,
    ) -> Video:
        item_id = self._insert(
            author_for(user, author_name),
            {
                "name": name,
                "description": description or "",
                "url": url,
                "source": source,
                "original_metadata": (
                    json.dumps(original_metadata)
                    if original_metadata is not None
                    else None
                ),
            },
        )
        return self.get(item_id)

    def _encode_updates(self, fields: dict[str, Any]) -> dict[str, Any]:
        columns = super()._encode_updates(fields)
        if not columns.get("name", True):
            del columns["name"]
        if "description" in columns and columns["description"] is None:
            columns["description"] = ""
        return columns


# ==============================================================================
# Pictures
# ==============================================================================


class PictureRepository(ContentRepository[Picture]):
    table = "pics"
    item_name = "picture"
    updatable_fields = frozenset({"title"})

    def _from_row(self, row: sqlite3.Row, base: dict[str, Any]) -> Picture:
        return Picture(**base, title=row["title"] or "", url=row["url"] or "")

    def create(
        self,
        user: User | None,
        title: str,
        url: str,
        author_name: str | None = None,
    ) -> Picture:
        item_id = self._insert(
            author_for(user, author_name), {"title": title, "url": url}
        )
        return self.get(item_id)

    def _encode_updates(self, fields: dict[str, Any]) -> dict[str, Any]:
        columns = super()._encode_updates(fields)
        if not columns.get("title", True):
            del columns["title"]
        return columns

    def _apply_like(
        self, likes: list[str], user_id: str, action: str | None
    ) -> list[str]:
        # Without an action the picture endpoint flips the like
        if action is None:
            return flip_like(likes, user_id)
        return toggle_like(likes, user_id, action)
