"""Database models for posts, videos and pictures.

All three share the same shape: an author, a JSON ``likes`` array, a JSON
``comments`` array and a creation timestamp, plus a type-specific payload.

Note: Uses the sqlite3 driver directly (not ORM).
Tables are created by the database module on startup.
"""

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from mirabellier.comments.tree import CommentNode


POSTS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    title TEXT,
    content TEXT,
    user_id TEXT,
    author TEXT,
    created_at TEXT
)
"""

VIDEOS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS videos (
    id TEXT PRIMARY KEY,
    name TEXT,
    description TEXT,
    url TEXT,
    user_id TEXT,
    likes TEXT,
    comments TEXT,
    created_at TEXT,
    source TEXT,
    original_metadata TEXT
)
"""

PICS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS pics (
    id TEXT PRIMARY KEY,
    title TEXT,
    url TEXT,
    user_id TEXT,
    likes TEXT,
    comments TEXT,
    created_at TEXT
)
"""

CONTENT_TABLES_SQL = [POSTS_TABLE_SQL, VIDEOS_TABLE_SQL, PICS_TABLE_SQL]

# Columns added after the first release of each table
CONTENT_COLUMN_MIGRATIONS: list[tuple[str, str, str]] = [
    ("posts", "short_description", "TEXT"),
    ("posts", "thumbnail", "TEXT"),
    ("posts", "tags", "TEXT"),
    ("posts", "likes", "TEXT"),
    ("posts", "comments", "TEXT"),
    ("videos", "author", "TEXT"),
    ("pics", "author", "TEXT"),
]

# Tables carrying likes/comments JSON columns
COMMENTABLE_TABLES = ("posts", "videos", "pics")

UNKNOWN_AUTHOR = "Unknown"


# ==============================================================================
# Author
# ==============================================================================


class IdentifiedAuthor(BaseModel):
    """Content owned by a registered user."""

    kind: Literal["user"] = "user"
    user_id: str


class FreeformAuthor(BaseModel):
    """Content attributed to a free-text name; nobody can edit it."""

    kind: Literal["freeform"] = "freeform"
    name: str = UNKNOWN_AUTHOR


Author = Annotated[IdentifiedAuthor | FreeformAuthor, Field(discriminator="kind")]


def author_from_columns(user_id: str | None, name: str | None) -> Author:
    if user_id:
        return IdentifiedAuthor(user_id=user_id)
    return FreeformAuthor(name=name or UNKNOWN_AUTHOR)


def author_to_columns(author: Author) -> tuple[str | None, str | None]:
    """(user_id, author) column values."""
    if isinstance(author, IdentifiedAuthor):
        return author.user_id, None
    return None, author.name


# ==============================================================================
# Items
# ==============================================================================


@dataclass(kw_only=True)
class ContentItem:
    """Fields shared by posts, videos and pictures.

    ``author_username``/``author_avatar`` come from the joined users row and are
    None for freeform authors or deleted accounts.
    """

    id: str
    author: Author
    author_username: str | None = None
    author_avatar: str | None = None
    likes: list[str] = field(default_factory=list)
    comments: list[CommentNode] = field(default_factory=list)
    created_at: str | None = None

    @property
    def user_id(self) -> str | None:
        return self.author.user_id if isinstance(self.author, IdentifiedAuthor) else None

    @property
    def author_name(self) -> str:
        if isinstance(self.author, IdentifiedAuthor):
            return self.author_username or UNKNOWN_AUTHOR
        return self.author.name


@dataclass(kw_only=True)
class Post(ContentItem):
    title: str = "Untitled"
    content: Any = None
    short_description: str | None = None
    thumbnail: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class Video(ContentItem):
    name: str = ""
    description: str = ""
    url: str = ""
    source: str | None = None
    original_metadata: Any = None


@dataclass(kw_only=True)
class Picture(ContentItem):
    title: str = ""
    url: str = ""
