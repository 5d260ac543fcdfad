"""Database models for authentication.

SQLite table definitions for:
- Users: accounts (password and/or Discord-linked)
- Sessions: opaque bearer token -> user id

Note: Uses the sqlite3 driver directly (not ORM).
Tables are created by the database module on startup.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from mirabellier.auth.permissions import UserRole


USER_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT UNIQUE,
    password_hash TEXT,
    avatar TEXT,
    created_at TEXT
)
"""

SESSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sessions (
    token TEXT PRIMARY KEY,
    user_id TEXT
)
"""

SESSION_USER_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS sessions_user_id_idx ON sessions (user_id)
"""

USER_DISCORD_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS users_discord_id_idx ON users (discord_id)
"""

# The original users table only had id/username/hash/avatar/created_at; the
# rest arrive as additive columns so older databases keep working.
AUTH_COLUMN_MIGRATIONS: list[tuple[str, str, str]] = [
    ("users", "discord_id", "TEXT"),
    ("users", "banner", "TEXT"),
    ("users", "bio", "TEXT"),
    ("users", "location", "TEXT"),
    ("users", "website", "TEXT"),
    ("users", "role", "TEXT NOT NULL DEFAULT 'user'"),
    ("sessions", "created_at", "TEXT"),
]

AUTH_TABLES_SQL = [
    USER_TABLE_SQL,
    SESSION_TABLE_SQL,
    SESSION_USER_INDEX_SQL,
]

# Needs the discord_id column, so it runs after the column migrations
AUTH_POST_MIGRATION_SQL = [USER_DISCORD_INDEX_SQL]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (the stored timestamp format)."""
    return datetime.now(UTC).isoformat()


class User:
    """User entity for authentication and authorization.

    Attributes:
        id: Unique identifier (uuid string)
        username: Unique login / display name
        password_hash: Argon2id hash, None for Discord-only accounts
        discord_id: Linked Discord account id
        avatar: Avatar URL or /images path
        banner: Banner URL or /images path
        bio: Free text
        location: Free text
        website: Free text
        role: user, curator or admin
        created_at: ISO-8601 creation timestamp
    """

    def __init__(
        self,
        id: str | None = None,
        username: str = "",
        password_hash: str | None = None,
        discord_id: str | None = None,
        avatar: str | None = None,
        banner: str | None = None,
        bio: str | None = None,
        location: str | None = None,
        website: str | None = None,
        role: str = UserRole.USER.value,
        created_at: str | None = None,
    ):
        self.id = id or str(uuid4())
        self.username = username
        self.password_hash = password_hash
        self.discord_id = discord_id
        self.avatar = avatar
        self.banner = banner
        self.bio = bio
        self.location = location
        self.website = website
        self.role = role or UserRole.USER.value
        self.created_at = created_at or utc_now_iso()

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from a sqlite3.Row."""
        keys = row.keys()
        return cls(
            id=row["id"],
            username=row["username"],
            password_hash=row["password_hash"],
            discord_id=row["discord_id"] if "discord_id" in keys else None,
            avatar=row["avatar"],
            banner=row["banner"] if "banner" in keys else None,
            bio=row["bio"] if "bio" in keys else None,
            location=row["location"] if "location" in keys else None,
            website=row["website"] if "website" in keys else None,
            role=row["role"] if "role" in keys else UserRole.USER.value,
            created_at=row["created_at"],
        )

    def to_public_dict(self) -> dict[str, Any]:
        """Public profile projection (never includes the password hash)."""
        return {
            "id": self.id,
            "username": self.username,
            "discord_id": self.discord_id,
            "avatar": self.avatar,
            "banner": self.banner,
            "bio": self.bio,
            "location": self.location,
            "website": self.website,
            "role": self.role,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"
