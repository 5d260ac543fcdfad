"""Authentication service layer.

Business logic for:
- User registration and login
- Session token issuing, resolution and logout
- Profile updates and Discord identity linking
- Role grants and user statistics
"""

import re
import sqlite3
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

import structlog

from mirabellier.auth.models import User, utc_now_iso
from mirabellier.auth.permissions import UserRole
from mirabellier.auth.security import (
    hash_password,
    issue_token,
    verify_password,
    verify_token_signature,
)
from mirabellier.comments.likes import normalize_likes
from mirabellier.comments.tree import deserialize_comments
from mirabellier.content.models import COMMENTABLE_TABLES
from mirabellier.core.errors import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)


if TYPE_CHECKING:
    from mirabellier.auth.discord import DiscordProfile
    from mirabellier.core.database import Database


logger = structlog.get_logger(__name__)

USERNAME_MAX_LENGTH = 32
_USERNAME_DISALLOWED = re.compile(r"[^a-z0-9_.-]")
RECENT_POSTS_LIMIT = 5


class UsernameTakenError(ConflictError):
    default_message = "username taken"
    default_code = "username_taken"


class InvalidCredentialsError(UnauthenticatedError):
    """Unknown user, wrong password, or no password on the account."""

    default_message = "invalid credentials"
    default_code = "invalid_credentials"


class UserNotFoundError(NotFoundError):
    default_message = "not found"
    default_code = "user_not_found"


def generate_username(base: str, is_taken: Callable[[str], bool]) -> str:
    """Derive a free local username from an external display name.

    Lowercases, keeps ``[a-z0-9_.-]``, caps at 32 characters and appends a
    numeric suffix until the name is free.

    Example:
        >>> generate_username("Mira Bell!", lambda name: name == "mirabell")
        'mirabell1'
    """
    candidate = _USERNAME_DISALLOWED.sub("", base.lower())[:USERNAME_MAX_LENGTH]
    candidate = candidate or "user"

    if not is_taken(candidate):
        return candidate

    suffix = 1
    while True:
        tail = str(suffix)
        name = candidate[: USERNAME_MAX_LENGTH - len(tail)] + tail
        if not is_taken(name):
            return name
        suffix += 1


class AuthService:
    """Identity and session store on top of the SQLite storage client."""

    def __init__(
        self,
        db: "Database",
        session_secret: str | None = None,
        curator_usernames: Iterable[str] = (),
        curator_discord_ids: Iterable[str] = (),
    ):
        """Initialize with the storage client.

        Args:
            db: Connected database
            session_secret: HMAC secret for signed tokens (unsigned when None)
            curator_usernames: Usernames granted the curator role
            curator_discord_ids: Discord ids granted the curator role
        """
        self.db = db
        self.session_secret = session_secret or None
        self.curator_usernames = frozenset(curator_usernames)
        self.curator_discord_ids = frozenset(curator_discord_ids)

    # ==========================================================================
    # User Queries
    # ==========================================================================

    def get_user_by_id(self, user_id: str) -> User | None:
        row = self.db.fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return User.from_row(row) if row else None

    def get_user_by_username(self, username: str) -> User | None:
        row = self.db.fetch_one(
            "SELECT * FROM users WHERE username = ?", (username,)
        )
        return User.from_row(row) if row else None

    def get_user_by_discord_id(self, discord_id: str) -> User | None:
        row = self.db.fetch_one(
            "SELECT * FROM users WHERE discord_id = ?", (discord_id,)
        )
        return User.from_row(row) if row else None

    def get_users_by_ids(self, user_ids: Iterable[str]) -> dict[str, User]:
        """Batch lookup used to resolve comment authors in one query."""
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        rows = self.db.fetch_all(
            f"SELECT * FROM users WHERE id IN ({placeholders})", ids
        )
        return {row["id"]: User.from_row(row) for row in rows}

    def require_user(self, user_id: str) -> User:
        user = self.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError
        return user

    # ==========================================================================
    # Registration / Login
    # ==========================================================================

    def register(self, username: str, password: str) -> User:
        """Register a new password account.

        Raises:
            ValidationError: Empty username or password
            UsernameTakenError: Username already exists
        """
        username = username.strip()
        if not username or not password:
            raise ValidationError("username and password required")

        # Read-then-write; the UNIQUE constraint catches a lost race
        if self.get_user_by_username(username):
            raise UsernameTakenError

        user = User(username=username, password_hash=hash_password(password))
        self._insert_user(user)
        self._apply_role_grants(user)

        logger.info("user_registered", user_id=user.id, username=user.username)
        return user

    def _insert_user(self, user: User) -> None:
        try:
            self.db.execute(
                """
                INSERT INTO users
                (id, username, password_hash, discord_id, avatar, banner, bio,
                 location, website, role, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user.id,
                    user.username,
                    user.password_hash,
                    user.discord_id,
                    user.avatar,
                    user.banner,
                    user.bio,
                    user.location,
                    user.website,
                    user.role,
                    user.created_at,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise UsernameTakenError from e

    def authenticate(self, username: str, password: str) -> User:
        """Authenticate with username and password.

        Raises:
            InvalidCredentialsError: On any failure, without saying which
        """
        user = self.get_user_by_username(username)
        if not user or not user.password_hash:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            raise InvalidCredentialsError

        # Update hash if needed (algorithm params changed)
        if new_hash:
            self.db.execute(
                "UPDATE users SET password_hash = ? WHERE id = ?",
                (new_hash, user.id),
            )
            user.password_hash = new_hash
            logger.info("password_rehashed", user_id=user.id)

        self._apply_role_grants(user)
        return user

    # ==========================================================================
    # Sessions
    # ==========================================================================

    def create_session(self, token: str, user_id: str) -> None:
        """Store a token -> user mapping (tokens are assumed collision-free)."""
        self.db.execute(
            "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
            (token, user_id, utc_now_iso()),
        )

    def issue_session(self, user: User) -> str:
        """Issue a new token for the user and persist the session."""
        token = issue_token(self.session_secret)
        self.create_session(token, user.id)
        logger.info("session_created", user_id=user.id)
        return token

    def resolve_token(self, token: str | None) -> User | None:
        """Resolve a bearer token to its user.

        Returns:
            The user, or None for a missing, unknown or badly signed token
        """
        if not token:
            return None

        if not verify_token_signature(token, self.session_secret):
            logger.warning("session_signature_mismatch")
            return None

        row = self.db.fetch_one(
            """
            SELECT u.* FROM sessions s
            JOIN users u ON s.user_id = u.id
            WHERE s.token = ?
            """,
            (token,),
        )
        return User.from_row(row) if row else None

    def delete_session(self, token: str) -> bool:
        """Logout. Returns whether a session was removed."""
        cursor = self.db.execute("DELETE FROM sessions WHERE token = ?", (token,))
        return cursor.rowcount > 0

    # ==========================================================================
    # Profile
    # ==========================================================================

    def update_profile(
        self,
        user_id: str,
        username: str | None = None,
        password: str | None = None,
        avatar: str | None = None,
        banner: str | None = None,
        bio: str | None = None,
        location: str | None = None,
        website: str | None = None,
    ) -> User:
        """Update profile fields. Empty/None values leave a field unchanged.

        Raises:
            UserNotFoundError: If user doesn't exist
            UsernameTakenError: New username belongs to someone else
        """
        user = self.require_user(user_id)
        updates: dict[str, Any] = {}

        if username and username != user.username:
            existing = self.get_user_by_username(username)
            if existing and existing.id != user.id:
                raise UsernameTakenError
            updates["username"] = username
        if password:
            updates["password_hash"] = hash_password(password)
        if avatar:
            updates["avatar"] = avatar
        if banner:
            updates["banner"] = banner
        if bio is not None:
            updates["bio"] = bio
        if location is not None:
            updates["location"] = location
        if website is not None:
            updates["website"] = website

        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            try:
                self.db.execute(
                    f"UPDATE users SET {assignments} WHERE id = ?",
                    (*updates.values(), user.id),
                )
            except sqlite3.IntegrityError as e:
                raise UsernameTakenError from e
            logger.info(
                "profile_updated",
                user_id=user.id,
                fields=sorted(k for k in updates if k != "password_hash"),
            )

        return self.require_user(user.id)

    # ==========================================================================
    # Discord
    # ==========================================================================

    def link_discord_identity(self, profile: "DiscordProfile") -> User:
        """Find or create the local user for a Discord profile.

        Known Discord ids get their avatar/banner refreshed when changed. New
        ones get an account with a username derived from the Discord name.
        """
        user = self.get_user_by_discord_id(profile.id)

        if user:
            changes: dict[str, Any] = {}
            if profile.avatar_url and profile.avatar_url != user.avatar:
                changes["avatar"] = profile.avatar_url
            if profile.banner_url and profile.banner_url != user.banner:
                changes["banner"] = profile.banner_url
            if changes:
                assignments = ", ".join(f"{column} = ?" for column in changes)
                self.db.execute(
                    f"UPDATE users SET {assignments} WHERE id = ?",
                    (*changes.values(), user.id),
                )
                for column, value in changes.items():
                    setattr(user, column, value)
                logger.info(
                    "discord_profile_refreshed",
                    user_id=user.id,
                    fields=sorted(changes),
                )
            self._apply_role_grants(user)
            return user

        username = generate_username(
            profile.username,
            lambda name: self.get_user_by_username(name) is not None,
        )
        user = User(
            username=username,
            discord_id=profile.id,
            avatar=profile.avatar_url,
            banner=profile.banner_url,
        )
        self._insert_user(user)
        self._apply_role_grants(user)

        logger.info("discord_user_created", user_id=user.id, username=username)
        return user

    # ==========================================================================
    # Roles
    # ==========================================================================

    def set_role(self, user_id: str, role: UserRole) -> User:
        user = self.require_user(user_id)
        self.db.execute(
            "UPDATE users SET role = ? WHERE id = ?", (role.value, user.id)
        )
        user.role = role.value
        logger.info("role_changed", user_id=user.id, role=role.value)
        return user

    def _apply_role_grants(self, user: User) -> None:
        """Grant the curator role to configured usernames / Discord ids."""
        if user.role != UserRole.USER.value:
            return
        listed = user.username in self.curator_usernames or (
            user.discord_id is not None and user.discord_id in self.curator_discord_ids
        )
        if listed:
            user.role = self.set_role(user.id, UserRole.CURATOR).role

    # ==========================================================================
    # Stats
    # ==========================================================================

    def get_user_stats(self, user_id: str) -> dict[str, Any]:
        """Post count, liked items, written comments and the latest posts.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        user = self.require_user(user_id)

        row = self.db.fetch_one(
            "SELECT COUNT(*) AS count FROM posts WHERE user_id = ?", (user.id,)
        )
        posts_count = row["count"] if row else 0

        likes_count = 0
        comments_count = 0
        for table in COMMENTABLE_TABLES:
            for item in self.db.fetch_all(f"SELECT likes, comments FROM {table}"):
                if user.id in normalize_likes(item["likes"]):
                    likes_count += 1
                comments_count += sum(
                    1
                    for comment in deserialize_comments(item["comments"])
                    if comment.user_id == user.id
                )

        recent = self.db.fetch_all(
            """
            SELECT id, title, created_at FROM posts
            WHERE user_id = ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (user.id, RECENT_POSTS_LIMIT),
        )

        return {
            "posts_count": posts_count,
            "likes_count": likes_count,
            "comments_count": comments_count,
            "recent_posts": [
                {"id": r["id"], "title": r["title"], "created_at": r["created_at"]}
                for r in recent
            ],
        }
