"""Tests for AuthService against an in-memory database."""

import pytest

from mirabellier.auth.discord import DiscordProfile
from mirabellier.auth.permissions import UserRole
from mirabellier.auth.service import (
    AuthService,
    InvalidCredentialsError,
    UsernameTakenError,
    UserNotFoundError,
    generate_username,
)
from mirabellier.content.service import PostRepository
from mirabellier.core.errors import ValidationError


class TestGenerateUsername:
    def test_sanitized(self) -> None:
        assert generate_username("Mira Bell!", lambda name: False) == "mirabell"

    def test_numeric_suffix_on_collision(self) -> None:
        taken = {"mira", "mira1"}
        assert generate_username("Mira", taken.__contains__) == "mira2"

    def test_empty_falls_back(self) -> None:
        assert generate_username("!!!", lambda name: False) == "user"

    def test_length_capped(self) -> None:
        assert len(generate_username("x" * 50, lambda name: False)) == 32


class TestRegistrationAndLogin:
    """Tests for register/authenticate."""

    def test_register_hashes_password(self, auth_service: AuthService) -> None:
        user = auth_service.register("alice", "pw")
        assert user.password_hash != "pw"
        assert user.password_hash.startswith("$argon2id$")
        assert user.role == UserRole.USER.value

    def test_duplicate_username(self, auth_service: AuthService) -> None:
        auth_service.register("alice", "pw")
        with pytest.raises(UsernameTakenError):
            auth_service.register("alice", "other")

    def test_empty_credentials(self, auth_service: AuthService) -> None:
        with pytest.raises(ValidationError):
            auth_service.register("  ", "pw")
        with pytest.raises(ValidationError):
            auth_service.register("alice", "")

    def test_authenticate(self, auth_service: AuthService) -> None:
        registered = auth_service.register("alice", "pw")
        assert auth_service.authenticate("alice", "pw").id == registered.id

    @pytest.mark.parametrize("username,password", [("alice", "bad"), ("nobody", "pw")])
    def test_authenticate_failures_look_alike(
        self, auth_service: AuthService, username: str, password: str
    ) -> None:
        auth_service.register("alice", "pw")
        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.authenticate(username, password)
        assert exc_info.value.status_code == 401

    def test_curator_granted_on_register(self, auth_service: AuthService) -> None:
        user = auth_service.register("mira", "pw")
        assert user.role == UserRole.CURATOR.value
        assert auth_service.get_user_by_id(user.id).role == UserRole.CURATOR.value


class TestSessions:
    """Tests for token issuing and resolution."""

    def test_resolve_issued_token(self, auth_service: AuthService) -> None:
        user = auth_service.register("alice", "pw")
        token = auth_service.issue_session(user)
        assert auth_service.resolve_token(token).id == user.id

    def test_unknown_token(self, auth_service: AuthService) -> None:
        assert auth_service.resolve_token("deadbeef") is None
        assert auth_service.resolve_token(None) is None

    def test_logout(self, auth_service: AuthService) -> None:
        user = auth_service.register("alice", "pw")
        token = auth_service.issue_session(user)
        assert auth_service.delete_session(token) is True
        assert auth_service.resolve_token(token) is None
        assert auth_service.delete_session(token) is False

    def test_signed_tokens(self, db) -> None:
        service = AuthService(db, session_secret="s3cret")
        user = service.register("alice", "pw")
        token = service.issue_session(user)

        assert "." in token
        assert service.resolve_token(token).id == user.id

        token_id = token.split(".")[0]
        assert service.resolve_token(f"{token_id}.{'f' * 64}") is None


class TestProfile:
    def test_update_fields(self, auth_service: AuthService) -> None:
        user = auth_service.register("alice", "pw")
        updated = auth_service.update_profile(
            user.id, bio="hi", location="Lisbon", avatar="/images/a.png"
        )
        assert updated.bio == "hi"
        assert updated.location == "Lisbon"
        assert updated.avatar == "/images/a.png"

    def test_rename_to_taken_username(self, auth_service: AuthService) -> None:
        auth_service.register("bob", "pw")
        alice = auth_service.register("alice", "pw")
        with pytest.raises(UsernameTakenError):
            auth_service.update_profile(alice.id, username="bob")

    def test_password_change(self, auth_service: AuthService) -> None:
        user = auth_service.register("alice", "pw")
        auth_service.update_profile(user.id, password="new-pw")
        assert auth_service.authenticate("alice", "new-pw").id == user.id

    def test_unknown_user(self, auth_service: AuthService) -> None:
        with pytest.raises(UserNotFoundError):
            auth_service.update_profile("missing", bio="x")


class TestDiscordLink:
    """Tests for link_discord_identity."""

    def test_creates_user(self, auth_service: AuthService) -> None:
        profile = DiscordProfile(id="42", username="Mira Chan", avatar_hash="abc")
        user = auth_service.link_discord_identity(profile)

        assert user.discord_id == "42"
        assert user.username == "mirachan"
        assert user.password_hash is None
        assert user.avatar == "https://cdn.discordapp.com/avatars/42/abc.png"

    def test_existing_user_refreshed(self, auth_service: AuthService) -> None:
        first = auth_service.link_discord_identity(
            DiscordProfile(id="42", username="mira", avatar_hash="abc")
        )
        second = auth_service.link_discord_identity(
            DiscordProfile(id="42", username="mira", avatar_hash="def")
        )
        assert second.id == first.id
        assert second.avatar.endswith("/def.png")
        assert auth_service.get_user_by_id(first.id).avatar.endswith("/def.png")

    def test_username_collision(self, auth_service: AuthService) -> None:
        auth_service.register("mira", "pw")
        user = auth_service.link_discord_identity(
            DiscordProfile(id="42", username="mira")
        )
        assert user.username == "mira1"

    def test_curator_discord_id(self, db) -> None:
        service = AuthService(db, curator_discord_ids=["42"])
        user = service.link_discord_identity(DiscordProfile(id="42", username="x"))
        assert user.role == UserRole.CURATOR.value


class TestUserStats:
    def test_counts(self, db, auth_service: AuthService) -> None:
        posts = PostRepository(db, auth_service)
        alice = auth_service.register("alice", "pw")
        bob = auth_service.register("bob", "pw")

        first = posts.create(alice, title="First")
        posts.create(alice, title="Second")
        posts.toggle_like(first.id, bob, "like")
        posts.add_comment(first.id, bob, "nice")
        posts.add_comment(first.id, bob, "really")

        alice_stats = auth_service.get_user_stats(alice.id)
        assert alice_stats["posts_count"] == 2
        assert {p["title"] for p in alice_stats["recent_posts"]} == {"First", "Second"}

        bob_stats = auth_service.get_user_stats(bob.id)
        assert bob_stats["posts_count"] == 0
        assert bob_stats["likes_count"] == 1
        assert bob_stats["comments_count"] == 2
