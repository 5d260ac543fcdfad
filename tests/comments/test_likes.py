"""Tests for like sets."""

import pytest

from mirabellier.comments.likes import (
    LikeAction,
    deserialize_likes,
    flip_like,
    normalize_likes,
    serialize_likes,
    toggle_like,
)
from mirabellier.core.errors import InvalidArgumentError


class TestToggleLike:
    """Tests for toggle_like."""

    def test_like_adds_user(self) -> None:
        assert toggle_like([], "u1", "like") == ["u1"]

    def test_like_is_idempotent(self) -> None:
        likes = toggle_like(["u1"], "u1", LikeAction.LIKE)
        assert likes == ["u1"]

    def test_like_appends_in_order(self) -> None:
        assert toggle_like(["u1"], "u2", "like") == ["u1", "u2"]

    def test_unlike_removes_every_occurrence(self) -> None:
        assert toggle_like(["u1", "u2", "u1"], "u1", "unlike") == ["u2"]

    def test_unlike_absent_user_is_noop(self) -> None:
        assert toggle_like(["u2"], "u1", "unlike") == ["u2"]

    def test_input_not_mutated(self) -> None:
        likes = ["u1"]
        toggle_like(likes, "u2", "like")
        assert likes == ["u1"]

    @pytest.mark.parametrize("action", ["", "LIKE", "love", None])
    def test_invalid_action(self, action) -> None:
        with pytest.raises(InvalidArgumentError):
            toggle_like([], "u1", action)


class TestFlipLike:
    def test_flip_adds_then_removes(self) -> None:
        likes = flip_like([], "u1")
        assert likes == ["u1"]
        assert flip_like(likes, "u1") == []


class TestNormalizeLikes:
    """Tests for reading the likes column."""

    @pytest.mark.parametrize("raw", [None, "", "not json", "{}", "true"])
    def test_unreadable_values_are_empty(self, raw) -> None:
        assert normalize_likes(raw) == []

    @pytest.mark.parametrize("raw", [7, "7", "0"])
    def test_legacy_counts_discarded(self, raw) -> None:
        assert normalize_likes(raw) == []

    def test_array_kept(self) -> None:
        assert normalize_likes('["u1", "u2"]') == ["u1", "u2"]

    def test_round_trip(self) -> None:
        likes = ["u1", "u3", "u2"]
        assert deserialize_likes(serialize_likes(likes)) == likes
