"""Tests for post tag sanitization."""

import pytest

from mirabellier.content.tags import count_tags, sanitize_tag, sanitize_tags


class TestSanitizeTags:
    def test_documented_example(self) -> None:
        tags = ["Rust!", "go", "RUST!", "toolongtagname12345"]
        assert sanitize_tags(tags) == ["Rust", "go", "toolongtag"]

    def test_capped_at_five(self) -> None:
        assert sanitize_tags(list("abcdefg")) == ["a", "b", "c", "d", "e"]

    def test_empty_results_dropped(self) -> None:
        assert sanitize_tags(["!!!", "", "ok"]) == ["ok"]

    def test_duplicates_do_not_count_toward_cap(self) -> None:
        tags = ["a", "A", "b", "c", "d", "e", "f"]
        assert sanitize_tags(tags) == ["a", "b", "c", "d", "e"]

    @pytest.mark.parametrize("tags", [None, "rust", 5, {"a": 1}])
    def test_non_list_input(self, tags) -> None:
        assert sanitize_tags(tags) == []

    def test_non_string_items_dropped(self) -> None:
        assert sanitize_tags([1, None, "py"]) == ["py"]

    def test_allowed_characters(self) -> None:
        assert sanitize_tag("c_sharp-9") == "c_sharp-9"
        assert sanitize_tag("héllo wörld") == "hllowrld"


class TestCountTags:
    def test_most_used_first(self) -> None:
        counts = count_tags([["go", "rust"], ["rust"], ["Rust", "zig"]])
        assert counts[0] == ("rust", 3)
        assert set(counts[1:]) == {("go", 1), ("zig", 1)}
