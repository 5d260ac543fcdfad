"""Tests for AnimeService against an in-memory database."""

import pytest

from mirabellier.anime.models import AnimeItem
from mirabellier.anime.service import AnimeService
from mirabellier.core.database import Database
from mirabellier.core.errors import NotFoundError, ValidationError


@pytest.fixture
def anime(db: Database) -> AnimeService:
    return AnimeService(db)


class TestAnimeService:
    def test_list_empty(self, anime: AnimeService) -> None:
        assert anime.list() == []

    def test_replace_and_list(self, anime: AnimeService) -> None:
        anime.replace_all([{"id": "b", "title": "B"}, {"title": "A"}])

        items = anime.list()
        assert all(isinstance(item, AnimeItem) for item in items)
        assert [item.title for item in items] == ["B", "A"]
        assert [item.ord for item in items] == [0, 1]
        assert items[1].id.endswith("-1")

    def test_duplicate_ids_keep_old_list(self, anime: AnimeService) -> None:
        anime.replace_all([{"id": "keep", "title": "Keep"}])

        with pytest.raises(ValidationError, match="duplicate id"):
            anime.replace_all([{"id": "a"}, {"id": "a"}])

        assert [item.id for item in anime.list()] == ["keep"]

    def test_patch_and_get(self, anime: AnimeService) -> None:
        anime.replace_all([{"id": "x", "title": "Old", "url": "u"}])

        item = anime.patch("x", {"title": "New", "unknown": 1})
        assert item.title == "New"
        assert item.url == "u"
        assert anime.get("x") == item

    def test_patch_errors(self, anime: AnimeService) -> None:
        with pytest.raises(ValidationError):
            anime.patch("x", {"unknown": 1})
        with pytest.raises(NotFoundError):
            anime.patch("x", {"title": "y"})

    def test_delete(self, anime: AnimeService) -> None:
        anime.replace_all([{"id": "x"}])
        assert anime.delete("x") is True
        assert anime.delete("x") is False
