"""Curated anime list service."""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from mirabellier.anime.models import AnimeItem
from mirabellier.core.errors import NotFoundError, ValidationError


if TYPE_CHECKING:
    from mirabellier.core.database import Database


logger = structlog.get_logger(__name__)

PATCHABLE_FIELDS = ("title", "url", "img", "ord")


class AnimeService:
    """Reads and rewrites the ordered list.

    Authorization happens at the endpoint; this layer trusts its caller.
    """

    def __init__(self, db: "Database"):
        self.db = db

    def list(self) -> list[AnimeItem]:
        rows = self.db.fetch_all(
            "SELECT id, title, url, img, ord FROM anime ORDER BY ord ASC"
        )
        return [AnimeItem.from_row(row) for row in rows]

    def get(self, item_id: str) -> AnimeItem:
        row = self.db.fetch_one(
            "SELECT id, title, url, img, ord FROM anime WHERE id = ?", (item_id,)
        )
        if row is None:
            raise NotFoundError("Not found")
        return AnimeItem.from_row(row)

    def replace_all(self, items: Iterable[Mapping[str, Any]]) -> list[AnimeItem]:
        """Replace the whole list in one transaction.

        Each item's ``ord`` becomes its position; missing ids are generated as
        ``<epoch ms>-<position>``.

        Raises:
            ValidationError: The same id appears twice
        """
        stamp = int(time.time() * 1000)
        new_items = [
            AnimeItem(
                id=str(item.get("id") or f"{stamp}-{position}"),
                title=item.get("title") or "",
                url=item.get("url") or "",
                img=item.get("img") or "",
                ord=position,
            )
            for position, item in enumerate(items)
        ]

        ids = [item.id for item in new_items]
        if len(set(ids)) != len(ids):
            raise ValidationError("duplicate id")

        with self.db.transaction():
            self.db.execute("DELETE FROM anime")
            self.db.executemany(
                "INSERT INTO anime (id, title, url, img, ord) VALUES (?, ?, ?, ?, ?)",
                [(i.id, i.title, i.url, i.img, i.ord) for i in new_items],
            )

        logger.info("anime_list_replaced", count=len(new_items))
        return new_items

    def patch(self, item_id: str, fields: Mapping[str, Any]) -> AnimeItem:
        """Partial update.

        Raises:
            ValidationError: No updatable field given
            NotFoundError: Unknown id
        """
        updates = {k: fields[k] for k in PATCHABLE_FIELDS if k in fields}
        if not updates:
            raise ValidationError("No fields to update")

        assignments = ", ".join(f"{column} = ?" for column in updates)
        cursor = self.db.execute(
            f"UPDATE anime SET {assignments} WHERE id = ?",
            (*updates.values(), item_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Not found")

        logger.info("anime_item_updated", item_id=item_id, fields=sorted(updates))
        return self.get(item_id)

    def delete(self, item_id: str) -> bool:
        """Returns whether a row was removed."""
        cursor = self.db.execute("DELETE FROM anime WHERE id = ?", (item_id,))
        deleted = cursor.rowcount > 0
        logger.info("anime_item_deleted", item_id=item_id, deleted=deleted)
        return deleted
