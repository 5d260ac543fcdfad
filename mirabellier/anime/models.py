"""Database model for the curated anime list."""

from dataclasses import dataclass
from typing import Any


ANIME_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS anime (
    id TEXT PRIMARY KEY,
    title TEXT,
    url TEXT,
    img TEXT,
    ord INTEGER
)
"""

ANIME_TABLES_SQL = [ANIME_TABLE_SQL]


@dataclass
class AnimeItem:
    """One entry of the curated list. ``ord`` is the display position."""

    id: str
    title: str = ""
    url: str = ""
    img: str = ""
    ord: int = 0

    @classmethod
    def from_row(cls, row: Any) -> "AnimeItem":
        return cls(
            id=row["id"],
            title=row["title"] or "",
            url=row["url"] or "",
            img=row["img"] or "",
            ord=row["ord"] if row["ord"] is not None else 0,
        )
