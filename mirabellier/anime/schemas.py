"""Pydantic schemas for the curated anime list."""

from pydantic import Field

from mirabellier.core.schemas import ApiModel


class AnimeItemIn(ApiModel):
    """One entry of a replace-all request. Position sets the order."""

    id: str | None = Field(default=None, description="Kept when given")
    title: str | None = None
    url: str | None = None
    img: str | None = None


class AnimeUpdate(ApiModel):
    """Partial update; at least one field is required."""

    title: str | None = None
    url: str | None = None
    img: str | None = None
    ord: int | None = None


class AnimeItemResponse(ApiModel):
    id: str
    title: str
    url: str
    img: str
    ord: int
