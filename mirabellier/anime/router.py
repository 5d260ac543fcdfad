"""Curated anime list endpoints.

Reads are public. Every write goes through the MANAGE_CURATED_LIST permission.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from mirabellier.anime.schemas import AnimeItemIn, AnimeItemResponse, AnimeUpdate
from mirabellier.anime.service import AnimeService
from mirabellier.auth.dependencies import CuratorUser
from mirabellier.core.schemas import ErrorResponse, OkResponse


router = APIRouter(prefix="/anime", tags=["anime"])

CURATOR_ONLY = {
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Curator role required"},
}


def get_anime_service(request: Request) -> AnimeService:
    return request.app.state.anime


AnimeServiceDep = Annotated[AnimeService, Depends(get_anime_service)]


@router.get("", response_model=list[AnimeItemResponse], summary="List anime")
def list_anime(
    anime: AnimeServiceDep, response: Response
) -> list[AnimeItemResponse]:
    response.headers["Cache-Control"] = "public, max-age=600"
    return [AnimeItemResponse.model_validate(item) for item in anime.list()]


@router.post(
    "",
    response_model=OkResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Duplicate id"},
        **CURATOR_ONLY,
    },
    summary="Replace the anime list",
)
def replace_anime(
    items: list[AnimeItemIn], user: CuratorUser, anime: AnimeServiceDep
) -> OkResponse:
    """Replace every entry; list position becomes ``ord``."""
    anime.replace_all(item.model_dump() for item in items)
    return OkResponse()


@router.patch(
    "/{item_id}",
    response_model=AnimeItemResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No fields to update"},
        404: {"model": ErrorResponse, "description": "Not found"},
        **CURATOR_ONLY,
    },
    summary="Update an anime entry",
)
def patch_anime(
    item_id: str, data: AnimeUpdate, user: CuratorUser, anime: AnimeServiceDep
) -> AnimeItemResponse:
    item = anime.patch(item_id, data.model_dump(exclude_unset=True))
    return AnimeItemResponse.model_validate(item)


@router.delete(
    "/{item_id}",
    response_model=OkResponse,
    responses=CURATOR_ONLY,
    summary="Delete an anime entry",
)
def delete_anime(
    item_id: str, user: CuratorUser, anime: AnimeServiceDep
) -> OkResponse:
    anime.delete(item_id)
    return OkResponse()
