"""Dependencies for content module."""

from typing import Annotated

from fastapi import Depends, Request

from mirabellier.content.service import (
    PictureRepository,
    PostRepository,
    VideoRepository,
)


def get_post_repository(request: Request) -> PostRepository:
    return request.app.state.posts


def get_video_repository(request: Request) -> VideoRepository:
    return request.app.state.videos


def get_picture_repository(request: Request) -> PictureRepository:
    return request.app.state.pics


PostRepositoryDep = Annotated[PostRepository, Depends(get_post_repository)]
VideoRepositoryDep = Annotated[VideoRepository, Depends(get_video_repository)]
PictureRepositoryDep = Annotated[PictureRepository, Depends(get_picture_repository)]
