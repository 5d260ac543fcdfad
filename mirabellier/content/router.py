"""Posts, videos and pictures API endpoints.

Three routers share this module:
- router_posts: blog posts, tags, post comments and likes
- router_videos: video uploads, comments and likes
- router_pics: picture uploads, comments and likes

Reads are public. Creating works anonymously with a free-text author name;
updates and deletes need the owning user; comments and likes need a user.

Repository and disk calls are blocking, so handlers are plain ``def`` (run in
the threadpool). Uploads await the body and offload the writes.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Body, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from mirabellier.auth.dependencies import CurrentUser, OptionalUser
from mirabellier.content.dependencies import (
    PictureRepositoryDep,
    PostRepositoryDep,
    VideoRepositoryDep,
)
from mirabellier.content.schemas import (
    CommentCreate,
    CommentNodeResponse,
    LikeRequest,
    LikeResponse,
    PictureResponse,
    PictureUpdate,
    PostCreate,
    PostResponse,
    PostUpdate,
    TagCount,
    VideoResponse,
    VideoUpdate,
)
from mirabellier.core.schemas import ErrorResponse, OkResponse
from mirabellier.storage.dependencies import StorageServiceDep


logger = structlog.get_logger(__name__)

router_posts = APIRouter(tags=["posts"])
router_videos = APIRouter(tags=["videos"])
router_pics = APIRouter(tags=["pics"])

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Not found"}}
OWNER_ONLY = {
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Not the owner"},
    **NOT_FOUND,
}
UPLOAD_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing or empty file"},
    413: {"model": ErrorResponse, "description": "File too large"},
    415: {"model": ErrorResponse, "description": "Unsupported media type"},
}


# ==============================================================================
# Posts
# ==============================================================================


@router_posts.get("/posts", response_model=list[PostResponse], summary="List posts")
def list_posts(posts: PostRepositoryDep) -> list[PostResponse]:
    """All posts, newest first, with comment trees."""
    return [PostResponse.from_item(post) for post in posts.list()]


@router_posts.get("/tags", response_model=list[TagCount], summary="List tags")
def list_tags(posts: PostRepositoryDep) -> list[TagCount]:
    """Every tag in use with its post count, most used first."""
    return [TagCount(tag=tag, count=count) for tag, count in posts.list_tags()]


@router_posts.get(
    "/posts/{post_id}",
    response_model=PostResponse,
    responses=NOT_FOUND,
    summary="Get post",
)
def get_post(post_id: str, posts: PostRepositoryDep) -> PostResponse:
    return PostResponse.from_item(posts.get(post_id))


@router_posts.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
def create_post(
    data: PostCreate, user: OptionalUser, posts: PostRepositoryDep
) -> PostResponse:
    post = posts.create(
        user,
        title=data.title,
        content=data.content,
        short_description=data.short_description,
        thumbnail=data.thumbnail,
        tags=data.tags,
        author_name=data.author,
    )
    return PostResponse.from_item(post)


@router_posts.put(
    "/posts/{post_id}",
    response_model=PostResponse,
    responses=OWNER_ONLY,
    summary="Update post",
)
def update_post(
    post_id: str, data: PostUpdate, user: OptionalUser, posts: PostRepositoryDep
) -> PostResponse:
    post = posts.update(post_id, user, data.model_dump(exclude_unset=True))
    return PostResponse.from_item(post)


@router_posts.delete(
    "/posts/{post_id}",
    response_model=OkResponse,
    responses=OWNER_ONLY,
    summary="Delete post",
)
def delete_post(
    post_id: str, user: OptionalUser, posts: PostRepositoryDep
) -> OkResponse:
    posts.delete(post_id, user)
    return OkResponse()


@router_posts.post(
    "/posts/{post_id}/comments",
    response_model=CommentNodeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Comment on a post",
)
def comment_post(
    post_id: str, data: CommentCreate, user: CurrentUser, posts: PostRepositoryDep
) -> CommentNodeResponse:
    node = posts.add_comment(post_id, user, data.text, data.parent_id)
    return CommentNodeResponse.model_validate(node)


@router_posts.post(
    "/posts/{post_id}/like",
    response_model=LikeResponse,
    responses=NOT_FOUND,
    summary="Like or unlike a post",
)
def like_post(
    post_id: str,
    user: CurrentUser,
    posts: PostRepositoryDep,
    data: Annotated[LikeRequest | None, Body()] = None,
) -> LikeResponse:
    """Without an ``action`` the post is liked."""
    likes = posts.toggle_like(post_id, user, data.action if data else None)
    return LikeResponse(likes=likes, liked=user.id in likes)


# ==============================================================================
# Videos
# ==============================================================================


@router_videos.get(
    "/videos", response_model=list[VideoResponse], summary="List videos"
)
def list_videos(videos: VideoRepositoryDep) -> list[VideoResponse]:
    return [VideoResponse.from_item(video) for video in videos.list()]


@router_videos.get(
    "/videos/{video_id}",
    response_model=VideoResponse,
    responses=NOT_FOUND,
    summary="Get video",
    description="Video entry by id. Stored file names stream the file itself.",
)
def get_video(
    video_id: str, videos: VideoRepositoryDep, storage: StorageServiceDep
) -> VideoResponse | FileResponse:
    if storage.is_video_filename(video_id):
        return FileResponse(storage.video_path(video_id))
    return VideoResponse.from_item(videos.get(video_id))


@router_videos.post(
    "/upload-video",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    responses=UPLOAD_ERRORS,
    summary="Upload video",
    description="Store a video file and create its entry.",
)
async def upload_video(
    user: OptionalUser,
    videos: VideoRepositoryDep,
    storage: StorageServiceDep,
    video: Annotated[UploadFile, File(description="Video file")],
    custom_title: Annotated[
        str | None, Form(alias="customTitle", description="Display name")
    ] = None,
    description: Annotated[str | None, Form(description="Description")] = None,
    author: Annotated[str | None, Form(description="Free-text author name")] = None,
) -> VideoResponse:
    """Upload a video (multipart field ``video``).

    The name defaults to the uploaded file name.
    """
    logger.info(
        "video_upload_request",
        filename=video.filename,
        content_type=video.content_type,
    )
    content = await video.read()
    stored = await run_in_threadpool(
        storage.save_video, content, video.content_type, video.filename
    )

    name = (custom_title or "").strip() or video.filename or stored.filename
    item = await run_in_threadpool(
        videos.create,
        user,
        name=name,
        url=stored.url,
        description=description,
        author_name=author,
    )
    return VideoResponse.from_item(item)


@router_videos.put(
    "/videos/{video_id}",
    response_model=VideoResponse,
    responses=OWNER_ONLY,
    summary="Update video",
)
def update_video(
    video_id: str, data: VideoUpdate, user: OptionalUser, videos: VideoRepositoryDep
) -> VideoResponse:
    video = videos.update(video_id, user, data.model_dump(exclude_unset=True))
    return VideoResponse.from_item(video)


@router_videos.delete(
    "/videos/{video_id}",
    response_model=OkResponse,
    responses=OWNER_ONLY,
    summary="Delete video",
)
def delete_video(
    video_id: str,
    user: OptionalUser,
    videos: VideoRepositoryDep,
    storage: StorageServiceDep,
) -> OkResponse:
    """Delete the entry and its stored file."""
    video = videos.delete(video_id, user)
    storage.delete(video.url)
    return OkResponse()


@router_videos.post(
    "/videos/{video_id}/comments",
    response_model=CommentNodeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Comment on a video",
)
def comment_video(
    video_id: str, data: CommentCreate, user: CurrentUser, videos: VideoRepositoryDep
) -> CommentNodeResponse:
    node = videos.add_comment(video_id, user, data.text, data.parent_id)
    return CommentNodeResponse.model_validate(node)


@router_videos.post(
    "/videos/{video_id}/like",
    response_model=LikeResponse,
    responses=NOT_FOUND,
    summary="Like or unlike a video",
)
def like_video(
    video_id: str,
    user: CurrentUser,
    videos: VideoRepositoryDep,
    data: Annotated[LikeRequest | None, Body()] = None,
) -> LikeResponse:
    likes = videos.toggle_like(video_id, user, data.action if data else None)
    return LikeResponse(likes=likes, liked=user.id in likes)


# ==============================================================================
# Pictures
# ==============================================================================


@router_pics.get("/pics", response_model=list[PictureResponse], summary="List pictures")
def list_pics(pics: PictureRepositoryDep) -> list[PictureResponse]:
    return [PictureResponse.from_item(pic) for pic in pics.list()]


@router_pics.get(
    "/pics/{pic_id}",
    response_model=PictureResponse,
    responses=NOT_FOUND,
    summary="Get picture",
)
def get_pic(pic_id: str, pics: PictureRepositoryDep) -> PictureResponse:
    return PictureResponse.from_item(pics.get(pic_id))


@router_pics.post(
    "/upload-pic",
    response_model=PictureResponse,
    status_code=status.HTTP_201_CREATED,
    responses=UPLOAD_ERRORS,
    summary="Upload picture",
)
async def upload_pic(
    user: OptionalUser,
    pics: PictureRepositoryDep,
    storage: StorageServiceDep,
    image: Annotated[UploadFile, File(description="Image file")],
    title: Annotated[str | None, Form(description="Picture title")] = None,
    author: Annotated[str | None, Form(description="Free-text author name")] = None,
) -> PictureResponse:
    """Upload a picture (multipart field ``image``)."""
    content = await image.read()
    stored = await run_in_threadpool(
        storage.save_image, content, image.content_type, image.filename
    )

    item = await run_in_threadpool(
        pics.create,
        user,
        title=(title or "").strip() or image.filename or stored.filename,
        url=stored.url,
        author_name=author,
    )
    return PictureResponse.from_item(item)


@router_pics.put(
    "/pics/{pic_id}",
    response_model=PictureResponse,
    responses=OWNER_ONLY,
    summary="Update picture",
)
def update_pic(
    pic_id: str, data: PictureUpdate, user: OptionalUser, pics: PictureRepositoryDep
) -> PictureResponse:
    pic = pics.update(pic_id, user, data.model_dump(exclude_unset=True))
    return PictureResponse.from_item(pic)


@router_pics.delete(
    "/pics/{pic_id}",
    response_model=OkResponse,
    responses=OWNER_ONLY,
    summary="Delete picture",
)
def delete_pic(
    pic_id: str,
    user: OptionalUser,
    pics: PictureRepositoryDep,
    storage: StorageServiceDep,
) -> OkResponse:
    pic = pics.delete(pic_id, user)
    storage.delete(pic.url)
    return OkResponse()


@router_pics.post(
    "/pics/{pic_id}/comment",
    response_model=CommentNodeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Comment on a picture",
)
@router_pics.post(
    "/pics/{pic_id}/comments",
    response_model=CommentNodeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    include_in_schema=False,
)
def comment_pic(
    pic_id: str, data: CommentCreate, user: CurrentUser, pics: PictureRepositoryDep
) -> CommentNodeResponse:
    node = pics.add_comment(pic_id, user, data.text, data.parent_id)
    return CommentNodeResponse.model_validate(node)


@router_pics.post(
    "/pics/{pic_id}/like",
    response_model=LikeResponse,
    responses=NOT_FOUND,
    summary="Like or unlike a picture",
)
def like_pic(
    pic_id: str,
    user: CurrentUser,
    pics: PictureRepositoryDep,
    data: Annotated[LikeRequest | None, Body()] = None,
) -> LikeResponse:
    """Without an ``action`` the like flips."""
    likes = pics.toggle_like(pic_id, user, data.action if data else None)
    return LikeResponse(likes=likes, liked=user.id in likes)
