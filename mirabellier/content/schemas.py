"""Pydantic schemas for posts, videos and pictures."""

from typing import Any

from pydantic import Field

from mirabellier.auth.schemas import UserResponse
from mirabellier.content.models import ContentItem, Picture, Post, Video
from mirabellier.core.schemas import ApiModel


# ==============================================================================
# Request Schemas
# ==============================================================================


class PostCreate(ApiModel):
    """Create post request. ``author`` is only used for anonymous posts."""

    title: str | None = Field(default=None, description="Post title")
    content: Any = Field(default=None, description="Rich-text editor JSON document")
    short_description: str | None = Field(default=None, description="Teaser text")
    thumbnail: str | None = Field(default=None, description="Image URL")
    tags: list[Any] | None = Field(default=None, description="Up to 5 tags")
    author: str | None = Field(default=None, description="Free-text author name")


class PostUpdate(ApiModel):
    """Update post request (only sent fields change)."""

    title: str | None = None
    content: Any = None
    short_description: str | None = None
    thumbnail: str | None = None
    tags: list[Any] | None = None


class VideoUpdate(ApiModel):
    name: str | None = None
    description: str | None = None


class PictureUpdate(ApiModel):
    title: str | None = None


class CommentCreate(ApiModel):
    """Create comment request."""

    text: str | None = Field(default=None, description="Comment text")
    parent_id: str | None = Field(default=None, description="Parent comment for replies")


class LikeRequest(ApiModel):
    action: str | None = Field(default=None, description="'like' or 'unlike'")


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentNodeResponse(ApiModel):
    """A comment with its resolved author and nested replies."""

    id: str
    user_id: str | None = None
    text: str
    parent_id: str | None = None
    created_at: str | None = None
    user: UserResponse | None = None
    children: list["CommentNodeResponse"] = Field(default_factory=list)


class AuthorSummary(ApiModel):
    id: str
    username: str | None = None
    avatar: str | None = None


class ContentItemResponse(ApiModel):
    """Fields shared by every content response."""

    id: str
    user_id: str | None = None
    author: str = Field(..., description="Display name of the author")
    author_avatar: str | None = None
    user: AuthorSummary | None = Field(
        default=None, description="Author account, None for freeform authors"
    )
    likes: list[str] = Field(default_factory=list)
    comments: list[CommentNodeResponse] = Field(default_factory=list)
    created_at: str | None = None

    @staticmethod
    def _shared(item: ContentItem) -> dict[str, Any]:
        user = None
        if item.user_id is not None:
            user = AuthorSummary(
                id=item.user_id,
                username=item.author_username,
                avatar=item.author_avatar,
            )
        return {
            "id": item.id,
            "user_id": item.user_id,
            "author": item.author_name,
            "author_avatar": item.author_avatar,
            "user": user,
            "likes": list(item.likes),
            "comments": [
                CommentNodeResponse.model_validate(node) for node in item.comments
            ],
            "created_at": item.created_at,
        }


class PostResponse(ContentItemResponse):
    title: str
    content: Any = None
    short_description: str | None = None
    thumbnail: str | None = None
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def from_item(cls, post: Post) -> "PostResponse":
        return cls(
            **cls._shared(post),
            title=post.title,
            content=post.content,
            short_description=post.short_description,
            thumbnail=post.thumbnail,
            tags=post.tags,
        )


class VideoResponse(ContentItemResponse):
    name: str
    description: str = ""
    url: str
    source: str | None = None
    original_metadata: Any = None

    @classmethod
    def from_item(cls, video: Video) -> "VideoResponse":
        return cls(
            **cls._shared(video),
            name=video.name,
            description=video.description,
            url=video.url,
            source=video.source,
            original_metadata=video.original_metadata,
        )


class PictureResponse(ContentItemResponse):
    title: str
    url: str

    @classmethod
    def from_item(cls, picture: Picture) -> "PictureResponse":
        return cls(**cls._shared(picture), title=picture.title, url=picture.url)


class LikeResponse(ApiModel):
    likes: list[str]
    liked: bool


class TagCount(ApiModel):
    tag: str
    count: int
