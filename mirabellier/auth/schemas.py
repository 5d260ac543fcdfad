"""Pydantic schemas for authentication.

Request and response models for:
- Registration and login
- Public user profiles
- User statistics
"""

from pydantic import Field, field_validator

from mirabellier.auth.models import User
from mirabellier.core.schemas import ApiModel


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(ApiModel):
    """User registration request."""

    username: str = Field(..., min_length=1, max_length=64, description="Username")
    password: str = Field(..., min_length=1, description="Password")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "username required"
            raise ValueError(msg)
        return v


class LoginRequest(ApiModel):
    """User login request."""

    username: str = Field(..., description="Username")
    password: str = Field(..., description="Password")


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(ApiModel):
    """Public user profile (never includes the password hash)."""

    id: str
    username: str
    discord_id: str | None = None
    avatar: str | None = None
    banner: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    role: str
    created_at: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(**user.to_public_dict())


class TokenResponse(ApiModel):
    """Session token issued on register/login."""

    token: str = Field(..., description="Bearer token")
    user: UserResponse


class RecentPost(ApiModel):
    id: str
    title: str | None = None
    created_at: str | None = None


class UserStatsResponse(ApiModel):
    """Activity summary for a profile page."""

    posts_count: int = Field(..., description="Posts written")
    likes_count: int = Field(..., description="Posts, videos and pictures liked")
    comments_count: int = Field(..., description="Comments written")
    recent_posts: list[RecentPost] = Field(default_factory=list)
