"""Authentication API endpoints.

Provides routes for:
- User registration, login and logout
- Profile reads and updates
- Public user lookups and statistics
- Discord OAuth login
"""

import secrets
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from mirabellier.auth.dependencies import AuthServiceDep, BearerToken, CurrentUser
from mirabellier.auth.discord import DiscordOAuthClient
from mirabellier.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    UserStatsResponse,
)
from mirabellier.auth.service import UserNotFoundError
from mirabellier.config.settings import Settings
from mirabellier.core.errors import AppError, ServiceUnavailableError, ValidationError
from mirabellier.core.schemas import ErrorResponse, OkResponse
from mirabellier.storage.dependencies import StorageServiceDep


logger = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])

DISCORD_STATE_COOKIE = "discord_oauth_state"
DISCORD_STATE_MAX_AGE = 600
PROFILE_TEXT_FIELDS = ("username", "password", "bio", "location", "website")
PROFILE_IMAGE_FIELDS = ("avatar", "banner")


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_discord_client(request: Request) -> DiscordOAuthClient | None:
    """The OAuth client, or None when Discord login isn't configured."""
    return request.app.state.discord


AppSettings = Annotated[Settings, Depends(get_settings_from_app)]
DiscordClientDep = Annotated[DiscordOAuthClient | None, Depends(get_discord_client)]


# ==============================================================================
# Registration and Sessions
# ==============================================================================


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={
        400: {"model": ErrorResponse, "description": "Missing username or password"},
        409: {"model": ErrorResponse, "description": "Username taken"},
    },
)
def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    """Create an account and log it in."""
    user = auth_service.register(data.username, data.password)
    token = auth_service.issue_session(user)
    return TokenResponse(token=token, user=UserResponse.from_user(user))


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User login",
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    """Authenticate and return a new session token.

    Unknown usernames and wrong passwords get the same 401.
    """
    user = auth_service.authenticate(data.username, data.password)
    token = auth_service.issue_session(user)
    return TokenResponse(token=token, user=UserResponse.from_user(user))


@router.post("/logout", response_model=OkResponse, summary="Logout")
def logout(token: BearerToken, auth_service: AuthServiceDep) -> OkResponse:
    """Revoke the presented token. Without one this is a no-op."""
    if token and auth_service.delete_session(token):
        logger.info("session_deleted")
    return OkResponse()


# ==============================================================================
# Current User
# ==============================================================================


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
def get_me(user: CurrentUser) -> UserResponse:
    return UserResponse.from_user(user)


async def _read_profile_form(
    request: Request, storage: StorageServiceDep
) -> dict[str, Any]:
    """Collect profile fields from a multipart form or a JSON body.

    ``avatar``/``banner`` may be uploaded files (stored in the image store) or
    plain URL strings.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as e:
            raise ValidationError("invalid JSON body") from e
        if not isinstance(body, dict):
            raise ValidationError("expected an object")
        return {
            key: body[key]
            for key in (*PROFILE_TEXT_FIELDS, *PROFILE_IMAGE_FIELDS)
            if isinstance(body.get(key), str)
        }

    form = await request.form()
    fields: dict[str, Any] = {}
    for key in PROFILE_TEXT_FIELDS:
        value = form.get(key)
        if isinstance(value, str):
            fields[key] = value
    for key in PROFILE_IMAGE_FIELDS:
        value = form.get(key)
        if isinstance(value, UploadFile):
            content = await value.read()
            if content:
                stored = await run_in_threadpool(
                    storage.save_image, content, value.content_type, value.filename
                )
                fields[key] = stored.url
        elif isinstance(value, str) and value:
            fields[key] = value
    return fields


@router.post(
    "/me",
    response_model=UserResponse,
    summary="Update current user profile",
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        409: {"model": ErrorResponse, "description": "Username taken"},
        413: {"model": ErrorResponse, "description": "Image too large"},
        415: {"model": ErrorResponse, "description": "Unsupported image type"},
    },
)
async def update_me(
    request: Request,
    user: CurrentUser,
    auth_service: AuthServiceDep,
    storage: StorageServiceDep,
) -> UserResponse:
    """Update username, password, avatar, banner, bio, location or website.

    Accepts ``multipart/form-data`` (files for avatar/banner) or JSON.
    """
    fields = await _read_profile_form(request, storage)
    if "username" in fields:
        fields["username"] = fields["username"].strip()
    updated = await run_in_threadpool(auth_service.update_profile, user.id, **fields)
    return UserResponse.from_user(updated)


# ==============================================================================
# Public User Lookups
# ==============================================================================


@router.get(
    "/user/by-username/{username}",
    response_model=UserResponse,
    summary="Get user by username",
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def get_user_by_username(
    username: str, auth_service: AuthServiceDep
) -> UserResponse:
    user = auth_service.get_user_by_username(username)
    if user is None:
        raise UserNotFoundError
    return UserResponse.from_user(user)


@router.get(
    "/user/{user_id}",
    response_model=UserResponse,
    summary="Get user by id",
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def get_user(user_id: str, auth_service: AuthServiceDep) -> UserResponse:
    return UserResponse.from_user(auth_service.require_user(user_id))


@router.get(
    "/user/{user_id}/stats",
    response_model=UserStatsResponse,
    summary="Get user activity stats",
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def get_user_stats(
    user_id: str, auth_service: AuthServiceDep
) -> UserStatsResponse:
    return UserStatsResponse.model_validate(auth_service.get_user_stats(user_id))


# ==============================================================================
# Discord OAuth
# ==============================================================================


@router.get(
    "/auth/discord",
    summary="Start Discord login",
    responses={
        307: {"description": "Redirect to Discord"},
        503: {"model": ErrorResponse, "description": "Discord login not configured"},
    },
)
def discord_login(discord: DiscordClientDep) -> RedirectResponse:
    if discord is None:
        raise ServiceUnavailableError("Discord login is not configured")

    state = secrets.token_urlsafe(16)
    response = RedirectResponse(discord.authorization_url(state))
    response.set_cookie(
        DISCORD_STATE_COOKIE,
        state,
        max_age=DISCORD_STATE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    return response


def _login_failed(settings: Settings) -> RedirectResponse:
    response = RedirectResponse(
        f"{settings.frontend_url}/login?error=auth_failed",
        status_code=status.HTTP_302_FOUND,
    )
    response.delete_cookie(DISCORD_STATE_COOKIE)
    return response


@router.get(
    "/auth/discord/callback",
    summary="Discord login callback",
    responses={302: {"description": "Redirect to the frontend"}},
)
async def discord_callback(
    request: Request,
    settings: AppSettings,
    auth_service: AuthServiceDep,
    discord: DiscordClientDep,
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
) -> Response:
    """Exchange the code, link or create the local user and hand the SPA a token.

    Every failure redirects to the frontend login page.
    """
    if discord is None:
        raise ServiceUnavailableError("Discord login is not configured")

    expected_state = request.cookies.get(DISCORD_STATE_COOKIE)
    if error or not code:
        logger.warning("discord_callback_denied", error=error)
        return _login_failed(settings)
    if not state or not expected_state or not secrets.compare_digest(
        state, expected_state
    ):
        logger.warning("discord_callback_state_mismatch")
        return _login_failed(settings)

    try:
        profile = await discord.authenticate(code)
        user = await run_in_threadpool(auth_service.link_discord_identity, profile)
    except AppError as e:
        logger.warning("discord_login_failed", error=e.message, code=e.code)
        return _login_failed(settings)

    token = await run_in_threadpool(auth_service.issue_session, user)
    logger.info("discord_login", user_id=user.id)

    response = RedirectResponse(
        f"{settings.frontend_url}/auth/callback?token={token}",
        status_code=status.HTTP_302_FOUND,
    )
    response.delete_cookie(DISCORD_STATE_COOKIE)
    return response
