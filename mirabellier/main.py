"""Mirabellier API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from mirabellier.anime.router import router as anime_router
from mirabellier.anime.service import AnimeService
from mirabellier.auth.discord import DiscordOAuthClient
from mirabellier.auth.router import router as auth_router
from mirabellier.auth.service import AuthService
from mirabellier.config import Settings, get_settings
from mirabellier.content.router import router_pics, router_posts, router_videos
from mirabellier.content.service import (
    PictureRepository,
    PostRepository,
    VideoRepository,
)
from mirabellier.core.context import get_request_id
from mirabellier.core.database import init_database
from mirabellier.core.errors import AppError
from mirabellier.core.logging import configure_structlog, get_logger
from mirabellier.core.middleware import RequestContextMiddleware
from mirabellier.health import router as health_router
from mirabellier.pages.router import router as pages_router
from mirabellier.storage.router import router as storage_router
from mirabellier.storage.service import LocalFileStorage


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Opens the database and builds every service on ``app.state``; the
    database is closed on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    db = init_database(
        settings.database_path, run_migrations=settings.database_run_migrations
    )
    app.state.db = db
    logger.info("database_initialized", path=settings.database_path)

    app.state.auth_service = AuthService(
        db,
        session_secret=settings.session_secret,
        curator_usernames=settings.curator_usernames,
        curator_discord_ids=settings.curator_discord_ids,
    )
    app.state.posts = PostRepository(db, app.state.auth_service)
    app.state.videos = VideoRepository(db, app.state.auth_service)
    app.state.pics = PictureRepository(db, app.state.auth_service)
    app.state.anime = AnimeService(db)
    app.state.storage = LocalFileStorage.from_settings(settings)
    logger.info("services_initialized", upload_dir=settings.upload_dir)

    if settings.discord_configured:
        app.state.discord = DiscordOAuthClient.from_settings(settings)
        logger.info("discord_oauth_enabled")
    else:
        app.state.discord = None
        logger.info("discord_oauth_disabled")

    try:
        yield
    finally:
        logger.info("shutting_down_application")
        db.close()


def _error_response(
    request: Request, status_code: int, message: str, code: str, **extra
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "code": code, "requestId": request_id, **extra},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Explicit settings (tests); defaults to the cached environment
    """
    settings = settings or get_settings()
    configure_structlog(settings)

    # debug=False keeps stack traces out of responses; handlers below log them
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Mirabellier community site API",
        debug=False,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.settings = settings

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Global exception handlers (never expose stack traces)
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        log_method = (
            logger.error
            if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            else logger.info
        )
        log_method(
            "app_error",
            status_code=exc.status_code,
            code=exc.code,
            error_message=exc.message,
            path=request.url.path,
            method=request.method,
        )
        message = (
            exc.message
            if exc.status_code != status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return _error_response(request, exc.status_code, message, exc.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return _error_response(request, exc.status_code, message, "http_error")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "Validation error",
            "validation_error",
            details=[
                {
                    "field": ".".join(str(loc) for loc in err.get("loc", [])),
                    "message": err.get("msg", "Invalid value"),
                }
                for err in exc.errors()
            ],
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all handler for unhandled exceptions."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
            "internal_error",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(router_posts)
    app.include_router(router_videos)
    app.include_router(router_pics)
    app.include_router(anime_router)
    app.include_router(storage_router)
    app.include_router(pages_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Mirabellier API",
            "version": settings.app_version,
        }

    # Stored images; mounted after the routers so /images/list wins.
    # Videos stream through GET /videos/{video_id}.
    app.mount(
        "/images",
        StaticFiles(directory=settings.images_dir, check_dir=False),
        name="images",
    )

    return app


app = create_app()
