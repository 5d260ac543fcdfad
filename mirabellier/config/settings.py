"""Application settings using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="mirabellier", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, description="API port")

    # Database
    database_path: str = Field(
        default="database.sqlite3", description="SQLite database file"
    )
    database_run_migrations: bool = Field(
        default=True, description="Create/upgrade tables on startup"
    )

    # Sessions
    session_secret: str | None = Field(
        default=None,
        description="HMAC secret for signed session tokens (unsigned when empty)",
    )

    # Privileged identities (granted the curator role)
    curator_usernames: list[str] = Field(
        default_factory=list, description="Usernames granted the curator role"
    )
    curator_discord_ids: list[str] = Field(
        default_factory=list, description="Discord ids granted the curator role"
    )

    # Discord OAuth
    discord_client_id: str | None = Field(default=None, description="Client ID")
    discord_client_secret: str | None = Field(
        default=None, description="Client secret"
    )
    discord_callback_url: str = Field(
        default="http://localhost:3000/auth/discord/callback",
        description="OAuth redirect URI registered with Discord",
    )
    discord_api_base: str = Field(
        default="https://discord.com/api", description="Discord API base URL"
    )
    discord_timeout_seconds: float = Field(
        default=10.0, description="Discord HTTP timeout"
    )

    # Frontend
    frontend_url: str = Field(
        default="http://localhost:5173", description="Single-page app origin"
    )
    public_base_url: str | None = Field(
        default=None,
        description="Public origin for share-page links (request host when empty)",
    )
    default_share_image: str = Field(
        default="/background.jpg", description="Fallback OpenGraph image path"
    )

    # Uploads
    upload_dir: str = Field(default=".", description="Root for images/ and videos/")
    upload_max_file_size_mb: int = Field(
        default=50, description="Maximum upload size in MB"
    )
    upload_allowed_image_types: list[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"],
        description="Allowed image MIME types",
    )
    upload_allowed_video_types: list[str] = Field(
        default=["video/mp4", "video/quicktime", "video/x-msvideo"],
        description="Allowed video MIME types",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_to_file: bool = Field(default=True, description="Write rotating log files")
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def discord_configured(self) -> bool:
        """Check if Discord OAuth is configured."""
        return bool(self.discord_client_id and self.discord_client_secret)

    @property
    def images_dir(self) -> Path:
        return Path(self.upload_dir) / "images"

    @property
    def videos_dir(self) -> Path:
        return Path(self.upload_dir) / "videos"

    @property
    def max_upload_bytes(self) -> int:
        return self.upload_max_file_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
