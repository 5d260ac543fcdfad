"""Local disk storage for uploaded images and videos.

Handles uploads written under ``<upload_dir>/images`` and ``<upload_dir>/videos``
with:
- Size cap checked before anything touches the disk
- MIME allow-lists plus magic bytes validation
- Collision-resistant file names and the public ``/images``/``/videos`` URLs
"""

import re
import secrets
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import structlog

from mirabellier.config.settings import Settings
from mirabellier.core.errors import (
    FileTooLargeError,
    NotFoundError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from mirabellier.utils.magic_bytes import SNIFF_LENGTH, validate_content_type


logger = structlog.get_logger(__name__)

IMAGES_URL_PREFIX = "/images/"
VIDEOS_URL_PREFIX = "/videos/"
VIDEO_FILENAME_PREFIX = "mirabellier-video-"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class StoredFile:
    """A file written to the blob store."""

    filename: str
    url: str
    content_type: str
    size: int


@dataclass
class ImageInfo:
    filename: str
    url: str
    size: int
    modified_at: str


def is_safe_filename(filename: str) -> bool:
    """Reject empty names and anything that could leave the directory."""
    return bool(filename) and not (
        ".." in filename or "/" in filename or "\\" in filename
    )


def safe_original_name(filename: str | None, default: str = "upload") -> str:
    """Reduce a client file name to a plain, traversal-free name."""
    name = Path((filename or "").replace("\\", "/")).name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).lstrip(".")
    return name or default


class LocalFileStorage:
    """Blob store backed by two directories on local disk."""

    EXTENSION_MAP: dict[str, str] = {
        # Images
        "image/jpeg": ".jpg",
        "image/png": ".png",
        "image/webp": ".webp",
        "image/gif": ".gif",
        "image/bmp": ".bmp",
        "image/avif": ".avif",
        "image/heic": ".heic",
        # Video
        "video/mp4": ".mp4",
        "video/quicktime": ".mov",
        "video/x-msvideo": ".avi",
        "video/webm": ".webm",
    }

    def __init__(
        self,
        images_dir: Path,
        videos_dir: Path,
        max_file_size: int,
        allowed_image_types: list[str],
        allowed_video_types: list[str],
    ) -> None:
        self.images_dir = Path(images_dir)
        self.videos_dir = Path(videos_dir)
        self.max_file_size = max_file_size
        self.allowed_image_types = list(allowed_image_types)
        self.allowed_video_types = list(allowed_video_types)

        self.images_dir.mkdir(parents=True, exist_ok=True)
        self.videos_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalFileStorage":
        return cls(
            images_dir=settings.images_dir,
            videos_dir=settings.videos_dir,
            max_file_size=settings.max_upload_bytes,
            allowed_image_types=settings.upload_allowed_image_types,
            allowed_video_types=settings.upload_allowed_video_types,
        )

    # ==========================================================================
    # Validation
    # ==========================================================================

    def _validate(
        self, content: bytes, content_type: str | None, allowed: list[str]
    ) -> str:
        """Check size, declared type and magic bytes.

        Returns:
            The detected MIME type

        Raises:
            ValidationError: Empty upload
            FileTooLargeError: Content exceeds the cap
            UnsupportedMediaTypeError: Type not allowed or content mismatch
        """
        file_size = len(content)
        if file_size == 0:
            raise ValidationError("File is empty")
        if file_size > self.max_file_size:
            raise FileTooLargeError(file_size, self.max_file_size)

        declared = (content_type or "").split(";")[0].strip().lower()
        if declared not in allowed:
            raise UnsupportedMediaTypeError(
                f"Content type '{declared}' is not allowed. "
                f"Allowed: {', '.join(allowed)}"
            )

        is_valid, detected_type, error_msg = validate_content_type(
            content[:SNIFF_LENGTH],
            declared,
            strict=False,
            allowed_types=frozenset(allowed),
        )
        if not is_valid:
            logger.warning(
                "magic_bytes_validation_failed",
                declared_type=declared,
                detected_type=detected_type,
                error=error_msg,
            )
            raise UnsupportedMediaTypeError(error_msg or "Invalid file content")

        return detected_type or declared

    def _extension(self, content_type: str) -> str:
        """Suffix for the detected type; the client's suffix is never kept."""
        return self.EXTENSION_MAP.get(content_type, "")

    # ==========================================================================
    # Writes
    # ==========================================================================

    def save_video(
        self, content: bytes, content_type: str | None, filename: str | None
    ) -> StoredFile:
        """Store a video as ``mirabellier-video-<ts>-<rand><ext>``."""
        actual_type = self._validate(content, content_type, self.allowed_video_types)

        stamp = int(time.time() * 1000)
        rand = secrets.randbelow(10**9)
        name = (
            f"{VIDEO_FILENAME_PREFIX}{stamp}-{rand}"
            f"{self._extension(actual_type)}"
        )
        (self.videos_dir / name).write_bytes(content)

        logger.info(
            "video_stored",
            filename=name,
            original_filename=filename,
            content_type=actual_type,
            size=len(content),
        )
        return StoredFile(
            filename=name,
            url=f"{VIDEOS_URL_PREFIX}{name}",
            content_type=actual_type,
            size=len(content),
        )

    def save_image(
        self, content: bytes, content_type: str | None, filename: str | None
    ) -> StoredFile:
        """Store an image as ``<ts>-<safe original stem><ext>``.

        The suffix always comes from the detected type, so ``x.html`` holding
        PNG bytes is stored as ``<ts>-x.png``.
        """
        actual_type = self._validate(content, content_type, self.allowed_image_types)

        stamp = int(time.time() * 1000)
        stem = Path(safe_original_name(filename, default="image")).stem or "image"
        name = f"{stamp}-{stem}{self._extension(actual_type)}"
        (self.images_dir / name).write_bytes(content)

        logger.info(
            "image_stored",
            filename=name,
            original_filename=filename,
            content_type=actual_type,
            size=len(content),
        )
        return StoredFile(
            filename=name,
            url=f"{IMAGES_URL_PREFIX}{name}",
            content_type=actual_type,
            size=len(content),
        )

    def delete(self, url: str | None) -> bool:
        """Best-effort removal of a stored file by its public URL.

        Returns:
            True if a file was removed
        """
        if not url:
            return False

        if url.startswith(VIDEOS_URL_PREFIX):
            directory, name = self.videos_dir, url[len(VIDEOS_URL_PREFIX) :]
        elif url.startswith(IMAGES_URL_PREFIX):
            directory, name = self.images_dir, url[len(IMAGES_URL_PREFIX) :]
        else:
            return False

        if not is_safe_filename(name):
            return False

        path = directory / name
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("delete_file_not_found", url=url)
            return False
        except OSError as e:
            logger.warning("delete_file_failed", url=url, error=str(e))
            return False

        logger.info("file_deleted", url=url)
        return True

    # ==========================================================================
    # Image listing
    # ==========================================================================

    def _image_info(self, path: Path) -> ImageInfo:
        stat = path.stat()
        return ImageInfo(
            filename=path.name,
            url=f"{IMAGES_URL_PREFIX}{path.name}",
            size=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC).isoformat(),
        )

    def list_images(self) -> list[ImageInfo]:
        """All stored images, newest first."""
        if not self.images_dir.exists():
            return []
        images = [
            self._image_info(path)
            for path in self.images_dir.iterdir()
            if path.is_file()
        ]
        return sorted(images, key=lambda info: info.modified_at, reverse=True)

    def image_meta(self, filename: str) -> ImageInfo:
        """Metadata for one stored image.

        Raises:
            ValidationError: Filename contains ``..``, ``/`` or ``\\``
            NotFoundError: No such file
        """
        if not is_safe_filename(filename):
            raise ValidationError("invalid filename")

        path = self.images_dir / filename
        if not path.is_file():
            raise NotFoundError("not found")
        return self._image_info(path)

    # ==========================================================================
    # Video files
    # ==========================================================================

    @staticmethod
    def is_video_filename(name: str) -> bool:
        """Stored video names never collide with item ids (hex, no dashes)."""
        return name.startswith(VIDEO_FILENAME_PREFIX)

    def video_path(self, filename: str) -> Path:
        """Path of a stored video for streaming.

        Raises:
            ValidationError: Filename contains ``..``, ``/`` or ``\\``
            NotFoundError: No such file
        """
        if not is_safe_filename(filename):
            raise ValidationError("invalid filename")

        path = self.videos_dir / filename
        if not path.is_file():
            raise NotFoundError("not found")
        return path
