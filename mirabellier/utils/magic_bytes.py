"""Magic bytes detection for upload validation.

Checks the actual file content of an image or video upload against its
declared Content-Type so a renamed executable can't be stored as a picture.
"""

from typing import NamedTuple


# Minimum bytes needed for detection
MIN_BYTES_FOR_DETECTION = 4
RIFF_HEADER_LENGTH = 12
# Enough of the head of a file for every signature below
SNIFF_LENGTH = 64


class MagicSignature(NamedTuple):
    """Magic bytes signature for a file type."""

    bytes_pattern: bytes
    mime_type: str
    offset: int = 0


# Reference: https://en.wikipedia.org/wiki/List_of_file_signatures
# Order matters: specific ISO-BMFF brands come before the generic ``ftyp``.
MAGIC_SIGNATURES: list[MagicSignature] = [
    # JPEG - FF D8 FF
    MagicSignature(b"\xff\xd8\xff", "image/jpeg"),
    # PNG - 89 50 4E 47 0D 0A 1A 0A
    MagicSignature(b"\x89PNG\r\n\x1a\n", "image/png"),
    # GIF87a / GIF89a
    MagicSignature(b"GIF87a", "image/gif"),
    MagicSignature(b"GIF89a", "image/gif"),
    # BMP - 42 4D
    MagicSignature(b"BM", "image/bmp"),
    # AVIF / HEIC - ....ftypavif, ....ftypheic, ....ftypmif1
    MagicSignature(b"ftypavif", "image/avif", offset=4),
    MagicSignature(b"ftypheic", "image/heic", offset=4),
    MagicSignature(b"ftypmif1", "image/heic", offset=4),
    # QuickTime - ....ftypqt, or a bare moov/mdat/wide atom
    MagicSignature(b"ftypqt  ", "video/quicktime", offset=4),
    MagicSignature(b"moov", "video/quicktime", offset=4),
    MagicSignature(b"mdat", "video/quicktime", offset=4),
    MagicSignature(b"wide", "video/quicktime", offset=4),
    # MP4 - any other ....ftyp brand (isom, mp41, mp42, avc1, M4V, dash)
    MagicSignature(b"ftyp", "video/mp4", offset=4),
    # WebM / Matroska - 1A 45 DF A3
    MagicSignature(b"\x1aE\xdf\xa3", "video/webm"),
]

# RIFF container subtypes (bytes 8-12)
RIFF_SUBTYPES: dict[bytes, str] = {
    b"WEBP": "image/webp",
    b"AVI ": "video/x-msvideo",
}

IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/bmp",
        "image/avif",
        "image/heic",
    }
)

VIDEO_MIME_TYPES = frozenset(
    {
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
        "video/webm",
    }
)


def detect_content_type(data: bytes) -> str | None:
    """Detect content type from file magic bytes.

    Args:
        data: First 64+ bytes of file content.

    Returns:
        Detected MIME type or None if unknown.
    """
    if len(data) < MIN_BYTES_FOR_DETECTION:
        return None

    if data[:4] == b"RIFF":
        if len(data) < RIFF_HEADER_LENGTH:
            return None
        return RIFF_SUBTYPES.get(data[8:12])

    for sig in MAGIC_SIGNATURES:
        if sig.offset > 0:
            end_offset = sig.offset + len(sig.bytes_pattern)
            if (
                len(data) >= end_offset
                and data[sig.offset : end_offset] == sig.bytes_pattern
            ):
                return sig.mime_type
        elif data.startswith(sig.bytes_pattern):
            return sig.mime_type

    return None


def validate_content_type(  # noqa: PLR0911
    data: bytes,
    declared_type: str | None,
    *,
    strict: bool = False,
    allowed_types: frozenset[str] | None = None,
) -> tuple[bool, str | None, str | None]:
    """Validate file content against declared Content-Type.

    Args:
        data: First 64+ bytes of file content.
        declared_type: Content-Type header value.
        strict: If True, requires exact MIME type match.
                If False, allows types within the same media class
                (a ``.mov`` carrying an mp4 brand is still a video).
        allowed_types: Set of allowed MIME types. None = allow all detected.

    Returns:
        Tuple of (is_valid, detected_type, error_message).

    Examples:
        >>> validate_content_type(mp4_bytes, "video/quicktime")
        (True, "video/mp4", None)

        >>> validate_content_type(png_bytes, "video/mp4")
        (False, "image/png", "Media class mismatch: declared 'video', detected 'image'")
    """
    detected_type = detect_content_type(data)

    if detected_type is None:
        return (False, None, "Unable to detect file type from content")

    if allowed_types is not None and detected_type not in allowed_types:
        return (
            False,
            detected_type,
            f"File type '{detected_type}' is not allowed. "
            f"Allowed: {', '.join(sorted(allowed_types))}",
        )

    if not declared_type:
        return (True, detected_type, None)

    # Normalize declared type (remove parameters like charset)
    declared_base = declared_type.split(";")[0].strip().lower()

    if strict:
        if detected_type != declared_base:
            return (
                False,
                detected_type,
                f"Content-Type mismatch: declared '{declared_base}', "
                f"detected '{detected_type}'",
            )
        return (True, detected_type, None)

    detected_class = detected_type.split("/")[0]
    declared_class = declared_base.split("/")[0]

    if detected_class != declared_class:
        return (
            False,
            detected_type,
            f"Media class mismatch: declared '{declared_class}', "
            f"detected '{detected_class}'",
        )

    return (True, detected_type, None)
