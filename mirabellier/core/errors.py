"""Application error taxonomy.

Services raise these; the handlers registered in ``create_app`` turn them into
``{"error": message, "code": code}`` JSON responses with the mapped status.
"""

from fastapi import status


class AppError(Exception):
    """Base application error."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"
    default_code: str = "internal_error"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"
    default_code = "validation_error"


class InvalidArgumentError(ValidationError):
    """A value outside the accepted set (e.g. an unknown like action)."""

    default_message = "Invalid argument"
    default_code = "invalid_argument"


class UnauthenticatedError(AppError):
    """Missing, malformed or unknown credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "unauthenticated"
    default_code = "unauthenticated"


class ForbiddenError(AppError):
    """Authenticated, but not the owner or not privileged."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "forbidden"
    default_code = "forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"
    default_code = "not_found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"
    default_code = "conflict"


class FileTooLargeError(AppError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_code = "file_too_large"

    def __init__(self, size: int, max_size: int) -> None:
        message = (
            f"File size ({size / 1024 / 1024:.2f} MB) exceeds "
            f"maximum allowed ({max_size / 1024 / 1024:.2f} MB)"
        )
        super().__init__(message)


class UnsupportedMediaTypeError(AppError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    default_message = "Unsupported media type"
    default_code = "unsupported_media_type"


class ServiceUnavailableError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable"
    default_code = "service_unavailable"


class InternalError(AppError):
    """Unexpected failure; the message is never shown to the caller."""
