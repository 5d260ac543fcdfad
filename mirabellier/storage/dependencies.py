"""Dependencies for storage module."""

from typing import Annotated

from fastapi import Depends, Request

from mirabellier.storage.service import LocalFileStorage


def get_storage_service(request: Request) -> LocalFileStorage:
    """Get the blob store created during application startup."""
    return request.app.state.storage


# Type alias for dependency injection
StorageServiceDep = Annotated[LocalFileStorage, Depends(get_storage_service)]
