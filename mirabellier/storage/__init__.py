"""Storage module for uploaded images and videos on local disk."""

from mirabellier.storage.dependencies import StorageServiceDep, get_storage_service
from mirabellier.storage.service import ImageInfo, LocalFileStorage, StoredFile


__all__ = [
    "ImageInfo",
    "LocalFileStorage",
    "StorageServiceDep",
    "StoredFile",
    "get_storage_service",
]
