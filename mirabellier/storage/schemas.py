"""Pydantic schemas for stored image listings."""

from pydantic import Field

from mirabellier.core.schemas import ApiModel


class ImageInfoResponse(ApiModel):
    """One file under /images."""

    filename: str = Field(..., description="Stored file name")
    url: str = Field(..., description="Public URL path")
    size: int = Field(..., description="File size in bytes")
    modified_at: str = Field(..., description="Last modification (ISO-8601 UTC)")
