"""Router for stored image listings."""

from fastapi import APIRouter, Response

from mirabellier.core.schemas import ErrorResponse
from mirabellier.storage.dependencies import StorageServiceDep
from mirabellier.storage.schemas import ImageInfoResponse


router = APIRouter(prefix="/images", tags=["images"])


@router.get(
    "/list",
    response_model=list[ImageInfoResponse],
    summary="List stored images",
    description="Every file in the image store, newest first.",
)
def list_images(
    storage: StorageServiceDep, response: Response
) -> list[ImageInfoResponse]:
    response.headers["Cache-Control"] = "public, max-age=120"
    return [ImageInfoResponse.model_validate(info) for info in storage.list_images()]


@router.get(
    "/meta/{filename}",
    response_model=ImageInfoResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid filename"},
        404: {"model": ErrorResponse, "description": "Image not found"},
    },
    summary="Get image metadata",
)
def get_image_meta(
    filename: str, storage: StorageServiceDep, response: Response
) -> ImageInfoResponse:
    """Size and modification time of one stored image."""
    info = storage.image_meta(filename)
    response.headers["Cache-Control"] = "public, max-age=3600"
    return ImageInfoResponse.model_validate(info)
