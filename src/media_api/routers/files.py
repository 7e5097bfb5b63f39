import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile, status
from starlette.concurrency import run_in_threadpool

from media_api.adapters.storage import MediaStore
from media_api.dependencies import get_media_store
from media_api.errors import HTTP_413_CONTENT_TOO_LARGE, UploadValidationError
from media_api.schemas import (
    DeleteFileResponse,
    ErrorResponse,
    GetFilesResponse,
    OptimizeQueryParams,
    OptimizeResponse,
    UploadFileResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/files",
    response_model=GetFilesResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
)
async def list_files(store: MediaStore = Depends(get_media_store)) -> GetFilesResponse:
    """List the stored media along with their count and combined size."""
    records = await run_in_threadpool(store.list)
    return GetFilesResponse.from_records(records)


@router.post(
    "/upload",
    response_model=UploadFileResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Missing file or unsupported type."},
        HTTP_413_CONTENT_TOO_LARGE: {"model": ErrorResponse, "description": "File too large."},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def upload_file(
    file: Optional[UploadFile] = File(None, description="The image or video to store."),
    store: MediaStore = Depends(get_media_store),
) -> UploadFileResponse:
    """
    Upload a single image or video.

    Only `image/*` and `video/*` content is accepted, up to the configured size limit.
    The temporary copy made while receiving the file is removed on every outcome.
    """
    if file is None:
        raise UploadValidationError("No file uploaded", details="expected a multipart field named 'file'")

    logger.info("Processing file: %s (%s)", file.filename, file.content_type)
    try:
        record = await run_in_threadpool(store.store, file.file, file.filename, file.content_type)
    finally:
        await file.close()

    return UploadFileResponse(message="File uploaded successfully", file=record)


@router.delete(
    "/files/{storage_id:path}",
    response_model=DeleteFileResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "File not found for the given id."},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def delete_file(
    storage_id: str = Path(..., description="Storage id of the file to delete"),
    store: MediaStore = Depends(get_media_store),
) -> DeleteFileResponse:
    """Delete a stored file."""
    await run_in_threadpool(store.delete, storage_id)
    return DeleteFileResponse(message="File deleted successfully")


@router.get(
    "/optimize/{storage_id:path}",
    response_model=OptimizeResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
)
async def optimize_file(
    storage_id: Annotated[str, Path(description="Storage id of the file to transform")],
    query_params: Annotated[OptimizeQueryParams, Query()],
    store: MediaStore = Depends(get_media_store),
) -> OptimizeResponse:
    """
    Build a display URL with an on-the-fly transformation.

    NOTE: this is pure URL construction. The id is not looked up, so unknown ids
    still get a URL.
    """
    optimized_url, transformation = store.build_display_url(
        storage_id,
        width=query_params.width,
        height=query_params.height,
        quality=query_params.quality,
        format=query_params.format,
    )
    return OptimizeResponse(original_id=storage_id, optimized_url=optimized_url, transformation=transformation)
