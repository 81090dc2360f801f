"""
Shared FastAPI dependencies and error translation for the v1 routers.

Each ``get_*`` function builds one collaborator from settings so that tests
can swap it through ``app.dependency_overrides``.
"""

import logging

from typing import Any

from fastapi import Depends, HTTPException, status
from pydantic import BaseModel, Field

from tubely.config import Settings, get_settings
from tubely.core.database import get_db_client
from tubely.core.storage import get_storage_client
from tubely.services.fast_start_remuxer import FastStartRemuxer, FFmpegFastStartRemuxer
from tubely.services.geometry_prober import FFprobeGeometryProber, GeometryProber
from tubely.services.storage_service import StorageOperationError, StorageService
from tubely.services.upload_service import (
    InvalidMediaTypeError,
    MalformedUploadError,
    MediaProcessingError,
    MissingFilePartError,
    StorageError,
    UploadService,
    UploadTooLargeError,
)
from tubely.services.video_service import (
    InvalidVideoIdError,
    MetadataStoreError,
    NotVideoOwnerError,
    VideoNotFoundError,
    VideoService,
)


logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Body of every error response: ``{"detail": {"error": ..., "message": ...}}``."""

    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")


# Exception type -> (HTTP status, error code). Looked up along the MRO.
ERROR_STATUS_MAP: dict[type[Exception], tuple[int, str]] = {
    InvalidVideoIdError: (status.HTTP_400_BAD_REQUEST, "invalid_id"),
    MissingFilePartError: (status.HTTP_400_BAD_REQUEST, "missing_file"),
    InvalidMediaTypeError: (status.HTTP_400_BAD_REQUEST, "invalid_media_type"),
    MalformedUploadError: (status.HTTP_400_BAD_REQUEST, "malformed_upload"),
    UploadTooLargeError: (status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "file_too_large"),
    NotVideoOwnerError: (status.HTTP_403_FORBIDDEN, "not_owner"),
    VideoNotFoundError: (status.HTTP_404_NOT_FOUND, "video_not_found"),
    MediaProcessingError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "processing_failed"),
    StorageError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_failed"),
    StorageOperationError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_failed"),
    MetadataStoreError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "metadata_update_failed"),
}

# Returned in place of the exception text, which carries the S3 error message
PUBLIC_MESSAGES: dict[type[Exception], str] = {
    StorageOperationError: "Couldn't generate presigned URL",
}


def to_http_exception(error: Exception) -> HTTPException:
    """
    Translate a service exception into an HTTPException.

    Unmapped exception types become a generic 500 whose message does not
    echo the exception text.
    """
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS_MAP:
            status_code, code = ERROR_STATUS_MAP[cls]
            message = PUBLIC_MESSAGES.get(cls, str(error))
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        code = "internal_error"
        message = "Internal server error"

    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Request failed: %s", error, exc_info=error)

    detail: dict[str, Any] = {"error": code, "message": message}
    return HTTPException(status_code=status_code, detail=detail)


def get_video_service() -> VideoService:
    """
    Build a VideoService over the shared MongoDB client.

    Raises:
        HTTPException: 503 when the database was not initialized at startup.
    """
    try:
        db_client = get_db_client()
    except RuntimeError:
        logger.exception("Database error")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "database_unavailable", "message": "Database unavailable"},
        ) from None
    return VideoService(db_client.get_videos_collection())


def get_storage_service(settings: Settings = Depends(get_settings)) -> StorageService:
    return StorageService(settings, get_storage_client(settings))


def get_geometry_prober(settings: Settings = Depends(get_settings)) -> GeometryProber:
    return FFprobeGeometryProber(settings.ffprobe_path)


def get_fast_start_remuxer(settings: Settings = Depends(get_settings)) -> FastStartRemuxer:
    return FFmpegFastStartRemuxer(settings.ffmpeg_path)


def get_upload_service(
    settings: Settings = Depends(get_settings),
    video_service: VideoService = Depends(get_video_service),
    storage_service: StorageService = Depends(get_storage_service),
    prober: GeometryProber = Depends(get_geometry_prober),
    remuxer: FastStartRemuxer = Depends(get_fast_start_remuxer),
) -> UploadService:
    """Assemble the upload pipeline from its injectable parts."""
    return UploadService(
        settings=settings,
        video_service=video_service,
        storage_service=storage_service,
        prober=prober,
        remuxer=remuxer,
    )
