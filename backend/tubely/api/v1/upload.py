"""
FastAPI Upload Router for Tubely

Endpoints:
- POST /video_upload/{video_id} - Upload an MP4 for an existing video record
- POST /thumbnail_upload/{video_id} - Upload a JPEG/PNG thumbnail for a record

Both endpoints take a multipart/form-data body with a single file part
(``video`` or ``thumbnail``) and return the updated record with presigned
URLs.

The handlers take the raw ``Request`` instead of ``UploadFile`` parameters.
FastAPI would otherwise parse the whole body before the handler runs, which
would defeat the ownership check and the size cap that the upload service
applies before reading it.
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from tubely.api.v1.dependencies import ErrorResponse, get_upload_service, to_http_exception
from tubely.core.auth import get_current_user_id
from tubely.models.video import Video
from tubely.services.upload_service import UploadService, UploadServiceError
from tubely.services.video_service import VideoServiceError


logger = logging.getLogger(__name__)


router = APIRouter(
    tags=["upload"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid id, missing file part or bad media type"},
        401: {"description": "Unauthorized - Invalid or missing token"},
        403: {"model": ErrorResponse, "description": "Caller does not own the video"},
        404: {"model": ErrorResponse, "description": "Video not found"},
        413: {"model": ErrorResponse, "description": "File too large"},
        500: {"model": ErrorResponse, "description": "Processing, storage or metadata failure"},
    },
)


@router.post(
    "/video_upload/{video_id}",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload a video file",
    description="Multipart upload of an MP4 (part name `video`, at most 1 GiB by default). "
    "The file is classified by aspect ratio, remuxed for fast start and stored in S3.",
)
async def upload_video(
    video_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    try:
        return await upload_service.upload_video(video_id, user_id, request)
    except (UploadServiceError, VideoServiceError) as e:
        raise to_http_exception(e) from e


@router.post(
    "/thumbnail_upload/{video_id}",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload a thumbnail image",
    description="Multipart upload of a JPEG or PNG image (part name `thumbnail`, "
    "at most 10 MiB by default).",
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    try:
        return await upload_service.upload_thumbnail(video_id, user_id, request)
    except (UploadServiceError, VideoServiceError) as e:
        raise to_http_exception(e) from e
