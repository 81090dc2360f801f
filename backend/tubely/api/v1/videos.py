"""
Video Record API Endpoints for Tubely.

Endpoints:
- POST /videos - Create a draft video record for the caller
- GET /videos - List the caller's records, newest first
- GET /videos/{video_id} - Retrieve one record (owner only)

Records are returned with their stored ``bucket,key`` references replaced by
presigned GET URLs that expire after ``presigned_url_expiration_seconds``.
"""

import logging

from fastapi import APIRouter, Depends, status

from tubely.api.v1.dependencies import (
    ErrorResponse,
    get_storage_service,
    get_video_service,
    to_http_exception,
)
from tubely.core.auth import get_current_user_id
from tubely.models.video import Video, VideoCreate
from tubely.services.storage_service import StorageOperationError, StorageService
from tubely.services.video_service import VideoService, VideoServiceError, parse_video_id


logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["videos"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing token"},
        500: {"model": ErrorResponse, "description": "Storage or metadata failure"},
    },
)


@router.post(
    "",
    response_model=Video,
    status_code=status.HTTP_201_CREATED,
    summary="Create a video record",
)
async def create_video(
    params: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    video_service: VideoService = Depends(get_video_service),
) -> Video:
    try:
        return await video_service.create_video(user_id, params)
    except VideoServiceError as e:
        raise to_http_exception(e) from e


@router.get(
    "",
    response_model=list[Video],
    summary="List the caller's videos",
)
async def list_videos(
    user_id: str = Depends(get_current_user_id),
    video_service: VideoService = Depends(get_video_service),
    storage_service: StorageService = Depends(get_storage_service),
) -> list[Video]:
    try:
        videos = await video_service.list_videos_for_user(user_id)
        return [await storage_service.sign_video(video) for video in videos]
    except (VideoServiceError, StorageOperationError) as e:
        raise to_http_exception(e) from e


@router.get(
    "/{video_id}",
    response_model=Video,
    summary="Get one video",
    responses={
        400: {"model": ErrorResponse, "description": "Malformed video id"},
        403: {"model": ErrorResponse, "description": "Caller does not own the video"},
        404: {"model": ErrorResponse, "description": "Video not found"},
    },
)
async def get_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    video_service: VideoService = Depends(get_video_service),
    storage_service: StorageService = Depends(get_storage_service),
) -> Video:
    try:
        video = await video_service.get_owned_video(parse_video_id(video_id), user_id)
        return await storage_service.sign_video(video)
    except (VideoServiceError, StorageOperationError) as e:
        raise to_http_exception(e) from e
