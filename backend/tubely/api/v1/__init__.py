"""
Tubely API v1 Router Aggregator.

Combines the v1 endpoint routers into a single APIRouter that the
application mounts under ``/api/v1``:

    - /video_upload/{video_id}, /thumbnail_upload/{video_id}: media uploads
    - /videos: video record creation and retrieval
"""

import logging

from fastapi import APIRouter

from tubely.api.v1.upload import router as upload_router
from tubely.api.v1.videos import router as videos_router


logger = logging.getLogger(__name__)

api_router = APIRouter()

api_router.include_router(upload_router)
api_router.include_router(videos_router, prefix="/videos")

__all__ = ["api_router"]
