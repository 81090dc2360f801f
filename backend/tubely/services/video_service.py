"""
Video metadata store for Tubely.

Reads and writes Video records in the MongoDB ``videos`` collection. Records
are addressed by their UUID string, which doubles as the document ``_id``.
Updates replace the whole document, so two concurrent writers to the same
record resolve as last-write-wins.
"""

import logging

from datetime import UTC, datetime
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from tubely.models.video import Video, VideoCreate


logger = logging.getLogger(__name__)


class VideoServiceError(Exception):
    """Base exception for video metadata errors."""


class InvalidVideoIdError(VideoServiceError):
    """Raised when a video id is not a UUID."""


class VideoNotFoundError(VideoServiceError):
    """Raised when no record exists for a video id."""


class NotVideoOwnerError(VideoServiceError):
    """Raised when the caller does not own the video record."""


class MetadataStoreError(VideoServiceError):
    """Raised when the metadata store cannot be read or written."""


def parse_video_id(value: str) -> str:
    """
    Validate a video id and return its canonical lower-case UUID string.

    Raises:
        InvalidVideoIdError: If ``value`` is not a UUID.
    """
    try:
        return str(UUID(value))
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidVideoIdError(f"Invalid video ID: {value!r}") from e


class VideoService:
    """
    CRUD operations on Video records.

    Example:
        ```python
        service = VideoService(get_db_client().get_videos_collection())
        video = await service.get_owned_video(video_id, user_id)
        video.video_url = "tubely-media,landscape/abc.mp4"
        await service.update_video(video)
        ```
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get_video(self, video_id: str) -> Video:
        """
        Load one record.

        Raises:
            VideoNotFoundError: If the record does not exist.
            MetadataStoreError: If the query fails.
        """
        try:
            document = await self.collection.find_one({"_id": video_id})
        except PyMongoError as e:
            logger.exception("Failed to load video record", extra={"video_id": video_id})
            raise MetadataStoreError("Couldn't get video") from e

        if document is None:
            raise VideoNotFoundError(f"Video with ID '{video_id}' not found")
        return Video.model_validate(document)

    async def get_owned_video(self, video_id: str, user_id: str) -> Video:
        """
        Load one record and check that ``user_id`` owns it.

        Raises:
            VideoNotFoundError: If the record does not exist.
            NotVideoOwnerError: If another user owns the record.
            MetadataStoreError: If the query fails.
        """
        video = await self.get_video(video_id)
        if video.user_id != user_id:
            logger.warning(
                "Rejected access to video owned by another user",
                extra={"video_id": video_id, "user_id": user_id},
            )
            raise NotVideoOwnerError("You do not have permission to modify this video")
        return video

    async def create_video(self, user_id: str, params: VideoCreate) -> Video:
        """Insert a draft record with no media attached."""
        video = Video(user_id=user_id, title=params.title, description=params.description)
        try:
            await self.collection.insert_one(video.to_document())
        except PyMongoError as e:
            logger.exception("Failed to create video record", extra={"user_id": user_id})
            raise MetadataStoreError("Couldn't create video") from e

        logger.info("Created video record", extra={"video_id": video.id, "user_id": user_id})
        return video

    async def list_videos_for_user(self, user_id: str) -> list[Video]:
        """Return the user's records, newest first."""
        try:
            cursor = self.collection.find({"user_id": user_id}).sort("created_at", DESCENDING)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.exception("Failed to list video records", extra={"user_id": user_id})
            raise MetadataStoreError("Couldn't retrieve videos") from e
        return [Video.model_validate(document) for document in documents]

    async def update_video(self, video: Video) -> Video:
        """
        Persist the whole record, bumping ``updated_at``.

        Raises:
            VideoNotFoundError: If the record was deleted in the meantime.
            MetadataStoreError: If the write fails.
        """
        updated = video.model_copy(update={"updated_at": datetime.now(UTC)})
        try:
            result = await self.collection.replace_one({"_id": updated.id}, updated.to_document())
        except PyMongoError as e:
            logger.exception("Failed to update video record", extra={"video_id": video.id})
            raise MetadataStoreError("Couldn't update video") from e

        if result.matched_count == 0:
            raise VideoNotFoundError(f"Video with ID '{video.id}' not found")
        return updated
