"""
Async storage service for Tubely.

Wraps the synchronous :class:`tubely.core.storage.StorageClient` so that the
upload pipeline and the read path can await S3 operations without blocking
the event loop, and translates boto3 failures into service-level exceptions.

Key Features:
- Single-request upload of a processed local file
- Presigned GET URL generation (5-minute default)
- Resolution of a Video record's persisted ``"bucket,key"`` references into
  presigned URLs at read time
"""

import asyncio
import logging

from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings
from tubely.core.storage import StorageClient
from tubely.models.video import StoredReference, Video


logger = logging.getLogger(__name__)

T = TypeVar("T")


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator to run a blocking boto3 call in a worker thread.

    Args:
        func: The synchronous function to wrap

    Returns:
        An async function that executes the original via ``asyncio.to_thread``
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


class StorageServiceError(Exception):
    """Base exception for storage service errors."""


class StorageOperationError(StorageServiceError):
    """Raised when a storage operation fails."""


def _client_error_message(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Message") or str(e)


class StorageService:
    """
    Async facade over the S3 storage client.

    Attributes:
        settings: Application settings
        client: Synchronous StorageClient performing the boto3 calls
        bucket_name: Bucket new uploads are written to

    Example:
        ```python
        service = StorageService(settings, get_storage_client(settings))
        ref = await service.upload_file("landscape/abc.mp4", "/tmp/x.processing", "video/mp4")
        ref.serialize()  # "tubely-media,landscape/abc.mp4"
        ```
    """

    def __init__(self, settings: Settings, client: StorageClient) -> None:
        self.settings = settings
        self.client = client
        self.bucket_name = settings.s3_bucket_name

    async def upload_file(
        self,
        object_key: str,
        file_path: str | Path,
        content_type: str,
        bucket_name: str | None = None,
    ) -> StoredReference:
        """
        Upload a local file to S3 in a single put_object request.

        The file is opened here and streamed as the request body; it is not
        read into memory first.

        Args:
            object_key: Destination key
            file_path: Local file to upload
            content_type: Stored Content-Type (the declared media type)
            bucket_name: Optional bucket override

        Returns:
            StoredReference: Where the object now lives.

        Raises:
            StorageOperationError: If the file cannot be read or S3 rejects the upload.
        """
        target_bucket = bucket_name or self.bucket_name

        @async_wrap
        def _put_object() -> str:
            with open(file_path, "rb") as body:
                return self.client.put_object(object_key, body, content_type, bucket=target_bucket)

        try:
            stored_bucket = await _put_object()
        except ClientError as e:
            error_msg = f"Failed to upload file: {_client_error_message(e)}"
            logger.error(error_msg, extra={"bucket": target_bucket, "key": object_key})
            raise StorageOperationError(error_msg) from e
        except BotoCoreError as e:
            error_msg = f"Storage operation error during file upload: {e}"
            logger.error(error_msg, extra={"bucket": target_bucket, "key": object_key})
            raise StorageOperationError(error_msg) from e
        except OSError as e:
            error_msg = f"File system error during upload: {e}"
            logger.error(error_msg, extra={"bucket": target_bucket, "key": object_key})
            raise StorageOperationError(error_msg) from e

        return StoredReference(bucket=stored_bucket, key=object_key)

    async def generate_presigned_download_url(
        self,
        bucket_name: str,
        object_key: str,
        expiration: int | None = None,
    ) -> str:
        """
        Generate a presigned GET URL for a stored object.

        Raises:
            StorageOperationError: If signing fails or the expiration is out of range.
        """
        expires_in = expiration or self.settings.presigned_url_expiration_seconds
        try:
            return await async_wrap(self.client.generate_presigned_download_url)(
                bucket_name, object_key, expires_in
            )
        except ClientError as e:
            error_msg = f"Failed to generate presigned download URL: {_client_error_message(e)}"
            logger.error(error_msg, extra={"bucket": bucket_name, "key": object_key})
            raise StorageOperationError(error_msg) from e
        except (BotoCoreError, ValueError) as e:
            error_msg = f"Storage operation error during presigned URL generation: {e}"
            logger.error(error_msg, extra={"bucket": bucket_name, "key": object_key})
            raise StorageOperationError(error_msg) from e

    async def resolve_reference(self, value: str | None, expiration: int | None = None) -> str | None:
        """
        Turn a persisted reference into a presigned URL.

        Values that are absent or not a ``bucket,key`` pair are returned as-is.
        """
        reference = StoredReference.parse(value)
        if reference is None:
            return value
        return await self.generate_presigned_download_url(
            reference.bucket, reference.key, expiration
        )

    async def sign_video(self, video: Video, expiration: int | None = None) -> Video:
        """
        Return a copy of ``video`` with its stored references replaced by presigned URLs.

        The input record is not modified. A record without a video reference,
        or with one that does not parse, comes back with that field unchanged.

        Raises:
            StorageOperationError: If signing a well-formed reference fails.
        """
        video_url = await self.resolve_reference(video.video_url, expiration)
        thumbnail_url = await self.resolve_reference(video.thumbnail_url, expiration)
        if video_url == video.video_url and thumbnail_url == video.thumbnail_url:
            return video
        return video.model_copy(update={"video_url": video_url, "thumbnail_url": thumbnail_url})
