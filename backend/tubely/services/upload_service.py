"""
Tubely Upload Service Module

Ingestion pipeline for video files and thumbnails attached to an existing
Video record.

Video upload flow:
1. Validate the video id, load the record and check the caller owns it
2. Stream the multipart body through a size cap (1 GiB by default)
3. On the ``video`` file part's headers, check its declared media type
   (MP4 only); a rejected part is never written to disk
4. Write the part's content straight into a temporary file as it arrives
5. Probe the geometry (landscape / portrait / other) with ffprobe
6. Remux the staged file for fast start with ffmpeg
7. Upload the remuxed file to S3 under ``<classification>/<token>.mp4``
8. Persist ``"<bucket>,<key>"`` as the record's ``video_url``
9. Return the record with presigned URLs resolved

Thumbnail upload follows the same steps without 5 and 6, with a 10 MiB cap,
JPEG/PNG media types and keys of the form ``<token>.<ext>``.

Ownership is checked before any byte of the body is read. Staged and
remuxed files are removed on every exit path, success or failure.

Nothing is retried. A failure after the S3 upload but before the record is
saved leaves an orphaned object, which is logged with its bucket and key.
"""

import logging

from contextlib import AsyncExitStack
from pathlib import Path

from starlette.requests import Request

from tubely.config import Settings
from tubely.models.video import GeometryClassification, StoredReference, Video
from tubely.services.fast_start_remuxer import FastStartRemuxer, RemuxError
from tubely.services.geometry_prober import GeometryProber, ProbeError
from tubely.services.staging import StagedFile, remove_quietly, staged_file
from tubely.services.storage_service import StorageOperationError, StorageService
from tubely.services.video_service import VideoService, VideoServiceError, parse_video_id
from tubely.utils.body_limit import BodySizeLimitExceeded, check_content_length, limit_request_body
from tubely.utils.file_validator import (
    ALLOWED_THUMBNAIL_MEDIA_TYPES,
    ALLOWED_VIDEO_MEDIA_TYPES,
    InvalidContentTypeError,
    build_object_key,
    extension_for_media_type,
    format_file_size,
    is_allowed_media_type,
    parse_media_type,
)
from tubely.utils.logger import add_log_context
from tubely.utils.multipart_stream import FilePartInfo, MultipartFileReader, MultipartStreamError


logger = logging.getLogger(__name__)

VIDEO_FORM_FIELD = "video"
THUMBNAIL_FORM_FIELD = "thumbnail"


class UploadServiceError(Exception):
    """Base exception for upload service errors."""


class UploadTooLargeError(UploadServiceError):
    """The request body exceeds the upload ceiling."""


class MalformedUploadError(UploadServiceError):
    """The multipart body could not be parsed."""


class MissingFilePartError(UploadServiceError):
    """The multipart body has no file part with the expected name."""


class InvalidMediaTypeError(UploadServiceError):
    """The file part's Content-Type is unparsable or not allowed."""


class MediaProcessingError(UploadServiceError):
    """Probing or remuxing the staged video failed."""


class StorageError(UploadServiceError):
    """Uploading to or signing against the object store failed."""


class UploadService:
    """
    Orchestrates video and thumbnail uploads.

    Every collaborator is injected so that tests can replace the media tools
    and the stores with fakes.

    Attributes:
        settings: Application settings (ceilings, temp dir)
        videos: Video metadata store
        storage: Async S3 storage service
        prober: Geometry prober (ffprobe in production)
        remuxer: Fast-start remuxer (ffmpeg in production)

    Example:
        ```python
        upload_service = UploadService(
            settings=settings,
            video_service=VideoService(db_client.get_videos_collection()),
            storage_service=StorageService(settings, get_storage_client(settings)),
            prober=FFprobeGeometryProber(settings.ffprobe_path),
            remuxer=FFmpegFastStartRemuxer(settings.ffmpeg_path),
        )
        video = await upload_service.upload_video(video_id, user_id, request)
        ```
    """

    def __init__(
        self,
        settings: Settings,
        video_service: VideoService,
        storage_service: StorageService,
        prober: GeometryProber,
        remuxer: FastStartRemuxer,
    ) -> None:
        self.settings = settings
        self.videos = video_service
        self.storage = storage_service
        self.prober = prober
        self.remuxer = remuxer

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def upload_video(self, video_id: str, user_id: str, request: Request) -> Video:
        """
        Ingest the ``video`` part of a multipart request into the given record.

        Args:
            video_id: Record id from the URL path
            user_id: Authenticated caller
            request: Incoming request whose body has not been read yet

        Returns:
            Video: The updated record with presigned URLs.

        Raises:
            InvalidVideoIdError, VideoNotFoundError, NotVideoOwnerError: record checks
            UploadTooLargeError, MalformedUploadError: body problems
            MissingFilePartError, InvalidMediaTypeError: part problems
            MediaProcessingError: probe or remux failure
            StorageError: S3 upload or signing failure
            MetadataStoreError: record load or save failure
        """
        video_id = parse_video_id(video_id)
        upload_logger = add_log_context(logger, video_id=video_id, user_id=user_id, kind="video")

        video = await self.videos.get_owned_video(video_id, user_id)
        upload_logger.info("Uploading video")

        async with AsyncExitStack() as stack:
            media_type, staged = await self._receive_file_part(
                request,
                VIDEO_FORM_FIELD,
                ALLOWED_VIDEO_MEDIA_TYPES,
                self.settings.max_video_upload_bytes,
                stack,
            )
            upload_logger.debug("Staged video upload", extra={"size": staged.size})

            classification = await self._probe(staged.path, upload_logger)
            processed_path = await self._remux(staged.path, upload_logger)
            try:
                object_key = build_object_key(media_type, classification)
                reference = await self._store(object_key, processed_path, media_type, upload_logger)
            finally:
                await remove_quietly(processed_path)

        updated = await self._save(
            video.model_copy(update={"video_url": reference.serialize()}),
            reference,
            upload_logger,
        )
        upload_logger.info(
            "Video upload complete",
            extra={"bucket": reference.bucket, "key": reference.key, "classification": classification.value},
        )
        return await self._sign(updated)

    async def upload_thumbnail(self, video_id: str, user_id: str, request: Request) -> Video:
        """
        Store the ``thumbnail`` part of a multipart request for the given record.

        Same checks, cleanup and errors as :meth:`upload_video`, without the
        media processing steps. The object key has no classification prefix.
        """
        video_id = parse_video_id(video_id)
        upload_logger = add_log_context(logger, video_id=video_id, user_id=user_id, kind="thumbnail")

        video = await self.videos.get_owned_video(video_id, user_id)
        upload_logger.info("Uploading thumbnail")

        async with AsyncExitStack() as stack:
            media_type, staged = await self._receive_file_part(
                request,
                THUMBNAIL_FORM_FIELD,
                ALLOWED_THUMBNAIL_MEDIA_TYPES,
                self.settings.max_thumbnail_upload_bytes,
                stack,
            )
            object_key = build_object_key(media_type)
            reference = await self._store(object_key, staged.path, media_type, upload_logger)

        updated = await self._save(
            video.model_copy(update={"thumbnail_url": reference.serialize()}),
            reference,
            upload_logger,
        )
        upload_logger.info(
            "Thumbnail upload complete",
            extra={"bucket": reference.bucket, "key": reference.key},
        )
        return await self._sign(updated)

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    async def _receive_file_part(
        self,
        request: Request,
        field_name: str,
        allowed: frozenset[str],
        max_bytes: int,
        stack: AsyncExitStack,
    ) -> tuple[str, StagedFile]:
        """
        Stream the named file part into a StagedFile registered on ``stack``.

        The part's media type is checked as soon as its headers are parsed, so
        a rejected part is never written anywhere. The body is read through a
        cap of ``max_bytes``.
        """

        async def open_staged_file(part: FilePartInfo) -> StagedFile:
            media_type = self._check_media_type(part.content_type, allowed)
            return await stack.enter_async_context(
                staged_file(
                    suffix=f".{extension_for_media_type(media_type)}",
                    directory=self.settings.upload_temp_dir,
                )
            )

        try:
            check_content_length(request, max_bytes)
            received = await MultipartFileReader(field_name).read(
                limit_request_body(request, max_bytes), open_staged_file
            )
        except BodySizeLimitExceeded as e:
            logger.warning(
                "Rejected upload over the size limit",
                extra={"limit": e.limit, "received": e.received},
            )
            raise UploadTooLargeError(
                f"File exceeds maximum size of {format_file_size(max_bytes)}"
            ) from e
        except MultipartStreamError as e:
            raise MalformedUploadError(f"Couldn't parse form: {e}") from e

        if received is None:
            raise MissingFilePartError(f"Couldn't get file part '{field_name}'")

        staged = received.sink
        await staged.rewind()
        return parse_media_type(received.info.content_type), staged

    def _check_media_type(self, content_type: str | None, allowed: frozenset[str]) -> str:
        try:
            media_type = parse_media_type(content_type)
        except InvalidContentTypeError as e:
            raise InvalidMediaTypeError("Invalid Content-Type") from e
        if not is_allowed_media_type(media_type, allowed):
            raise InvalidMediaTypeError(
                f"Invalid file type '{media_type}', expected one of: {', '.join(sorted(allowed))}"
            )
        return media_type

    async def _probe(self, path: Path, upload_logger: logging.LoggerAdapter) -> GeometryClassification:
        try:
            return await self.prober.probe(path)
        except ProbeError as e:
            upload_logger.error("Geometry probe failed: %s", e)
            raise MediaProcessingError("Error getting video aspect ratio") from e

    async def _remux(self, path: Path, upload_logger: logging.LoggerAdapter) -> Path:
        try:
            return await self.remuxer.remux(path)
        except RemuxError as e:
            upload_logger.error("Fast-start remux failed: %s", e)
            raise MediaProcessingError("Error processing video") from e

    async def _store(
        self,
        object_key: str,
        path: Path,
        media_type: str,
        upload_logger: logging.LoggerAdapter,
    ) -> StoredReference:
        try:
            return await self.storage.upload_file(object_key, path, media_type)
        except StorageOperationError as e:
            upload_logger.error("Object upload failed", extra={"key": object_key})
            raise StorageError("Error uploading file to S3") from e

    async def _save(
        self,
        video: Video,
        reference: StoredReference,
        upload_logger: logging.LoggerAdapter,
    ) -> Video:
        try:
            return await self.videos.update_video(video)
        except VideoServiceError:
            upload_logger.error(
                "Record update failed after upload; stored object is orphaned",
                extra={"bucket": reference.bucket, "key": reference.key},
            )
            raise

    async def _sign(self, video: Video) -> Video:
        try:
            return await self.storage.sign_video(video)
        except StorageOperationError as e:
            raise StorageError("Couldn't generate presigned URL") from e
