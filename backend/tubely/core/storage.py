"""
Tubely S3-Compatible Storage Client

Thin synchronous wrapper around a boto3 S3 client. It supports AWS S3 and any
S3-compatible service (MinIO for local development) through a configurable
endpoint URL.

Only the two operations the upload pipeline needs are exposed:

- ``put_object``: single-request upload of a processed file with its content type
- ``generate_presigned_download_url``: time-limited GET URL for a stored object

Retries are disabled (``max_attempts=1``) so that a failed upload surfaces
to the request straight away instead of being retried behind its back.
The blocking calls are moved off the event loop by
``tubely.services.storage_service``.
"""

import logging

from typing import IO, Any

import boto3

from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings, get_settings


MIN_PRESIGNED_EXPIRATION_SECONDS = 1
MAX_PRESIGNED_EXPIRATION_SECONDS = 604800  # SigV4 upper bound (7 days)

logger = logging.getLogger(__name__)

# Singleton container for storage client instance
_singleton_container: dict[str, "StorageClient"] = {}


class StorageClient:
    """
    S3-compatible storage client.

    Attributes:
        settings: Application settings containing S3 configuration
        s3_client: Initialized boto3 S3 client
        bucket_name: Bucket new uploads are written to

    Example usage:
        ```python
        from tubely.core.storage import get_storage_client

        storage = get_storage_client()
        with open("/tmp/video.mp4.processing", "rb") as body:
            storage.put_object("landscape/abc.mp4", body, "video/mp4")

        url = storage.generate_presigned_download_url(
            bucket="tubely-media", key="landscape/abc.mp4", expires_in=300
        )
        ```
    """

    def __init__(self, settings: Settings | None = None, s3_client: Any | None = None) -> None:
        """
        Initialize the S3 storage client.

        Args:
            settings: Optional Settings instance. Defaults to ``get_settings()``.
            s3_client: Optional pre-built boto3 client, mainly for tests.
        """
        self.settings = settings or get_settings()
        self.bucket_name = self.settings.s3_bucket_name

        if s3_client is not None:
            self.s3_client = s3_client
            return

        client_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},  # Path-style for MinIO compatibility
            retries={"max_attempts": 1, "mode": "standard"},
        )

        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=self.settings.s3_endpoint_url,
                aws_access_key_id=self.settings.s3_access_key_id,
                aws_secret_access_key=self.settings.s3_secret_access_key,
                region_name=self.settings.s3_region,
                config=client_config,
            )
        except (BotoCoreError, ClientError):
            logger.exception(
                "Failed to initialize S3 storage client",
                extra={"endpoint": self.settings.s3_endpoint_url},
            )
            raise

        logger.info(
            "S3 storage client initialized",
            extra={
                "bucket": self.bucket_name,
                "region": self.settings.s3_region,
                "endpoint": self.settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    def put_object(
        self,
        key: str,
        body: IO[bytes],
        content_type: str,
        bucket: str | None = None,
    ) -> str:
        """
        Upload an object in a single PUT request.

        Args:
            key: Object key, e.g. ``"portrait/Zk3...Q.mp4"``
            body: Readable binary file object positioned at offset 0
            content_type: Value for the object's Content-Type metadata
            bucket: Target bucket. Defaults to the configured bucket.

        Returns:
            str: The bucket the object was written to.

        Raises:
            ClientError: If S3 rejects the request.
            BotoCoreError: On connection or credential problems.
        """
        target_bucket = bucket or self.bucket_name
        try:
            self.s3_client.put_object(
                Bucket=target_bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError):
            logger.exception(
                "Failed to upload object to S3",
                extra={"bucket": target_bucket, "key": key},
            )
            raise

        logger.info(
            "Uploaded object to S3",
            extra={"bucket": target_bucket, "key": key, "content_type": content_type},
        )
        return target_bucket

    def generate_presigned_download_url(
        self,
        bucket: str,
        key: str,
        expires_in: int | None = None,
    ) -> str:
        """
        Generate a presigned GET URL for an object.

        Signing happens locally; no request is sent to S3, so the object is
        not checked for existence.

        Args:
            bucket: Bucket holding the object
            key: Object key
            expires_in: Lifetime in seconds. Defaults to
                ``presigned_url_expiration_seconds`` (5 minutes).

        Raises:
            ValueError: If expires_in is outside the range SigV4 accepts.
            ClientError: If URL generation fails.
        """
        expiration = expires_in or self.settings.presigned_url_expiration_seconds

        if not MIN_PRESIGNED_EXPIRATION_SECONDS <= expiration <= MAX_PRESIGNED_EXPIRATION_SECONDS:
            raise ValueError(
                f"expires_in must be between {MIN_PRESIGNED_EXPIRATION_SECONDS} and "
                f"{MAX_PRESIGNED_EXPIRATION_SECONDS} seconds, got {expiration}"
            )

        try:
            presigned_url = self.s3_client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expiration,
            )
        except (BotoCoreError, ClientError):
            logger.exception(
                "Failed to generate presigned download URL",
                extra={"bucket": bucket, "key": key},
            )
            raise

        logger.debug(
            "Generated presigned download URL",
            extra={"bucket": bucket, "key": key, "expires_in": expiration},
        )
        return presigned_url


def get_storage_client(settings: Settings | None = None) -> StorageClient:
    """
    Get the shared StorageClient instance, creating it on first use.

    boto3 clients are thread-safe, so one instance serves every request and
    every worker thread.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageClient(settings)
        logger.info("Created new StorageClient singleton instance")

    return _singleton_container["instance"]


def reset_storage_client() -> None:
    """Drop the shared instance so the next call rebuilds it from settings."""
    _singleton_container.pop("instance", None)
