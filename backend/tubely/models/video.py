"""
Video Pydantic models for Tubely.

This module defines the Video metadata record, the request body used to
create one, the geometry classification assigned to uploaded videos and the
StoredReference value type that links a record to an object in S3.

A record's ``video_url`` and ``thumbnail_url`` fields hold the persisted
``"<bucket>,<key>"`` reference, never a presigned URL: presigned URLs expire,
so they are resolved each time a record is read.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# Separator between bucket and key in a persisted reference
REFERENCE_DELIMITER = ","


class GeometryClassification(str, Enum):
    """
    Aspect-ratio category of a video's first stream.

    Used only to choose the object key prefix:
    - LANDSCAPE: width == 16 * height // 9
    - PORTRAIT: height == 16 * width // 9
    - OTHER: anything else
    """

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


@dataclass(frozen=True)
class StoredReference:
    """
    Location of an uploaded object, persisted as ``"<bucket>,<key>"``.

    Example:
        ```python
        ref = StoredReference(bucket="tubely-media", key="landscape/abc.mp4")
        ref.serialize()  # "tubely-media,landscape/abc.mp4"
        StoredReference.parse("tubely-media,landscape/abc.mp4") == ref  # True
        ```
    """

    bucket: str
    key: str

    def serialize(self) -> str:
        return f"{self.bucket}{REFERENCE_DELIMITER}{self.key}"

    @classmethod
    def parse(cls, value: str | None) -> "StoredReference | None":
        """
        Parse a persisted reference.

        Returns None when the value is absent or is not a bucket/key pair
        (for example a plain URL written by an older client), so readers can
        leave such values untouched.
        """
        if not value:
            return None
        bucket, sep, key = value.partition(REFERENCE_DELIMITER)
        bucket = bucket.strip()
        key = key.strip()
        if not sep or not bucket or not key or "/" in bucket or ":" in bucket:
            return None
        return cls(bucket=bucket, key=key)


class VideoCreate(BaseModel):
    """Request body for creating a draft video record."""

    title: str = Field(..., min_length=1, max_length=200, description="Video title")
    description: str = Field(default="", max_length=5000, description="Video description")


class Video(BaseModel):
    """
    Pydantic model for a video metadata record.

    Attributes:
        id: UUID string, stored as the MongoDB ``_id``
        user_id: UUID string of the owning user
        title: Video title
        description: Free-form description
        thumbnail_url: Persisted thumbnail reference, or a presigned URL on read
        video_url: Persisted video reference, or a presigned URL on read
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        validation_alias=AliasChoices("_id", "id"),
        description="Video UUID",
    )
    user_id: str = Field(..., min_length=1, description="Owning user's UUID")
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    thumbnail_url: str | None = Field(default=None, description="Thumbnail reference or URL")
    video_url: str | None = Field(default=None, description="Video reference or URL")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "0b4e3a52-5bd5-4f1c-9a1e-2f7d0f0e8b11",
                "user_id": "6d3b59a1-63a4-4c4a-8ad0-4ad6a3c2f1c9",
                "title": "Boot.dev beats",
                "description": "",
                "thumbnail_url": "https://tubely-media.s3.amazonaws.com/Xy.png?X-Amz-Expires=300",
                "video_url": "https://tubely-media.s3.amazonaws.com/landscape/Ab.mp4?X-Amz-Expires=300",
                "created_at": "2025-01-15T10:30:00Z",
                "updated_at": "2025-01-15T10:31:12Z",
            }
        },
    )

    def to_document(self) -> dict:
        """Serialize for MongoDB, storing ``id`` as ``_id``."""
        document = self.model_dump(exclude={"id"})
        document["_id"] = self.id
        return document
