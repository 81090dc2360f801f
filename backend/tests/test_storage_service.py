"""
Storage Service Test Suite

Covers the S3 client wrapper and its async facade against a mocked boto3
client: uploads, presigned URL generation and read-time resolution of
persisted ``bucket,key`` references.
"""

from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest

from botocore.exceptions import ClientError, EndpointConnectionError

from tubely.core.storage import StorageClient
from tubely.models.video import StoredReference, Video
from tubely.services.storage_service import StorageOperationError, StorageService


def _access_denied(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
        operation,
    )


@pytest.fixture
def processed_file(tmp_path: Path) -> Path:
    path = tmp_path / "upload.mp4.processing"
    path.write_bytes(b"faststart-bytes")
    return path


class TestStorageClient:
    def test_put_object_uses_configured_bucket(self, storage_client: StorageClient, mock_s3_client: Mock) -> None:
        with open(__file__, "rb") as body:
            bucket = storage_client.put_object("a.png", body, "image/png")

        assert bucket == "tubely-test"
        kwargs = mock_s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "tubely-test"
        assert kwargs["Key"] == "a.png"
        assert kwargs["ContentType"] == "image/png"

    def test_presign_defaults_to_five_minutes(self, storage_client: StorageClient, mock_s3_client: Mock) -> None:
        storage_client.generate_presigned_download_url("tubely-test", "landscape/a.mp4")

        mock_s3_client.generate_presigned_url.assert_called_once_with(
            ClientMethod="get_object",
            Params={"Bucket": "tubely-test", "Key": "landscape/a.mp4"},
            ExpiresIn=300,
        )

    @pytest.mark.parametrize("expires_in", [-5, 604801])
    def test_presign_rejects_out_of_range_expiry(self, storage_client: StorageClient, expires_in: int) -> None:
        with pytest.raises(ValueError):
            storage_client.generate_presigned_download_url("tubely-test", "a.mp4", expires_in)


class TestUploadFile:
    @pytest.mark.asyncio
    async def test_upload_returns_reference(
        self,
        storage_service: StorageService,
        processed_file: Path,
        uploaded_objects: dict[str, dict[str, Any]],
    ) -> None:
        reference = await storage_service.upload_file("landscape/k.mp4", processed_file, "video/mp4")

        assert reference == StoredReference("tubely-test", "landscape/k.mp4")
        assert uploaded_objects["landscape/k.mp4"] == {
            "bucket": "tubely-test",
            "body": b"faststart-bytes",
            "content_type": "video/mp4",
        }

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(
        self, storage_service: StorageService, mock_s3_client: Mock, processed_file: Path
    ) -> None:
        mock_s3_client.put_object.side_effect = _access_denied("PutObject")

        with pytest.raises(StorageOperationError, match="Failed to upload file"):
            await storage_service.upload_file("k.mp4", processed_file, "video/mp4")

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(
        self, storage_service: StorageService, mock_s3_client: Mock, processed_file: Path
    ) -> None:
        mock_s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url="http://localhost:9000")

        with pytest.raises(StorageOperationError):
            await storage_service.upload_file("k.mp4", processed_file, "video/mp4")

    @pytest.mark.asyncio
    async def test_missing_local_file_is_wrapped(self, storage_service: StorageService, tmp_path: Path) -> None:
        with pytest.raises(StorageOperationError):
            await storage_service.upload_file("k.mp4", tmp_path / "gone", "video/mp4")


class TestSignVideo:
    @pytest.mark.asyncio
    async def test_signs_both_references(self, storage_service: StorageService, test_user_id: str) -> None:
        video = Video(
            user_id=test_user_id,
            title="clip",
            video_url="tubely-test,portrait/v.mp4",
            thumbnail_url="tubely-test,t.png",
        )

        signed = await storage_service.sign_video(video)

        assert signed.video_url == "https://tubely-test.s3.example.com/portrait/v.mp4?X-Amz-Expires=300&X-Amz-Signature=test"
        assert signed.thumbnail_url.startswith("https://tubely-test.s3.example.com/t.png?")
        assert video.video_url == "tubely-test,portrait/v.mp4"

    @pytest.mark.asyncio
    async def test_custom_expiration(self, storage_service: StorageService, test_user_id: str) -> None:
        video = Video(user_id=test_user_id, title="clip", video_url="tubely-test,other/v.mp4")

        signed = await storage_service.sign_video(video, expiration=60)

        assert "X-Amz-Expires=60" in signed.video_url

    @pytest.mark.asyncio
    async def test_absent_reference_is_unchanged(
        self, storage_service: StorageService, mock_s3_client: Mock, test_user_id: str
    ) -> None:
        video = Video(user_id=test_user_id, title="draft")

        assert await storage_service.sign_video(video) is video
        mock_s3_client.generate_presigned_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_reference_is_unchanged(self, storage_service: StorageService, test_user_id: str) -> None:
        video = Video(
            user_id=test_user_id,
            title="legacy",
            video_url="https://cdn.example.com/old.mp4",
            thumbnail_url="tubely-test,t.png",
        )

        signed = await storage_service.sign_video(video)

        assert signed.video_url == "https://cdn.example.com/old.mp4"
        assert signed.thumbnail_url != "tubely-test,t.png"

    @pytest.mark.asyncio
    async def test_signing_failure_is_wrapped(
        self, storage_service: StorageService, mock_s3_client: Mock, test_user_id: str
    ) -> None:
        mock_s3_client.generate_presigned_url.side_effect = _access_denied("GetObject")
        video = Video(user_id=test_user_id, title="clip", video_url="tubely-test,v.mp4")

        with pytest.raises(StorageOperationError):
            await storage_service.sign_video(video)
