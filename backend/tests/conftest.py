"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides shared fixtures including:
- Test Settings with a per-test staging directory
- An in-memory stand-in for the MongoDB ``videos`` collection
- A mocked boto3 S3 client behind the real StorageClient/StorageService
- Fake geometry prober and fast-start remuxer (no ffprobe/ffmpeg needed)
- Bearer tokens and Authorization headers
- A FastAPI TestClient wired through ``app.dependency_overrides``
- A multipart body builder with a fixed boundary for exact size tests
"""

import uuid

from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from fastapi.testclient import TestClient

from tubely.api.v1.dependencies import (
    get_fast_start_remuxer,
    get_geometry_prober,
    get_storage_service,
    get_video_service,
)
from tubely.config import Settings, get_settings
from tubely.core.auth import create_access_token
from tubely.core.storage import StorageClient
from tubely.main import app
from tubely.models.video import GeometryClassification, Video
from tubely.services.fast_start_remuxer import processed_path_for
from tubely.services.storage_service import StorageService
from tubely.services.video_service import VideoService


TEST_BUCKET = "tubely-test"
MULTIPART_BOUNDARY = "tubelytestboundary"


# ==============================================================================
# Pytest Configuration
# ==============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as an HTTP-level test")


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    """Directory that staged and processed files are written to."""
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def mock_settings(staging_dir: Path) -> Settings:
    """
    Settings instance with test-specific configuration values.

    Uploads are staged under ``staging_dir`` so tests can assert that every
    temporary file was removed.
    """
    return Settings(
        app_env="testing",
        app_name="Tubely-Test",
        debug=True,
        json_logs=False,
        secret_key="test-secret-key-for-jwt-signing-minimum-32-chars",
        mongodb_uri="mongodb://localhost:27017/test_tubely",
        mongodb_db_name="test_tubely",
        s3_endpoint_url="http://localhost:9000",
        s3_access_key_id="test-access-key",
        s3_secret_access_key="test-secret-key",
        s3_bucket_name=TEST_BUCKET,
        s3_region="us-east-1",
        upload_temp_dir=str(staging_dir),
    )


# ==============================================================================
# Metadata Store Fixtures
# ==============================================================================


class _InMemoryCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents

    def sort(self, key: str, direction: int) -> "_InMemoryCursor":
        self._documents.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return list(self._documents)


class InMemoryVideoCollection:
    """The subset of AsyncIOMotorCollection used by VideoService."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        document = self.documents.get(query["_id"])
        return dict(document) if document is not None else None

    async def insert_one(self, document: dict[str, Any]) -> Mock:
        self.documents[document["_id"]] = dict(document)
        return Mock(inserted_id=document["_id"])

    async def replace_one(self, query: dict[str, Any], document: dict[str, Any]) -> Mock:
        matched = query["_id"] in self.documents
        if matched:
            self.documents[query["_id"]] = dict(document)
        return Mock(matched_count=int(matched), modified_count=int(matched))

    def find(self, query: dict[str, Any]) -> _InMemoryCursor:
        return _InMemoryCursor(
            [dict(d) for d in self.documents.values() if d.get("user_id") == query.get("user_id")]
        )


@pytest.fixture
def video_collection() -> InMemoryVideoCollection:
    return InMemoryVideoCollection()


@pytest.fixture
def video_service(video_collection: InMemoryVideoCollection) -> VideoService:
    return VideoService(video_collection)


@pytest.fixture
def test_user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def other_user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def test_video(video_collection: InMemoryVideoCollection, test_user_id: str) -> Video:
    """A draft video record owned by ``test_user_id``."""
    video = Video(
        user_id=test_user_id,
        title="Boot.dev beats",
        description="Lo-fi loops",
        created_at=datetime(2025, 1, 15, 10, 30, tzinfo=UTC),
        updated_at=datetime(2025, 1, 15, 10, 30, tzinfo=UTC),
    )
    video_collection.documents[video.id] = video.to_document()
    return video


# ==============================================================================
# Storage Fixtures
# ==============================================================================


@pytest.fixture
def uploaded_objects() -> dict[str, dict[str, Any]]:
    """Objects received by the mocked S3 client, keyed by object key."""
    return {}


@pytest.fixture
def mock_s3_client(uploaded_objects: dict[str, dict[str, Any]]) -> Mock:
    """
    Mocked boto3 S3 client.

    ``put_object`` reads the body while the file is still open and records
    it; ``generate_presigned_url`` returns a deterministic URL that carries
    the expiry.
    """

    def put_object(**kwargs: Any) -> dict[str, Any]:
        uploaded_objects[kwargs["Key"]] = {
            "bucket": kwargs["Bucket"],
            "body": kwargs["Body"].read(),
            "content_type": kwargs["ContentType"],
        }
        return {"ETag": '"abc123"'}

    def generate_presigned_url(ClientMethod: str, Params: dict[str, str], ExpiresIn: int) -> str:
        return (
            f"https://{Params['Bucket']}.s3.example.com/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=test"
        )

    mock = Mock()
    mock.put_object = Mock(side_effect=put_object)
    mock.generate_presigned_url = Mock(side_effect=generate_presigned_url)
    return mock


@pytest.fixture
def storage_client(mock_settings: Settings, mock_s3_client: Mock) -> StorageClient:
    return StorageClient(mock_settings, s3_client=mock_s3_client)


@pytest.fixture
def storage_service(mock_settings: Settings, storage_client: StorageClient) -> StorageService:
    return StorageService(mock_settings, storage_client)


# ==============================================================================
# Media Tool Fixtures
# ==============================================================================


class FakeRemuxer:
    """Writes ``b"faststart:" + input`` to the processed path, like a real remux would."""

    def __init__(self) -> None:
        self.calls: list[Path] = []
        self.outputs: list[Path] = []

    async def remux(self, path: str | Path) -> Path:
        path = Path(path)
        self.calls.append(path)
        output = processed_path_for(path)
        output.write_bytes(b"faststart:" + path.read_bytes())
        self.outputs.append(output)
        return output


@pytest.fixture
def mock_prober() -> Mock:
    """Geometry prober reporting landscape unless a test says otherwise."""
    prober = Mock()
    prober.probe = AsyncMock(return_value=GeometryClassification.LANDSCAPE)
    return prober


@pytest.fixture
def fake_remuxer() -> FakeRemuxer:
    return FakeRemuxer()


# ==============================================================================
# Authentication Fixtures
# ==============================================================================


@pytest.fixture
def test_jwt_token(mock_settings: Settings, test_user_id: str) -> str:
    return create_access_token(test_user_id, mock_settings)


@pytest.fixture
def auth_headers(test_jwt_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {test_jwt_token}"}


# ==============================================================================
# FastAPI Test Client Fixtures
# ==============================================================================


@pytest.fixture
def test_client(
    mock_settings: Settings,
    video_service: VideoService,
    storage_service: StorageService,
    mock_prober: Mock,
    fake_remuxer: FakeRemuxer,
) -> TestClient:
    """
    TestClient with every external collaborator overridden.

    The lifespan is not entered, so no MongoDB connection is attempted.
    """
    app.dependency_overrides[get_settings] = lambda: mock_settings
    app.dependency_overrides[get_video_service] = lambda: video_service
    app.dependency_overrides[get_storage_service] = lambda: storage_service
    app.dependency_overrides[get_geometry_prober] = lambda: mock_prober
    app.dependency_overrides[get_fast_start_remuxer] = lambda: fake_remuxer
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==============================================================================
# Multipart Helpers
# ==============================================================================


def build_multipart_body(
    field_name: str,
    filename: str,
    content_type: str,
    data: bytes,
    boundary: str = MULTIPART_BOUNDARY,
) -> tuple[bytes, dict[str, str]]:
    """
    Build a single-part multipart/form-data body with a fixed boundary.

    Returns:
        The body bytes and the matching Content-Type header, so that tests
        know the exact request body length.
    """
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field_name}"; filename="{filename}"\r\n'
        f"Content-Type: {content_type}\r\n"
        "\r\n"
    ).encode()
    tail = f"\r\n--{boundary}--\r\n".encode()
    return head + data + tail, {"Content-Type": f"multipart/form-data; boundary={boundary}"}


@pytest.fixture
def sample_video_bytes() -> bytes:
    """Stand-in MP4 payload; the media tools are faked so content is opaque."""
    return b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 2048


@pytest.fixture
def sample_png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 512


@pytest.fixture
def multipart_body():
    """The ``build_multipart_body`` helper, for tests that need exact body sizes."""
    return build_multipart_body
