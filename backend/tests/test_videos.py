"""
Video Record Endpoint Test Suite

Covers creating, listing and fetching records over HTTP. Stored references
must come back as presigned URLs and never be rewritten in the store.
"""

import uuid

import pytest

from tubely.config import Settings
from tubely.core.auth import create_access_token
from tubely.models.video import Video


pytestmark = pytest.mark.integration


def test_create_video(test_client, auth_headers, test_user_id, video_collection) -> None:
    response = test_client.post(
        "/api/v1/videos",
        json={"title": "First upload", "description": "hello"},
        headers=auth_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user_id"] == test_user_id
    assert body["video_url"] is None
    assert str(uuid.UUID(body["id"])) == body["id"]
    assert body["id"] in video_collection.documents


def test_create_video_requires_title(test_client, auth_headers) -> None:
    response = test_client.post("/api/v1/videos", json={"title": ""}, headers=auth_headers)

    assert response.status_code == 422


def test_get_video_signs_references(test_client, auth_headers, test_video: Video, video_collection) -> None:
    document = video_collection.documents[test_video.id]
    document["video_url"] = "tubely-test,portrait/abc.mp4"
    document["thumbnail_url"] = "tubely-test,xyz.png"

    response = test_client.get(f"/api/v1/videos/{test_video.id}", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["video_url"].startswith("https://tubely-test.s3.example.com/portrait/abc.mp4?")
    assert "X-Amz-Expires=300" in body["video_url"]
    assert body["thumbnail_url"].startswith("https://tubely-test.s3.example.com/xyz.png?")
    assert video_collection.documents[test_video.id]["video_url"] == "tubely-test,portrait/abc.mp4"


def test_get_video_presign_failure_hides_s3_message(
    test_client, auth_headers, test_video: Video, video_collection, mock_s3_client
) -> None:
    from botocore.exceptions import ClientError

    video_collection.documents[test_video.id]["video_url"] = "tubely-test,portrait/abc.mp4"
    mock_s3_client.generate_presigned_url.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "GetObject"
    )

    response = test_client.get(f"/api/v1/videos/{test_video.id}", headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["detail"] == {
        "error": "storage_failed",
        "message": "Couldn't generate presigned URL",
    }
    assert "Access Denied" not in response.text
    assert "AccessDenied" not in response.text


def test_get_video_leaves_draft_unsigned(test_client, auth_headers, test_video: Video, mock_s3_client) -> None:
    response = test_client.get(f"/api/v1/videos/{test_video.id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["video_url"] is None
    mock_s3_client.generate_presigned_url.assert_not_called()


def test_get_video_forbidden_for_other_user(
    test_client, mock_settings: Settings, other_user_id: str, test_video: Video
) -> None:
    token = create_access_token(other_user_id, mock_settings)

    response = test_client.get(
        f"/api/v1/videos/{test_video.id}", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "not_owner"


def test_get_unknown_video(test_client, auth_headers) -> None:
    response = test_client.get(f"/api/v1/videos/{uuid.uuid4()}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "video_not_found"


def test_get_video_invalid_id(test_client, auth_headers) -> None:
    response = test_client.get("/api/v1/videos/not-a-uuid", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_id"


def test_list_videos_only_returns_callers_records(
    test_client, auth_headers, test_video: Video, other_user_id: str, video_collection
) -> None:
    foreign = Video(user_id=other_user_id, title="not yours", video_url="tubely-test,other/f.mp4")
    video_collection.documents[foreign.id] = foreign.to_document()
    video_collection.documents[test_video.id]["video_url"] = "tubely-test,landscape/mine.mp4"

    response = test_client.get("/api/v1/videos", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert [v["id"] for v in body] == [test_video.id]
    assert body[0]["video_url"].startswith("https://tubely-test.s3.example.com/landscape/mine.mp4?")


def test_list_videos_requires_auth(test_client) -> None:
    response = test_client.get("/api/v1/videos")

    assert response.status_code == 401
