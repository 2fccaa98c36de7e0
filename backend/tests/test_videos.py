"""
Tubely Video Records Test Suite

Tests for:
- /api/videos draft, list, get and delete routes
- GET /api/thumbnails/{video_id} misses
- /assets proxy streaming
- /health, /ready, unknown paths and tracing headers
- VideoRepository against a mocked Motor collection
"""

from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest

from pymongo.errors import PyMongoError

from app.core.database import VideoRepository
from app.core.errors import NotFoundError, PersistenceError
from app.core.storage import StoredObject
from app.models.video import Video


# =============================================================================
# Draft / list / get / delete
# =============================================================================


class TestVideoRoutes:
    def test_create_draft(self, test_client, auth_headers, user_id, video_store) -> None:
        response = test_client.post(
            "/api/videos", headers=auth_headers, json={"title": "Boots", "description": "Ride"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == user_id
        assert body["title"] == "Boots"
        assert body["thumbnail_url"] is None
        assert body["video_url"] is None
        assert body["id"] in video_store

    def test_create_requires_auth(self, test_client, video_store) -> None:
        response = test_client.post("/api/videos", json={"title": "Boots"})

        assert response.status_code == 401
        assert video_store == {}

    def test_create_requires_title(self, test_client, auth_headers) -> None:
        response = test_client.post("/api/videos", headers=auth_headers, json={"description": "x"})

        assert response.status_code == 422

    def test_list_only_own_videos_with_signed_urls(
        self, test_client, auth_headers, owned_video, foreign_video, video_store
    ) -> None:
        video_store[owned_video.id].video_url = "tubely-test,portrait/abc.mp4"

        response = test_client.get("/api/videos", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert [v["id"] for v in body] == [owned_video.id]
        assert body[0]["video_url"].startswith(
            "https://tubely-test.s3.us-east-2.amazonaws.com/portrait/abc.mp4?X-Amz-Expires=300"
        )

    def test_get_owned(self, test_client, auth_headers, owned_video) -> None:
        response = test_client.get(f"/api/videos/{owned_video.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["title"] == owned_video.title

    def test_get_foreign_forbidden(self, test_client, auth_headers, foreign_video) -> None:
        response = test_client.get(f"/api/videos/{foreign_video.id}", headers=auth_headers)

        assert response.status_code == 403

    def test_get_unknown(self, test_client, auth_headers) -> None:
        response = test_client.get("/api/videos/0f8fad5b-d9cb-469f-a165-70867728950e", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "message": "Video not found", "status_code": 404}

    def test_get_invalid_id(self, test_client, auth_headers) -> None:
        response = test_client.get("/api/videos/abc", headers=auth_headers)

        assert response.status_code == 400

    def test_delete_removes_record_and_registry_entry(
        self, test_client, auth_headers, owned_video, video_store, thumbnail_registry
    ) -> None:
        thumbnail_registry.put(owned_video.id, b"png", "image/png")

        response = test_client.delete(f"/api/videos/{owned_video.id}", headers=auth_headers)

        assert response.status_code == 204
        assert owned_video.id not in video_store
        assert owned_video.id not in thumbnail_registry

    def test_delete_foreign_forbidden(self, test_client, auth_headers, foreign_video, video_store) -> None:
        response = test_client.delete(f"/api/videos/{foreign_video.id}", headers=auth_headers)

        assert response.status_code == 403
        assert foreign_video.id in video_store


class TestThumbnailRetrieval:
    def test_absent_thumbnail(self, test_client, owned_video) -> None:
        response = test_client.get(f"/api/thumbnails/{owned_video.id}")

        assert response.status_code == 404
        assert response.json()["message"] == "Thumbnail not found"

    def test_invalid_id(self, test_client) -> None:
        assert test_client.get("/api/thumbnails/not-a-uuid").status_code == 400


# =============================================================================
# Asset proxy
# =============================================================================


class TestAssetProxy:
    def test_streams_object(self, client_factory, mock_storage) -> None:
        mock_storage.open_object.return_value = StoredObject(
            key="landscape/abc.mp4",
            content_type="video/mp4",
            content_length=11,
            body=BytesIO(b"mp4-payload"),
        )
        client = client_factory(s3_url_mode="proxy")

        response = client.get("/assets/landscape/abc.mp4")

        assert response.status_code == 200
        assert response.content == b"mp4-payload"
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["content-length"] == "11"
        mock_storage.open_object.assert_awaited_once_with("landscape/abc.mp4")

    def test_missing_object(self, client_factory, mock_storage) -> None:
        mock_storage.open_object.side_effect = NotFoundError("Asset not found")
        client = client_factory(s3_url_mode="proxy")

        response = client.get("/assets/landscape/missing.mp4")

        assert response.status_code == 404
        assert response.json()["message"] == "Asset not found"

    def test_disabled_outside_proxy_mode(self, test_client, mock_storage) -> None:
        response = test_client.get("/assets/landscape/abc.mp4")

        assert response.status_code == 404
        mock_storage.open_object.assert_not_awaited()


# =============================================================================
# Application endpoints
# =============================================================================


class TestAppEndpoints:
    def test_health(self, test_client) -> None:
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_without_database(self, test_client) -> None:
        response = test_client.get("/ready")

        assert response.status_code == 200
        assert response.json()["ready"] is False
        assert response.json()["checks"] == {"mongodb": False}

    def test_unknown_path_envelope(self, test_client) -> None:
        response = test_client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_request_id_echoed(self, test_client) -> None:
        response = test_client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["X-Process-Time"].endswith("ms")

    def test_request_id_generated(self, test_client) -> None:
        response = test_client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 32


# =============================================================================
# Repository
# =============================================================================


@pytest.fixture
def collection() -> MagicMock:
    mock = MagicMock()
    mock.find_one = AsyncMock()
    mock.update_one = AsyncMock()
    mock.insert_one = AsyncMock()
    mock.delete_one = AsyncMock()
    return mock


class TestVideoRepository:
    async def test_get_video(self, collection) -> None:
        video = Video(user_id="user-1", title="Boots")
        collection.find_one.return_value = video.to_document()

        loaded = await VideoRepository(collection).get_video(video.id)

        assert loaded == video
        collection.find_one.assert_awaited_once_with({"_id": video.id})

    async def test_get_missing_video(self, collection) -> None:
        collection.find_one.return_value = None

        with pytest.raises(NotFoundError):
            await VideoRepository(collection).get_video("missing")

    async def test_get_video_driver_error(self, collection) -> None:
        collection.find_one.side_effect = PyMongoError("connection reset")

        with pytest.raises(PersistenceError):
            await VideoRepository(collection).get_video("any")

    async def test_update_sets_locations_and_timestamp(self, collection) -> None:
        video = Video(user_id="user-1", title="Boots", video_url="bucket,landscape/a.mp4")
        before = video.updated_at
        collection.update_one.return_value = MagicMock(matched_count=1)

        await VideoRepository(collection).update_video(video)

        query, update = collection.update_one.await_args.args
        assert query == {"_id": video.id}
        assert update["$set"]["video_url"] == "bucket,landscape/a.mp4"
        assert update["$set"]["updated_at"] >= before

    async def test_update_missing_record(self, collection) -> None:
        collection.update_one.return_value = MagicMock(matched_count=0)

        with pytest.raises(PersistenceError):
            await VideoRepository(collection).update_video(Video(user_id="user-1"))

    async def test_update_driver_error(self, collection) -> None:
        collection.update_one.side_effect = PyMongoError("not primary")

        with pytest.raises(PersistenceError):
            await VideoRepository(collection).update_video(Video(user_id="user-1"))

    async def test_list_sorted_newest_first(self, collection) -> None:
        videos = [Video(user_id="user-1", title=t) for t in ("b", "a")]
        cursor = MagicMock()
        cursor.to_list = AsyncMock(return_value=[v.to_document() for v in videos])
        collection.find.return_value.sort.return_value = cursor

        listed = await VideoRepository(collection).list_videos_for_user("user-1")

        assert [v.title for v in listed] == ["b", "a"]
        collection.find.assert_called_once_with({"user_id": "user-1"})
        collection.find.return_value.sort.assert_called_once_with("created_at", -1)
