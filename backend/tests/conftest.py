"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides the fixtures shared by the test suites:
- Test Settings bound to a per-test temporary upload directory
- Bearer tokens minted with the test secret
- A mocked VideoRepository backed by an in-memory dict
- A mocked StorageClient that records uploads instead of calling S3
- Fake Inspector/Transcoder so no ffprobe/ffmpeg binary is needed
- A FastAPI TestClient factory wiring all of the above through
  dependency overrides
- Sample PNG and MP4 payloads

No MongoDB, S3 or ffmpeg instance is required to run the suite.
"""

import os
import shutil
import uuid

from collections.abc import Callable, Iterator
from io import BytesIO
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from fastapi.testclient import TestClient
from PIL import Image

from app.api.deps import get_inspector, get_thumbnail_registry, get_transcoder
from app.config import Settings, get_settings
from app.core.auth import create_access_token
from app.core.database import VideoRepository, get_video_repository
from app.core.errors import NotFoundError
from app.core.storage import StorageClient, get_storage_client
from app.main import create_app
from app.models.video import Video
from app.services.thumbnail_registry import ThumbnailRegistry


TEST_JWT_SECRET = "test-secret-key-for-jwt-signing-minimum-32-chars"
TEST_BUCKET = "tubely-test"
TEST_REGION = "us-east-2"


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: mark test as unit test (isolated, no external services)")


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    """Directory receiving every temp file an upload creates."""
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def make_settings(upload_dir: Path) -> Callable[..., Settings]:
    """
    Factory for isolated test Settings.

    Values are passed explicitly and ``.env`` loading is disabled so the
    developer's environment cannot leak into the tests.
    """

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "app_env": "testing",
            "app_name": "Tubely-Test",
            "jwt_secret": TEST_JWT_SECRET,
            "jwt_algorithm": "HS256",
            "mongodb_uri": "mongodb://localhost:27017",
            "mongodb_db_name": "tubely_test",
            "s3_bucket_name": TEST_BUCKET,
            "s3_region": TEST_REGION,
            "s3_access_key_id": "test-access-key",
            "s3_secret_access_key": "test-secret-key",
            "s3_url_mode": "presigned",
            "public_base_url": "http://testserver",
            "thumbnail_storage": "inline",
            "upload_temp_dir": str(upload_dir),
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def test_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


# ==============================================================================
# Identity Fixtures
# ==============================================================================


@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def other_user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def auth_headers(user_id: str, test_settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, test_settings)}"}


# ==============================================================================
# Metadata Store Fixtures
# ==============================================================================


@pytest.fixture
def video_store() -> dict[str, Video]:
    """Backing dict for mock_repository, keyed by video id."""
    return {}


@pytest.fixture
def mock_repository(video_store: dict[str, Video]) -> AsyncMock:
    """
    Mocked VideoRepository whose methods read and write ``video_store``.

    Tests can replace any side effect, e.g. to make ``update_video`` raise
    PersistenceError, and assert on calls as with any AsyncMock.
    """
    mock = AsyncMock(spec=VideoRepository)

    async def get_video(video_id: str) -> Video:
        if video_id not in video_store:
            raise NotFoundError("Video not found")
        return video_store[video_id].model_copy(deep=True)

    async def update_video(video: Video) -> None:
        video_store[video.id] = video.model_copy(deep=True)

    async def create_video(video: Video) -> Video:
        video_store[video.id] = video.model_copy(deep=True)
        return video

    async def list_videos_for_user(owner: str) -> list[Video]:
        return [v.model_copy(deep=True) for v in video_store.values() if v.user_id == owner]

    async def delete_video(video_id: str) -> None:
        video_store.pop(video_id, None)

    mock.get_video.side_effect = get_video
    mock.update_video.side_effect = update_video
    mock.create_video.side_effect = create_video
    mock.list_videos_for_user.side_effect = list_videos_for_user
    mock.delete_video.side_effect = delete_video
    return mock


@pytest.fixture
def owned_video(video_store: dict[str, Video], user_id: str) -> Video:
    video = Video(user_id=user_id, title="Boots in the wild", description="A short clip")
    video_store[video.id] = video
    return video


@pytest.fixture
def foreign_video(video_store: dict[str, Video], other_user_id: str) -> Video:
    video = Video(user_id=other_user_id, title="Not yours")
    video_store[video.id] = video
    return video


# ==============================================================================
# S3/Storage Fixtures
# ==============================================================================


@pytest.fixture
def uploaded_objects() -> dict[str, dict[str, Any]]:
    """Objects "uploaded" through mock_storage, keyed by object key."""
    return {}


@pytest.fixture
def mock_storage(uploaded_objects: dict[str, dict[str, Any]]) -> Mock:
    """
    Mocked StorageClient for testing without S3/MinIO.

    ``put`` captures the uploaded bytes in ``uploaded_objects``; presigned
    URLs are deterministic so responses can be asserted on.
    """
    mock = Mock(spec=StorageClient)
    mock.bucket_name = TEST_BUCKET
    mock.region = TEST_REGION

    async def put(key: str, body: Any, content_type: str) -> None:
        data = body if isinstance(body, bytes) else body.read()
        uploaded_objects[key] = {"data": data, "content_type": content_type}

    def presign(bucket: str, key: str, expires_in: int | None = None) -> str:
        return f"https://{bucket}.s3.{TEST_REGION}.amazonaws.com/{key}?X-Amz-Expires={expires_in}&X-Amz-Signature=test"

    mock.put = AsyncMock(side_effect=put)
    mock.presign_get = AsyncMock(side_effect=presign)
    mock.public_url = Mock(
        side_effect=lambda key: f"https://{TEST_BUCKET}.s3.{TEST_REGION}.amazonaws.com/{key}"
    )
    mock.open_object = AsyncMock()
    return mock


# ==============================================================================
# Media Tool Fakes
# ==============================================================================


class FakeInspector:
    """Inspector returning a fixed aspect ratio and recording the paths it saw."""

    def __init__(self, aspect_ratio: str | None = "16:9", error: Exception | None = None) -> None:
        self.aspect_ratio = aspect_ratio
        self.error = error
        self.calls: list[str] = []

    async def get_aspect_ratio(self, path: str) -> str | None:
        self.calls.append(path)
        assert os.path.getsize(path) > 0
        if self.error is not None:
            raise self.error
        return self.aspect_ratio


class FakeTranscoder:
    """Transcoder that copies the input to ``<path>.processing`` with a marker prefix."""

    MARKER = b"FASTSTART:"

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[str] = []
        self.outputs: list[str] = []

    async def process_for_fast_start(self, path: str) -> str:
        self.calls.append(path)
        output = path + ".processing"
        with open(output, "wb") as out, open(path, "rb") as src:
            out.write(self.MARKER)
            shutil.copyfileobj(src, out)
        self.outputs.append(output)
        if self.error is not None:
            raise self.error
        return output


@pytest.fixture
def fake_inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def thumbnail_registry() -> ThumbnailRegistry:
    return ThumbnailRegistry()


# ==============================================================================
# FastAPI Client Fixtures
# ==============================================================================


@pytest.fixture
def client_factory(
    make_settings: Callable[..., Settings],
    mock_repository: AsyncMock,
    mock_storage: Mock,
    thumbnail_registry: ThumbnailRegistry,
    fake_inspector: FakeInspector,
    fake_transcoder: FakeTranscoder,
) -> Iterator[Callable[..., TestClient]]:
    """
    Build a TestClient for an app created with the given settings overrides.

    The lifespan is not entered, so no MongoDB connection is attempted;
    every collaborator comes from the fixtures above.
    """
    clients: list[TestClient] = []

    def _make(**overrides: Any) -> TestClient:
        settings = make_settings(**overrides)
        app = create_app(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_video_repository] = lambda: mock_repository
        app.dependency_overrides[get_storage_client] = lambda: mock_storage
        app.dependency_overrides[get_thumbnail_registry] = lambda: thumbnail_registry
        app.dependency_overrides[get_inspector] = lambda: fake_inspector
        app.dependency_overrides[get_transcoder] = lambda: fake_transcoder
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def test_client(client_factory: Callable[..., TestClient]) -> TestClient:
    return client_factory()


# ==============================================================================
# Sample Payloads
# ==============================================================================


@pytest.fixture
def test_image() -> bytes:
    """A PNG of random pixels, roughly 2 KB."""
    image = Image.frombytes("RGB", (26, 26), os.urandom(26 * 26 * 3))
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def test_video() -> bytes:
    """Bytes shaped like the start of an MP4 (ftyp box) followed by filler."""
    return b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + os.urandom(4096)
