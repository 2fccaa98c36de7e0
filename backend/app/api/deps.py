"""
FastAPI dependency providers for the route modules.

Process-wide objects (the thumbnail registry and the media tools) are created
in the application lifespan and kept on ``app.state``; everything else is
built per request from them. Tests replace these providers through
``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from app.config import Settings, get_settings
from app.core.database import VideoRepository, get_video_repository
from app.core.storage import StorageClient, get_storage_client
from app.services.media_service import Inspector, Transcoder
from app.services.placement_service import ObjectStoragePlacement, select_thumbnail_placement
from app.services.thumbnail_registry import ThumbnailRegistry
from app.services.upload_service import UploadService
from app.services.video_service import VideoService


def get_thumbnail_registry(request: Request) -> ThumbnailRegistry:
    return request.app.state.thumbnail_registry


def get_inspector(request: Request) -> Inspector:
    return request.app.state.inspector


def get_transcoder(request: Request) -> Transcoder:
    return request.app.state.transcoder


def get_video_service(
    repository: VideoRepository = Depends(get_video_repository),
    storage: StorageClient = Depends(get_storage_client),
    registry: ThumbnailRegistry = Depends(get_thumbnail_registry),
    settings: Settings = Depends(get_settings),
) -> VideoService:
    return VideoService(repository, storage, registry, settings)


def get_upload_service(
    videos: VideoService = Depends(get_video_service),
    storage: StorageClient = Depends(get_storage_client),
    registry: ThumbnailRegistry = Depends(get_thumbnail_registry),
    inspector: Inspector = Depends(get_inspector),
    transcoder: Transcoder = Depends(get_transcoder),
    settings: Settings = Depends(get_settings),
) -> UploadService:
    """Assemble the upload flow with the placement strategies the settings select."""
    return UploadService(
        settings=settings,
        videos=videos,
        thumbnail_placement=select_thumbnail_placement(settings, registry, storage),
        video_placement=ObjectStoragePlacement(storage, settings.s3_url_mode, settings.base_url),
        inspector=inspector,
        transcoder=transcoder,
    )
