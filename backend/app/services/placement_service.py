"""
Storage placement strategies.

A placement takes an uploaded asset and returns the location string that is
persisted on the video record, plus an optional compensating action the
caller runs if persisting that location fails.

Thumbnail strategies (selected by ``thumbnail_storage``):
- inline: ``data:<type>;base64,<bytes>`` embedded in the record
- registry: bytes kept in the in-memory ThumbnailRegistry, location points
  at this server's ``/api/thumbnails/{video_id}``
- object_storage: bytes uploaded to the bucket under a flat random key

Videos always go to object storage under ``<orientation>/<random key>``.

For anything in the bucket, ``s3_url_mode`` fixes a single URL form for the
deployment:
- public: ``https://<bucket>.s3.<region>.amazonaws.com/<key>``
- presigned: ``<bucket>,<key>``, turned into a short-lived signed URL by
  resolve_location every time the record is read
- proxy: ``<public_base_url>/assets/<key>``, streamed back by this server
"""

import base64
import logging

from collections.abc import Callable
from dataclasses import dataclass
from typing import IO, Protocol

from app.config import (
    S3_URL_MODE_PROXY,
    S3_URL_MODE_PUBLIC,
    THUMBNAIL_STORAGE_INLINE,
    THUMBNAIL_STORAGE_REGISTRY,
    Settings,
)
from app.core.storage import StorageClient
from app.models.video import Orientation, Video
from app.services.thumbnail_registry import ThumbnailRegistry
from app.utils.file_validator import generate_asset_path


logger = logging.getLogger(__name__)


@dataclass
class Placement:
    """Where an asset ended up, and how to undo it if the record update fails."""

    location: str
    rollback: Callable[[], None] | None = None


class ThumbnailPlacement(Protocol):
    async def place_thumbnail(self, video: Video, data: bytes, media_type: str) -> Placement: ...


# =============================================================================
# Thumbnail strategies
# =============================================================================


class InlinePlacement:
    async def place_thumbnail(self, video: Video, data: bytes, media_type: str) -> Placement:
        encoded = base64.b64encode(data).decode("ascii")
        return Placement(location=f"data:{media_type};base64,{encoded}")


class RegistryPlacement:
    """Keeps thumbnails in process memory and points the record back at this server."""

    def __init__(self, registry: ThumbnailRegistry, base_url: str) -> None:
        self._registry = registry
        self._base_url = base_url.rstrip("/")

    async def place_thumbnail(self, video: Video, data: bytes, media_type: str) -> Placement:
        inserted, previous = self._registry.insert(video.id, data, media_type)

        def rollback() -> None:
            if self._registry.restore(video.id, inserted, previous):
                logger.info("Rolled back registry thumbnail for video %s", video.id)
            else:
                logger.info("Registry thumbnail for video %s was replaced, leaving it", video.id)

        return Placement(location=f"{self._base_url}/api/thumbnails/{video.id}", rollback=rollback)


class ObjectStoragePlacement:
    """
    Uploads assets to the configured bucket.

    Args:
        storage: Storage client bound to the destination bucket.
        url_mode: One of ``public``, ``presigned`` or ``proxy``.
        base_url: Base URL of this server, used for proxy locations.
    """

    def __init__(self, storage: StorageClient, url_mode: str, base_url: str) -> None:
        self._storage = storage
        self._url_mode = url_mode
        self._base_url = base_url.rstrip("/")

    def location_for(self, key: str) -> str:
        if self._url_mode == S3_URL_MODE_PUBLIC:
            return self._storage.public_url(key)
        if self._url_mode == S3_URL_MODE_PROXY:
            return f"{self._base_url}/assets/{key}"
        return f"{self._storage.bucket_name},{key}"

    async def place_thumbnail(self, video: Video, data: bytes, media_type: str) -> Placement:
        key = generate_asset_path(media_type)
        await self._storage.put(key, data, media_type)
        return Placement(location=self.location_for(key))

    async def place_video(
        self, video: Video, body: IO[bytes], media_type: str, orientation: Orientation
    ) -> Placement:
        key = f"{orientation.value}/{generate_asset_path(media_type)}"
        await self._storage.put(key, body, media_type)
        logger.info("Stored video %s at key %s", video.id, key)
        return Placement(location=self.location_for(key))


def select_thumbnail_placement(
    settings: Settings, registry: ThumbnailRegistry, storage: StorageClient
) -> ThumbnailPlacement:
    """
    Build the thumbnail strategy named by ``settings.thumbnail_storage``.

    Settings validation limits the value to inline, registry or object_storage,
    so anything past the first two checks is object storage.
    """
    if settings.thumbnail_storage == THUMBNAIL_STORAGE_INLINE:
        return InlinePlacement()
    if settings.thumbnail_storage == THUMBNAIL_STORAGE_REGISTRY:
        return RegistryPlacement(registry, settings.base_url)
    return ObjectStoragePlacement(storage, settings.s3_url_mode, settings.base_url)


# =============================================================================
# Read-time resolution
# =============================================================================


def split_bucket_key(location: str | None) -> tuple[str, str] | None:
    """
    Return ``(bucket, key)`` for a presigned-mode location, else None.

    Data URLs and absolute URLs are never treated as bucket/key pairs.
    """
    if not location or location.startswith("data:") or "://" in location:
        return None
    bucket, sep, key = location.partition(",")
    if not sep or not bucket or not key:
        return None
    return bucket, key


async def resolve_location(
    location: str | None, storage: StorageClient, expires_in: int | None = None
) -> str | None:
    """Replace a ``bucket,key`` location with a signed GET URL; leave anything else as is."""
    pair = split_bucket_key(location)
    if pair is None:
        return location
    bucket, key = pair
    return await storage.presign_get(bucket, key, expires_in)
