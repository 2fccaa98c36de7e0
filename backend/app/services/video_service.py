"""
Video record service.

Owns the steps of the upload flows that touch the metadata store:

- Ownership gate: load a record and check that the caller owns it
- Persistence sync: save a new location, undoing the placement if the save
  fails
- Read-time resolution of ``bucket,key`` locations into signed URLs

It also backs the draft/list/get/delete routes.
"""

import logging
import uuid

from app.config import Settings
from app.core.database import VideoRepository
from app.core.errors import BadRequestError, ForbiddenError, PersistenceError
from app.core.storage import StorageClient
from app.models.video import Video, VideoCreate, VideoResponse
from app.services.placement_service import Placement, resolve_location
from app.services.thumbnail_registry import ThumbnailRegistry


logger = logging.getLogger(__name__)


def parse_video_id(raw: str) -> str:
    """
    Normalise a path identifier to its canonical UUID string.

    Raises:
        BadRequestError: If ``raw`` is not a UUID.
    """
    try:
        return str(uuid.UUID(raw))
    except ValueError as e:
        raise BadRequestError("Invalid ID") from e


class VideoService:
    def __init__(
        self,
        repository: VideoRepository,
        storage: StorageClient,
        registry: ThumbnailRegistry,
        settings: Settings,
    ) -> None:
        self._repository = repository
        self._storage = storage
        self._registry = registry
        self._settings = settings

    async def get_owned_video(self, video_id: str, user_id: str) -> Video:
        """
        Load ``video_id`` and make sure ``user_id`` owns it.

        Raises:
            NotFoundError: If the record does not exist.
            ForbiddenError: If it belongs to someone else.
        """
        video = await self._repository.get_video(video_id)
        if not video.is_owned_by(user_id):
            logger.warning("User %s attempted to modify video %s owned by another user", user_id, video_id)
            raise ForbiddenError("You are not authorized to update this video")
        return video

    async def sync_placement(self, video: Video, placement: Placement) -> None:
        """
        Persist the record after a placement has written its location onto it.

        If the write fails, the placement's rollback (when it has one) runs
        before the PersistenceError propagates.
        """
        try:
            await self._repository.update_video(video)
        except PersistenceError:
            if placement.rollback is not None:
                placement.rollback()
            raise
        logger.info("Video %s updated", video.id)

    async def to_response(self, video: Video) -> VideoResponse:
        """Build the API view, signing any ``bucket,key`` locations."""
        response = VideoResponse.from_video(video)
        expires_in = self._settings.presigned_url_expiration_seconds
        response.thumbnail_url = await resolve_location(video.thumbnail_url, self._storage, expires_in)
        response.video_url = await resolve_location(video.video_url, self._storage, expires_in)
        return response

    async def create_video(self, user_id: str, payload: VideoCreate) -> Video:
        video = Video(user_id=user_id, title=payload.title, description=payload.description)
        await self._repository.create_video(video)
        logger.info("Created draft video %s for user %s", video.id, user_id)
        return video

    async def list_videos(self, user_id: str) -> list[Video]:
        return await self._repository.list_videos_for_user(user_id)

    async def delete_video(self, video_id: str, user_id: str) -> None:
        """Delete an owned record and any thumbnail it has in the registry."""
        await self.get_owned_video(video_id, user_id)
        await self._repository.delete_video(video_id)
        self._registry.remove(video_id)
        logger.info("Deleted video %s", video_id)
