"""
Tubely Upload Service Module

This module implements the two upload flows. Both run the same sequence of
steps; the video flow adds inspection and normalization:

    ownership gate -> intake -> [classify -> normalize] -> placement -> persistence sync

Identity is established before the service is called (the route depends on
``get_current_user_id``). Every step raises from the error taxonomy in
``app.core.errors`` and nothing is retried. Temporary files made along the
way are removed whether the flow succeeds or fails, and a registry placement
is undone if the record cannot be saved.

Example:
    ```python
    service = UploadService(settings, video_service, thumbnail_placement,
                            video_placement, inspector, transcoder)
    response = await service.upload_video(request, video_id, user_id)
    ```
"""

import logging

from fastapi import Request

from app.config import Settings
from app.models.video import VideoResponse
from app.services.intake_service import receive_thumbnail, receive_video, remove_file
from app.services.media_service import (
    PROCESSING_SUFFIX,
    Inspector,
    Transcoder,
    classify_orientation,
)
from app.services.placement_service import ObjectStoragePlacement, ThumbnailPlacement
from app.services.video_service import VideoService, parse_video_id
from app.utils.logger import add_log_context


# Configure module logger
logger = logging.getLogger(__name__)

# Multipart field names
THUMBNAIL_FIELD = "thumbnail"
VIDEO_FIELD = "video"


class UploadService:
    """
    Runs thumbnail and video uploads for a single request.

    Attributes:
        settings: Upload limits and accepted content types
        videos: Ownership gate, persistence sync and response building
        thumbnail_placement: Strategy chosen by ``thumbnail_storage``
        video_placement: Object-storage placement used for every video
        inspector: Reports a video's display aspect ratio
        transcoder: Produces the fast-start copy that is actually stored
    """

    def __init__(
        self,
        settings: Settings,
        videos: VideoService,
        thumbnail_placement: ThumbnailPlacement,
        video_placement: ObjectStoragePlacement,
        inspector: Inspector,
        transcoder: Transcoder,
    ) -> None:
        self.settings = settings
        self.videos = videos
        self.thumbnail_placement = thumbnail_placement
        self.video_placement = video_placement
        self.inspector = inspector
        self.transcoder = transcoder

    async def upload_thumbnail(self, request: Request, raw_video_id: str, user_id: str) -> VideoResponse:
        """
        Store a thumbnail for an owned video and persist its location.

        Raises:
            BadRequestError: Invalid id, missing field, unparsable form or
                content type not accepted (413 when the form is too large).
            NotFoundError / ForbiddenError: From the ownership gate.
            StorageError: Object-storage placement failed.
            PersistenceError: The record could not be saved.
        """
        video_id = parse_video_id(raw_video_id)
        flow_logger = add_log_context(logger, video_id=video_id, user_id=user_id)
        flow_logger.info("Uploading thumbnail for video %s by user %s", video_id, user_id)

        video = await self.videos.get_owned_video(video_id, user_id)
        thumbnail = await receive_thumbnail(request, THUMBNAIL_FIELD, self.settings)

        placement = await self.thumbnail_placement.place_thumbnail(
            video, thumbnail.data, thumbnail.media_type
        )
        video.thumbnail_url = placement.location
        await self.videos.sync_placement(video, placement)

        flow_logger.info(
            "Thumbnail stored",
            extra={"media_type": thumbnail.media_type, "size": len(thumbnail.data)},
        )
        return await self.videos.to_response(video)

    async def upload_video(self, request: Request, raw_video_id: str, user_id: str) -> VideoResponse:
        """
        Store an MP4 for an owned video and persist its location.

        The uploaded file is classified by aspect ratio, rewritten for fast
        start, and the rewritten copy is uploaded under
        ``<orientation>/<random key>``.

        Raises:
            BadRequestError: Invalid id, missing field, unparsable form or a
                content type other than ``allowed_video_type`` (413 when the
                body is too large). No media tool runs in these cases.
            NotFoundError / ForbiddenError: From the ownership gate.
            ProcessingError: ffprobe/ffmpeg failed or produced no output.
            StorageError: The upload to the bucket failed.
            PersistenceError: The record could not be saved.
        """
        video_id = parse_video_id(raw_video_id)
        flow_logger = add_log_context(logger, video_id=video_id, user_id=user_id)
        flow_logger.info("Uploading video file for video %s by user %s", video_id, user_id)

        video = await self.videos.get_owned_video(video_id, user_id)

        async with receive_video(request, VIDEO_FIELD, self.settings) as upload:
            aspect_ratio = await self.inspector.get_aspect_ratio(upload.path)
            orientation = classify_orientation(aspect_ratio)
            flow_logger.info(
                "Classified video as %s", orientation.value, extra={"aspect_ratio": aspect_ratio}
            )

            try:
                processed_path = await self.transcoder.process_for_fast_start(upload.path)
                with open(processed_path, "rb") as processed:
                    placement = await self.video_placement.place_video(
                        video, processed, upload.media_type, orientation
                    )
            finally:
                remove_file(upload.path + PROCESSING_SUFFIX)

        video.video_url = placement.location
        await self.videos.sync_placement(video, placement)

        flow_logger.info("Video stored", extra={"orientation": orientation.value})
        return await self.videos.to_response(video)
