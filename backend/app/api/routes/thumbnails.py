"""
Thumbnail endpoints.

Endpoints:
- POST /thumbnails/{video_id} - Upload a thumbnail (multipart field ``thumbnail``)
- GET /thumbnails/{video_id} - Serve a thumbnail held in the in-memory registry

The GET endpoint is the target of the locations written by the registry
placement strategy. It is unauthenticated so that the URL can be used
directly as an image source.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from app.api.deps import get_thumbnail_registry, get_upload_service
from app.core.auth import get_current_user_id
from app.core.errors import NotFoundError
from app.models.video import VideoResponse
from app.services.thumbnail_registry import ThumbnailRegistry
from app.services.upload_service import UploadService
from app.services.video_service import parse_video_id


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Upload thumbnail",
    description="Attach a JPEG or PNG thumbnail to a video owned by the caller.",
    responses={
        400: {"description": "Invalid ID, missing field or unsupported content type"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Video belongs to another user"},
        404: {"description": "Video not found"},
        413: {"description": "Form larger than the thumbnail limit"},
    },
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: UploadService = Depends(get_upload_service),
) -> VideoResponse:
    return await service.upload_thumbnail(request, video_id, user_id)


@router.get(
    "/{video_id}",
    summary="Get thumbnail",
    response_class=Response,
    responses={200: {"content": {"image/png": {}, "image/jpeg": {}}}, 404: {"description": "No thumbnail"}},
)
async def get_thumbnail(
    video_id: str,
    registry: ThumbnailRegistry = Depends(get_thumbnail_registry),
) -> Response:
    entry = registry.get(parse_video_id(video_id))
    if entry is None:
        raise NotFoundError("Thumbnail not found")
    return Response(content=entry.data, media_type=entry.media_type)
