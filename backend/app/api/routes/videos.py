"""
Video endpoints.

Endpoints:
- POST / - Create a draft video record for the caller
- GET / - List the caller's videos, newest first
- GET /{video_id} - Retrieve one of the caller's videos
- DELETE /{video_id} - Delete one of the caller's videos
- POST /{video_id} - Upload the video file (multipart field ``video``)

All endpoints require a bearer token. Locations stored as ``bucket,key`` are
returned as signed URLs that expire after ``presigned_url_expiration_seconds``.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.deps import get_upload_service, get_video_service
from app.core.auth import get_current_user_id
from app.models.video import VideoCreate, VideoResponse
from app.services.upload_service import UploadService
from app.services.video_service import VideoService, parse_video_id


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create video draft",
)
async def create_video(
    payload: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
) -> VideoResponse:
    video = await videos.create_video(user_id, payload)
    return await videos.to_response(video)


@router.get("", response_model=list[VideoResponse], summary="List videos")
async def list_videos(
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
) -> list[VideoResponse]:
    return [await videos.to_response(video) for video in await videos.list_videos(user_id)]


@router.get(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Get video",
    responses={403: {"description": "Video belongs to another user"}, 404: {"description": "Video not found"}},
)
async def get_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
) -> VideoResponse:
    video = await videos.get_owned_video(parse_video_id(video_id), user_id)
    return await videos.to_response(video)


@router.delete(
    "/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete video",
)
async def delete_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
) -> Response:
    await videos.delete_video(parse_video_id(video_id), user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Upload video file",
    description="Upload an MP4 for a video owned by the caller. The file is "
    "rewritten for fast start and stored under its orientation prefix.",
    responses={
        400: {"description": "Invalid ID, missing field or content type other than video/mp4"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Video belongs to another user"},
        404: {"description": "Video not found"},
        413: {"description": "Body larger than the video limit"},
        500: {"description": "Media processing or persistence failed"},
        502: {"description": "Object storage upload failed"},
    },
)
async def upload_video(
    video_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: UploadService = Depends(get_upload_service),
) -> VideoResponse:
    return await service.upload_video(request, video_id, user_id)
