"""
Video Pydantic models for Tubely.

This module defines the Video record stored in the metadata database, the
request body used to create one, and the Orientation categories used to
namespace video objects in the bucket.

A video record is created as a draft (no thumbnail, no video) and mutated only
by the upload flows, which set ``thumbnail_url`` / ``video_url`` to a reference
the active placement scheme can resolve:
- an inline ``data:`` URL
- a URL pointing back at this server (thumbnail registry, asset proxy)
- a public bucket URL
- a ``bucket,key`` pair resolved into a short-lived signed URL at read time
"""

import uuid

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class Orientation(str, Enum):
    """
    Orientation category derived from a video's display aspect ratio.

    Used only as the storage-key namespace prefix for uploaded videos:
    - LANDSCAPE: display aspect ratio "16:9"
    - PORTRAIT: display aspect ratio "9:16"
    - OTHER: any other ratio, or no ratio reported at all
    """

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


# =============================================================================
# MODELS
# =============================================================================


class Video(BaseModel):
    """
    Pydantic model for a video metadata record.

    Attributes:
        id: Record identifier (UUID string, stored as MongoDB _id)
        user_id: Identifier of the owning user
        title: Video title
        description: Free-form description
        thumbnail_url: Location of the thumbnail, None until one is uploaded
        video_url: Location of the video file, None until one is uploaded
        created_at: Record creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        alias="_id",
        description="Video identifier (UUID)",
    )

    user_id: str = Field(..., min_length=1, max_length=100, description="Owning user's ID")

    title: str = Field(default="", max_length=255, description="Video title")

    description: str = Field(default="", max_length=5000, description="Video description")

    thumbnail_url: str | None = Field(default=None, description="Thumbnail location")

    video_url: str | None = Field(default=None, description="Video file location")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Creation timestamp (UTC)"
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Last modification timestamp (UTC)"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "user_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                "title": "Boots in the wild",
                "description": "A short clip",
                "thumbnail_url": None,
                "video_url": "tubely-assets,landscape/q3n...w.mp4",
            }
        },
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> str:
        return str(v)

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = datetime.now(UTC)

    def to_document(self) -> dict:
        """Serialize for MongoDB, keeping ``_id`` as the primary key."""
        return self.model_dump(by_alias=True)


class VideoCreate(BaseModel):
    """Request body for creating a draft video record."""

    title: str = Field(..., min_length=1, max_length=255, description="Video title")
    description: str = Field(default="", max_length=5000, description="Video description")


class VideoResponse(BaseModel):
    """
    Schema for video API responses.

    Locations are returned as the client should use them: ``bucket,key`` pairs
    have already been replaced by signed URLs when this model is built.
    """

    id: str = Field(..., description="Video ID")
    user_id: str = Field(..., description="Owner user ID")
    title: str = Field(..., description="Video title")
    description: str = Field(..., description="Video description")
    thumbnail_url: str | None = Field(None, description="Thumbnail URL")
    video_url: str | None = Field(None, description="Video URL")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            thumbnail_url=video.thumbnail_url,
            video_url=video.video_url,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )
