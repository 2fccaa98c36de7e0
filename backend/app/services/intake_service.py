"""
Upload intake: turning a multipart request body into an uploaded asset.

The request body is read through a byte counter so an oversized upload is
rejected as soon as it crosses its bound rather than after it has been
buffered. Multipart parsing is done with Starlette's MultiPartParser.

- Thumbnails are read fully into memory together with their declared
  content type, which must be one of ``allowed_thumbnail_types``.
- Videos must declare exactly ``allowed_video_type``. The part is then
  copied into a fresh temporary file, which exists only inside the
  ``receive_video`` context and is removed on every exit path.
"""

import logging
import os
import tempfile

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import aiofiles

from fastapi import Request
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from app.config import Settings
from app.core.errors import BadRequestError, UploadTooLargeError
from app.utils.file_validator import (
    format_file_size,
    parse_media_type,
    validate_thumbnail_type,
    validate_video_type,
)


logger = logging.getLogger(__name__)

# Chunk size used when copying a video part to disk
COPY_CHUNK_SIZE = 1024 * 1024

VIDEO_TEMP_PREFIX = "tubely-upload"
VIDEO_TEMP_SUFFIX = ".mp4"


@dataclass(frozen=True)
class ThumbnailUpload:
    data: bytes
    media_type: str


@dataclass(frozen=True)
class VideoUpload:
    path: str
    media_type: str


class BodyLimitExceeded(MultiPartException):
    """Raised inside the parser's stream so it closes the parts spooled so far."""


async def _limited_stream(request: Request, max_bytes: int) -> AsyncIterator[bytes]:
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise BodyLimitExceeded(f"Upload exceeds the {format_file_size(max_bytes)} limit")
        yield chunk


async def parse_form(request: Request, max_bytes: int) -> FormData:
    """
    Parse a multipart/form-data body no larger than ``max_bytes``.

    Raises:
        UploadTooLargeError: If the declared or actual body size exceeds the bound.
        BadRequestError: If the body is not multipart/form-data or cannot be parsed.
    """
    if parse_media_type(request.headers.get("content-type")) != "multipart/form-data":
        raise BadRequestError("Expected a multipart/form-data body")

    content_length = request.headers.get("content-length")
    if content_length is not None and content_length.isdigit() and int(content_length) > max_bytes:
        raise UploadTooLargeError(f"Upload exceeds the {format_file_size(max_bytes)} limit")

    parser = MultiPartParser(request.headers, _limited_stream(request, max_bytes))
    try:
        return await parser.parse()
    except BodyLimitExceeded as e:
        logger.warning("Rejected upload: %s", e.message)
        raise UploadTooLargeError(e.message) from e
    except MultiPartException as e:
        logger.warning("Unable to parse multipart body: %s", e.message)
        raise BadRequestError("Unable to parse form file") from e


def _get_file(form: FormData, field: str) -> UploadFile:
    value = form.get(field)
    if not isinstance(value, UploadFile):
        raise BadRequestError(f"Unable to parse form file: missing '{field}' field")
    return value


async def receive_thumbnail(request: Request, field: str, settings: Settings) -> ThumbnailUpload:
    """Read the ``field`` part into memory and validate its content type."""
    form = await parse_form(request, settings.max_thumbnail_form_bytes)
    try:
        upload = _get_file(form, field)
        media_type = validate_thumbnail_type(upload.content_type, settings.allowed_thumbnail_types)
        data = await upload.read()
    finally:
        await form.close()

    logger.debug("Received thumbnail: %s, %s", media_type, format_file_size(len(data)))
    return ThumbnailUpload(data=data, media_type=media_type)


def remove_file(path: str) -> None:
    """Delete ``path`` if it exists."""
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    logger.debug("Removed temporary file %s", path)


@asynccontextmanager
async def receive_video(request: Request, field: str, settings: Settings) -> AsyncIterator[VideoUpload]:
    """
    Stream the ``field`` part into a temporary file.

    The content type is checked before anything is written to disk. The file
    is closed (so later readers start from its beginning) before it is
    yielded, and removed when the context exits.

    Usage:
        ```python
        async with receive_video(request, "video", settings) as video:
            ratio = await inspector.get_aspect_ratio(video.path)
        ```
    """
    form = await parse_form(request, settings.max_video_body_bytes)
    try:
        upload = _get_file(form, field)
        media_type = validate_video_type(upload.content_type, settings.allowed_video_type)

        fd, path = tempfile.mkstemp(
            prefix=VIDEO_TEMP_PREFIX, suffix=VIDEO_TEMP_SUFFIX, dir=settings.upload_temp_dir
        )
        os.close(fd)
        try:
            await upload.seek(0)
            async with aiofiles.open(path, "wb") as out:
                while chunk := await upload.read(COPY_CHUNK_SIZE):
                    await out.write(chunk)
            logger.debug("Video part written to %s (%d bytes)", path, os.path.getsize(path))
            yield VideoUpload(path=path, media_type=media_type)
        finally:
            remove_file(path)
    finally:
        await form.close()
