"""
Asset proxy endpoint.

When ``s3_url_mode`` is ``proxy``, stored locations point at
``<public_base_url>/assets/<key>`` and this endpoint streams the object back
from the bucket. In any other mode it answers 404.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.config import S3_URL_MODE_PROXY, Settings, get_settings
from app.core.errors import NotFoundError
from app.core.storage import StorageClient, get_storage_client


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{key:path}", summary="Stream stored asset", response_class=StreamingResponse)
async def get_asset(
    key: str,
    settings: Settings = Depends(get_settings),
    storage: StorageClient = Depends(get_storage_client),
) -> StreamingResponse:
    if settings.s3_url_mode != S3_URL_MODE_PROXY:
        raise NotFoundError("Asset proxy is disabled")
    if not key or ".." in key.split("/"):
        raise NotFoundError("Asset not found")

    stored = await storage.open_object(key)
    headers = {}
    if stored.content_length is not None:
        headers["Content-Length"] = str(stored.content_length)
    return StreamingResponse(stored.iter_chunks(), media_type=stored.content_type, headers=headers)
