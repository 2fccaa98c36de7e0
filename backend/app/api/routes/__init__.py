"""
Tubely API router aggregator.

Router Structure:
    - /api/thumbnails: thumbnail upload and registry retrieval
    - /api/videos: video drafts, listing, deletion and video upload
    - /assets: object-storage proxy (``s3_url_mode=proxy``)
"""

import logging

from fastapi import APIRouter

from app.api.routes.assets import router as assets_router
from app.api.routes.thumbnails import router as thumbnails_router
from app.api.routes.videos import router as videos_router


logger = logging.getLogger(__name__)

# Routers mounted under /api
api_router = APIRouter()
api_router.include_router(thumbnails_router, prefix="/thumbnails", tags=["thumbnails"])
api_router.include_router(videos_router, prefix="/videos", tags=["videos"])

# Mounted at the application root so proxy URLs stay short
asset_router = APIRouter()
asset_router.include_router(assets_router, prefix="/assets", tags=["assets"])

__all__ = ["api_router", "asset_router"]
