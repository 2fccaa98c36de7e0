"""
Tubely API - FastAPI application factory.

Builds the FastAPI application for the Tubely upload backend:
- Lifespan: logging setup, MongoDB connection, the in-memory thumbnail
  registry and the ffprobe/ffmpeg tools, all torn down on shutdown
- CORS and request logging middleware
- JSON error envelopes for every TubelyError, unknown paths and crashes
- Routers: /api/thumbnails, /api/videos, /assets
- /health and /ready for load balancers and orchestrators

API Structure:
    POST   /api/thumbnails/{video_id}  - upload a thumbnail
    GET    /api/thumbnails/{video_id}  - serve a registry thumbnail
    POST   /api/videos                 - create a draft video
    GET    /api/videos                 - list the caller's videos
    GET    /api/videos/{video_id}      - get one video
    DELETE /api/videos/{video_id}      - delete a video
    POST   /api/videos/{video_id}      - upload the video file
    GET    /assets/{key}               - stream an object (proxy URL mode)
"""

import logging
import time
import uuid

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.routes import api_router, asset_router
from app.config import Settings, get_settings
from app.core.database import close_db, get_db_client, init_db
from app.core.errors import register_exception_handlers
from app.services.media_service import build_media_tools
from app.services.thumbnail_registry import ThumbnailRegistry
from app.utils.logger import setup_logging


# Configure module logger
logger = logging.getLogger(__name__)

# HTTP status code constants
HTTP_ERROR_THRESHOLD = 400  # Status codes >= 400 indicate errors


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Manage application startup and shutdown.

    Startup configures logging, connects to MongoDB and creates the
    process-wide thumbnail registry and media tools on ``app.state``.
    Shutdown clears the registry and closes the MongoDB connection.
    """
    settings: Settings = app.state.settings
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info("=" * 60)
    logger.info("%s API Starting...", settings.app_name)
    logger.info("=" * 60)
    logger.info("Environment: %s", settings.app_env)
    logger.info("Thumbnail storage: %s", settings.thumbnail_storage)
    logger.info("Object storage URL mode: %s", settings.s3_url_mode)
    logger.info("Host: %s:%s", settings.host, settings.port)

    try:
        await init_db(settings)
    except RuntimeError:
        logger.exception("Failed to initialize MongoDB")
        raise

    app.state.thumbnail_registry = ThumbnailRegistry()
    app.state.inspector, app.state.transcoder = build_media_tools(settings)

    logger.info("%s API Ready to Accept Requests", settings.app_name)

    yield

    logger.info("%s API Shutting Down...", settings.app_name)
    app.state.thumbnail_registry.clear()
    await close_db()
    logger.info("%s API Shutdown Complete", settings.app_name)


# =============================================================================
# Middleware
# =============================================================================


async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Log each request and attach tracing headers.

    Adds X-Request-ID (echoing the client's when supplied) and X-Process-Time
    to every response. Completion is logged at DEBUG, or WARNING for 4xx/5xx.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start_time = time.perf_counter()

    logger.debug("Request started: %s %s [Request-ID: %s]", request.method, request.url.path, request_id)

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request failed: %s %s [Request-ID: %s]", request.method, request.url.path, request_id
        )
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.DEBUG if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed: %s %s [Status: %s] [Time: %sms] [Request-ID: %s]",
        request.method,
        request.url.path,
        response.status_code,
        process_time_ms,
        request_id,
    )
    return response


# =============================================================================
# Core Endpoints
# =============================================================================


async def health_check() -> dict[str, Any]:
    """Liveness probe: the process is up and serving requests."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
    }


async def readiness_check() -> dict[str, Any]:
    """Readiness probe: MongoDB answers a ping."""
    try:
        mongodb_ready = await get_db_client().ping()
    except RuntimeError:
        mongodb_ready = False

    return {
        "ready": mongodb_ready,
        "timestamp": datetime.now(UTC).isoformat(),
        "checks": {"mongodb": mongodb_ready},
    }


# =============================================================================
# Application Factory
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to run with; defaults to ``get_settings()``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Upload thumbnails and videos for Tubely, with storage placement "
        "in the record, in memory or in an S3 bucket.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )
    app.middleware("http")(request_logging_middleware)

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")
    app.include_router(asset_router)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["health"], summary="Health Check")
    app.add_api_route("/ready", readiness_check, methods=["GET"], tags=["health"], summary="Readiness Check")

    return app


app = create_app()
