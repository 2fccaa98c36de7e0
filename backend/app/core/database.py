"""
Tubely MongoDB Database Client Module

This module provides async MongoDB connection management using Motor and the
metadata store used by the upload flows. It implements:
- Connection pooling with configurable pool size
- Health checks using the MongoDB ping command
- Retry logic with exponential backoff for connection reliability
- Startup/shutdown lifecycle management for FastAPI integration
- VideoRepository: the narrow get/update/create/list/delete interface the
  rest of the application uses for video records

All database operations are async-compatible for non-blocking I/O.
"""

import asyncio
import logging

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from app.config import Settings
from app.core.errors import NotFoundError, PersistenceError
from app.models.video import Video


# Configure module logger for structured logging
logger = logging.getLogger(__name__)

# Collection name constants for consistency
VIDEOS_COLLECTION = "videos"


class DatabaseClient:
    """
    Async MongoDB client wrapper with connection pooling and lifecycle management.

    Attributes:
        _settings: Settings instance containing MongoDB configuration
        _client: Motor async MongoDB client instance
        _database: Motor async database instance

    Example usage:
        ```python
        settings = Settings()
        db_client = DatabaseClient(settings)
        await db_client.connect()

        videos = db_client.get_videos_collection()
        await videos.find_one({"_id": video_id})

        await db_client.close()
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._mongodb_uri = settings.mongodb_uri
        self._db_name = settings.mongodb_db_name
        self._min_pool_size = settings.mongodb_min_pool_size
        self._max_pool_size = settings.mongodb_max_pool_size
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None

        logger.info(
            "DatabaseClient initialized with pool size %d-%d for database: %s",
            self._min_pool_size,
            self._max_pool_size,
            self._db_name,
        )

    async def connect(self) -> bool:
        """
        Establish MongoDB connection with retry logic and exponential backoff.

        Implements retry logic with 3 attempts and exponential backoff (1s, 2s)
        for reliable connection establishment.

        Returns:
            bool: True if connection successful, False on failure after all retries.
        """
        max_retries = 3
        retry_delay = 1.0

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(
                    "Attempting MongoDB connection (attempt %d/%d) to %s...",
                    attempt,
                    max_retries,
                    self._db_name,
                )

                self._client = AsyncIOMotorClient(
                    self._mongodb_uri,
                    minPoolSize=self._min_pool_size,
                    maxPoolSize=self._max_pool_size,
                    serverSelectionTimeoutMS=5000,
                    uuidRepresentation="standard",
                )
                self._database = self._client[self._db_name]

                # Verify connection by running ping command
                await self._client.admin.command("ping")

                logger.info("Successfully connected to MongoDB database: %s", self._db_name)
                return True

            except (ServerSelectionTimeoutError, ConnectionFailure):
                logger.exception(
                    "MongoDB connection failure (attempt %d/%d)", attempt, max_retries
                )
                if attempt < max_retries:
                    logger.warning("Retrying in %s seconds...", retry_delay)
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2

        logger.error(
            "Failed to connect to MongoDB after %d attempts. "
            "Check connection URI and server availability.",
            max_retries,
        )
        return False

    async def close(self) -> None:
        """Close the MongoDB connection. Safe to call even if not connected."""
        if self._client is not None:
            try:
                self._client.close()
                logger.info("MongoDB connection closed for database: %s", self._db_name)
            finally:
                self._client = None
                self._database = None
        else:
            logger.warning("MongoDB close called but no active connection exists")

    async def ping(self) -> bool:
        """
        Health check using MongoDB admin ping command.

        Returns:
            bool: True if ping successful, False on failure.
        """
        if self._client is None:
            logger.warning("MongoDB ping failed: No active connection")
            return False

        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError:
            logger.exception("MongoDB ping failed")
            return False

    def get_database(self) -> AsyncIOMotorDatabase:
        if self._database is None:
            raise RuntimeError(
                "MongoDB database not available. Call connect() first or check connection status."
            )
        return self._database

    def get_videos_collection(self) -> AsyncIOMotorCollection:
        """
        Get the videos collection.

        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        return self.get_database()[VIDEOS_COLLECTION]

    async def create_indexes(self) -> None:
        """Create indexes used by the owner listing query."""
        videos = self.get_videos_collection()
        await videos.create_index([("user_id", 1), ("created_at", -1)])
        logger.info("Created indexes on %s collection", VIDEOS_COLLECTION)


# =============================================================================
# Video Repository
# =============================================================================


class VideoRepository:
    """
    Metadata store for video records.

    Wraps a Motor collection and translates driver failures into the request
    error taxonomy: an unknown record is a NotFoundError, any failed write is a
    PersistenceError.

    Args:
        collection: The ``videos`` collection.
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection

    async def get_video(self, video_id: str) -> Video:
        """
        Load a video record by identifier.

        Raises:
            NotFoundError: If no record has this identifier.
            PersistenceError: If the lookup itself fails.
        """
        try:
            document = await self._collection.find_one({"_id": video_id})
        except PyMongoError as e:
            logger.exception("Failed to load video %s", video_id)
            raise PersistenceError("Couldn't load video") from e

        if document is None:
            raise NotFoundError("Video not found")
        return Video.model_validate(document)

    async def update_video(self, video: Video) -> None:
        """
        Persist the mutable fields of an existing record.

        Raises:
            PersistenceError: If the write fails or matches no record.
        """
        video.touch()
        try:
            result = await self._collection.update_one(
                {"_id": video.id},
                {
                    "$set": {
                        "title": video.title,
                        "description": video.description,
                        "thumbnail_url": video.thumbnail_url,
                        "video_url": video.video_url,
                        "updated_at": video.updated_at,
                    }
                },
            )
        except PyMongoError as e:
            logger.exception("Failed to update video %s", video.id)
            raise PersistenceError("Couldn't update video") from e

        if result.matched_count == 0:
            raise PersistenceError("Couldn't update video: record no longer exists")

    async def create_video(self, video: Video) -> Video:
        try:
            await self._collection.insert_one(video.to_document())
        except PyMongoError as e:
            logger.exception("Failed to create video for user %s", video.user_id)
            raise PersistenceError("Couldn't create video") from e
        return video

    async def list_videos_for_user(self, user_id: str) -> list[Video]:
        try:
            cursor = self._collection.find({"user_id": user_id}).sort("created_at", -1)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.exception("Failed to list videos for user %s", user_id)
            raise PersistenceError("Couldn't list videos") from e
        return [Video.model_validate(document) for document in documents]

    async def delete_video(self, video_id: str) -> None:
        try:
            await self._collection.delete_one({"_id": video_id})
        except PyMongoError as e:
            logger.exception("Failed to delete video %s", video_id)
            raise PersistenceError("Couldn't delete video") from e


# Container class for database client singleton to avoid global statements
class _DatabaseClientContainer:
    """Container for database client singleton to avoid global statements."""

    client: DatabaseClient | None = None


_container = _DatabaseClientContainer()


async def init_db(settings: Settings | None = None) -> DatabaseClient:
    """
    Initialize the global database client singleton.

    Should be called during FastAPI application startup.

    Raises:
        RuntimeError: If connection to MongoDB fails after all retries.
    """
    if _container.client is not None:
        logger.warning("Database client already initialized, returning existing instance")
        return _container.client

    if settings is None:
        settings = Settings()

    logger.info("Initializing MongoDB database client...")

    client = DatabaseClient(settings)
    if not await client.connect():
        raise RuntimeError(
            "Failed to establish MongoDB connection. "
            "Check mongodb_uri configuration and server availability."
        )
    await client.create_indexes()

    _container.client = client
    logger.info("MongoDB database client initialization complete")
    return client


async def close_db() -> None:
    """Close the global database client connection during application shutdown."""
    if _container.client is not None:
        logger.info("Closing MongoDB database client...")
        await _container.client.close()
        _container.client = None
        logger.info("MongoDB database client closed")
    else:
        logger.warning("close_db called but no database client exists")


def get_db_client() -> DatabaseClient:
    """
    Get the global database client singleton instance.

    Raises:
        RuntimeError: If database client has not been initialized.
    """
    if _container.client is None:
        raise RuntimeError(
            "Database client not initialized. Call init_db() first during application startup."
        )
    return _container.client


def get_video_repository() -> VideoRepository:
    """FastAPI dependency returning the repository over the global client."""
    return VideoRepository(get_db_client().get_videos_collection())
