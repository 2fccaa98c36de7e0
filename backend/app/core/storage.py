"""
Tubely S3-Compatible Storage Client

This module provides the object-storage capability used by the upload flows.
It wraps boto3 and supports both MinIO (for development) and AWS S3 (for
production) through a configurable endpoint URL.

Key Features:
- put: upload a byte buffer or an open file to ``bucket/key``
- presign_get: short-lived signed GET URLs (5 minutes by default)
- open_object: stream an object back through this server (proxy URL mode)
- Async-wrapped operations so blocking boto3 calls never stall the event loop
- Singleton pattern for resource efficiency

Every boto3 failure is logged and re-raised as StorageError; a missing object
on read is a NotFoundError.
"""

import asyncio
import logging

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from functools import wraps
from typing import IO, Any, TypeVar

import boto3

from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings, get_settings
from app.core.errors import NotFoundError, StorageError


# Configure module-level constants to avoid magic numbers
MIN_PRESIGNED_EXPIRATION_SECONDS = 60
MAX_PRESIGNED_EXPIRATION_SECONDS = 86400
STREAM_CHUNK_SIZE = 1024 * 1024

# Configure module-level logger
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Singleton container for storage client instance
_singleton_container: dict[str, "StorageClient"] = {}


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator to wrap synchronous boto3 operations for async execution.

    Uses asyncio.to_thread to run blocking boto3 operations in a separate
    thread pool, preventing event loop blocking during S3 operations.
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


@dataclass
class StoredObject:
    """An object opened for reading, with the headers needed to serve it."""

    key: str
    content_type: str
    content_length: int | None
    body: Any

    async def iter_chunks(self, chunk_size: int = STREAM_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Yield the body in chunks, reading each one off the event loop."""
        try:
            while True:
                chunk = await asyncio.to_thread(self.body.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.body.close()


class StorageClient:
    """
    S3-compatible storage client supporting both MinIO and AWS S3.

    Attributes:
        settings: Application settings containing S3 configuration
        s3_client: Initialized boto3 S3 client
        bucket_name: Bucket that new objects are written to

    Example usage:
        ```python
        from app.core.storage import get_storage_client

        storage = get_storage_client()
        await storage.put("landscape/abc.mp4", video_file, "video/mp4")
        url = await storage.presign_get(storage.bucket_name, "landscape/abc.mp4")
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """
        Initialize the S3 storage client with configuration from settings.

        When ``s3_endpoint_url`` is None boto3 talks to AWS S3; when it is set
        (e.g. http://minio:9000) it talks to that endpoint using path-style
        addressing. Credentials left unset fall back to the default AWS chain.
        """
        self.settings = settings or get_settings()

        client_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"} if self.settings.s3_endpoint_url else {},
            retries={"max_attempts": 3, "mode": "standard"},
        )

        self.s3_client = boto3.client(
            "s3",
            endpoint_url=self.settings.s3_endpoint_url,
            aws_access_key_id=self.settings.s3_access_key_id,
            aws_secret_access_key=self.settings.s3_secret_access_key,
            region_name=self.settings.s3_region,
            config=client_config,
        )
        self.bucket_name = self.settings.s3_bucket_name
        self.region = self.settings.s3_region

        logger.info(
            "S3 storage client initialized",
            extra={
                "bucket": self.bucket_name,
                "region": self.region,
                "endpoint": self.settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    async def put(self, key: str, body: bytes | IO[bytes], content_type: str) -> None:
        """
        Upload bytes or a readable binary file to ``bucket_name/key``.

        Args:
            key: Object key, e.g. ``"landscape/q3n...w.mp4"``.
            body: Raw bytes or an open binary file positioned at its start.
            content_type: Content type stored with the object.

        Raises:
            StorageError: If the upload fails.
        """

        @async_wrap
        def _put() -> None:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
            )

        try:
            await _put()
        except (ClientError, BotoCoreError) as e:
            logger.exception(
                "Failed to upload object to S3",
                extra={"bucket": self.bucket_name, "key": key},
            )
            raise StorageError("Couldn't upload file to object storage") from e

        logger.info(
            "Uploaded object to S3",
            extra={"bucket": self.bucket_name, "key": key, "content_type": content_type},
        )

    async def presign_get(self, bucket: str, key: str, expires_in: int | None = None) -> str:
        """
        Generate a presigned GET URL for ``bucket/key``.

        Args:
            bucket: Bucket holding the object.
            key: Object key.
            expires_in: Lifetime in seconds; defaults to
                ``presigned_url_expiration_seconds`` (5 minutes).

        Raises:
            ValueError: If expires_in is outside 60-86400 seconds.
            StorageError: If signing fails.
        """
        expiration = expires_in or self.settings.presigned_url_expiration_seconds
        if not MIN_PRESIGNED_EXPIRATION_SECONDS <= expiration <= MAX_PRESIGNED_EXPIRATION_SECONDS:
            raise ValueError(
                f"expires_in must be between {MIN_PRESIGNED_EXPIRATION_SECONDS} and "
                f"{MAX_PRESIGNED_EXPIRATION_SECONDS} seconds, got {expiration}"
            )

        @async_wrap
        def _generate() -> str:
            return self.s3_client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expiration,
            )

        try:
            url = await _generate()
        except (ClientError, BotoCoreError) as e:
            logger.exception("Failed to generate presigned download URL", extra={"key": key})
            raise StorageError("Couldn't generate presigned URL") from e

        logger.debug("Generated presigned download URL", extra={"key": key, "expires_in": expiration})
        return url

    def public_url(self, key: str) -> str:
        """Plain virtual-hosted URL for a publicly readable object."""
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def open_object(self, key: str) -> StoredObject:
        """
        Open ``bucket_name/key`` for streaming.

        Raises:
            NotFoundError: If the object does not exist.
            StorageError: If the read fails for any other reason.
        """

        @async_wrap
        def _get() -> dict[str, Any]:
            return self.s3_client.get_object(Bucket=self.bucket_name, Key=key)

        try:
            response = await _get()
        except ClientError as e:
            if _error_code(e) in {"404", "NoSuchKey"}:
                logger.warning("Object not found in S3", extra={"key": key})
                raise NotFoundError("Asset not found") from e
            logger.exception("Failed to read object from S3", extra={"key": key})
            raise StorageError("Couldn't read file from object storage") from e
        except BotoCoreError as e:
            logger.exception("Failed to read object from S3", extra={"key": key})
            raise StorageError("Couldn't read file from object storage") from e

        return StoredObject(
            key=key,
            content_type=response.get("ContentType") or "application/octet-stream",
            content_length=response.get("ContentLength"),
            body=response["Body"],
        )


def get_storage_client() -> StorageClient:
    """
    Get the singleton StorageClient instance.

    Used as a FastAPI dependency; tests override it with a mock.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageClient()
        logger.info("Created new StorageClient singleton instance")

    return _singleton_container["instance"]
