"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely upload backend
using Pydantic Settings. It loads and validates all environment variables
required for:
- Application settings (name, environment, debug mode, logging)
- Bearer-token verification (shared secret, algorithm, issuer)
- MongoDB connection for video metadata records
- S3/MinIO object storage and the URL form persisted for stored assets
- Upload limits, accepted content types and thumbnail placement strategy
- External media tools (ffprobe/ffmpeg) and their concurrency bound

All settings support environment variable overrides and .env file loading.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Placement strategies available for thumbnails
THUMBNAIL_STORAGE_INLINE = "inline"
THUMBNAIL_STORAGE_REGISTRY = "registry"
THUMBNAIL_STORAGE_OBJECT = "object_storage"

# URL forms persisted for objects placed in the bucket
S3_URL_MODE_PUBLIC = "public"
S3_URL_MODE_PRESIGNED = "presigned"
S3_URL_MODE_PROXY = "proxy"


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely upload backend.

    This class uses Pydantic Settings to load configuration from environment
    variables and .env files with full type validation.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - Auth: Shared secret and claims used to verify bearer tokens
    - MongoDB: Database connection URI and connection pool settings
    - S3/MinIO: Object storage credentials, bucket and URL mode
    - Upload: Size limits, accepted content types, thumbnail placement
    - Media tools: ffprobe/ffmpeg binaries and process fan-out bound

    Example usage:
        ```python
        from app.config import Settings

        settings = Settings()
        print(f"Thumbnails are stored as: {settings.thumbnail_storage}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="Tubely",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable debug mode with hot-reload")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=False, description="Emit structured JSON log lines instead of plain text"
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    public_base_url: str | None = Field(
        default=None,
        description="Base URL clients use to reach this server (defaults to http://localhost:<port>)",
    )

    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # Auth Configuration
    # =========================================================================

    jwt_secret: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Shared secret used to verify bearer tokens",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    jwt_issuer: str = Field(default="tubely-access", description="Expected token issuer")

    jwt_expiration_hours: int = Field(
        default=1, description="Lifetime of tokens issued by create_access_token", ge=1, le=168
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum number of connections in MongoDB connection pool", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum number of connections in MongoDB connection pool", ge=1
    )

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None, description="S3 access key ID (None to use the default AWS chain)"
    )

    s3_secret_access_key: str | None = Field(default=None, description="S3 secret access key")

    s3_bucket_name: str = Field(default="tubely-assets", description="S3 bucket for assets")

    s3_region: str = Field(default="us-east-2", description="AWS region of the bucket")

    s3_url_mode: str = Field(
        default=S3_URL_MODE_PRESIGNED,
        description="Persisted URL form for stored objects (public, presigned, proxy)",
    )

    presigned_url_expiration_seconds: int = Field(
        default=300,
        description="Lifetime of presigned GET URLs in seconds (5 minutes)",
        ge=60,
        le=86400,
    )

    # =========================================================================
    # Upload Settings
    # =========================================================================

    thumbnail_storage: str = Field(
        default=THUMBNAIL_STORAGE_INLINE,
        description="Thumbnail placement strategy (inline, registry, object_storage)",
    )

    max_thumbnail_form_bytes: int = Field(
        default=10 << 20, description="Maximum thumbnail form size (10 MiB)", ge=1
    )

    max_video_body_bytes: int = Field(
        default=1 << 30, description="Maximum video request body size (1 GiB)", ge=1
    )

    allowed_thumbnail_types: list[str] = Field(
        default=["image/jpeg", "image/png"],
        description="Content types accepted for thumbnails",
    )

    allowed_video_type: str = Field(
        default="video/mp4", description="The single content type accepted for videos"
    )

    upload_temp_dir: str | None = Field(
        default=None, description="Directory for upload temp files (system default if unset)"
    )

    # =========================================================================
    # Media Tool Settings
    # =========================================================================

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    media_tool_concurrency: int = Field(
        default=4, description="Maximum concurrent ffprobe/ffmpeg processes", ge=1
    )

    media_tool_timeout_seconds: float | None = Field(
        default=None, description="Optional timeout for a single media tool run"
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only shared-secret algorithms make sense for a shared secret."""
        valid_algorithms = {"HS256", "HS384", "HS512"}
        if v.upper() not in valid_algorithms:
            raise ValueError(
                f"Invalid jwt_algorithm '{v}'. Must be one of: {', '.join(valid_algorithms)}"
            )
        return v.upper()

    @field_validator("thumbnail_storage")
    @classmethod
    def validate_thumbnail_storage(cls, v: str) -> str:
        valid = {THUMBNAIL_STORAGE_INLINE, THUMBNAIL_STORAGE_REGISTRY, THUMBNAIL_STORAGE_OBJECT}
        normalized = v.lower()
        if normalized not in valid:
            raise ValueError(
                f"Invalid thumbnail_storage '{v}'. Must be one of: {', '.join(sorted(valid))}"
            )
        return normalized

    @field_validator("s3_url_mode")
    @classmethod
    def validate_s3_url_mode(cls, v: str) -> str:
        valid = {S3_URL_MODE_PUBLIC, S3_URL_MODE_PRESIGNED, S3_URL_MODE_PROXY}
        normalized = v.lower()
        if normalized not in valid:
            raise ValueError(f"Invalid s3_url_mode '{v}'. Must be one of: {', '.join(sorted(valid))}")
        return normalized

    @field_validator("cors_origins", "allowed_thumbnail_types", mode="before")
    @classmethod
    def split_comma_separated(cls, v: str | list[str]) -> list[str]:
        """Parse list settings from a comma-separated string if provided as string."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def base_url(self) -> str:
        """Base URL used when building URLs that point back at this server."""
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The @lru_cache decorator ensures that the Settings object is created only
    once on first call, and subsequent calls return the cached instance without
    re-reading environment variables or .env files.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()
