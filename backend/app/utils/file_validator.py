"""
Upload Validation Utilities for Tubely

Helpers shared by the upload intake and storage placement steps:
- Content-type parsing (parameters such as ``; codecs=...`` are stripped)
- Acceptance checks for thumbnail and video content types
- Asset path generation for object-storage keys
- Human-readable size formatting for log and error messages
"""

import secrets

from python_multipart.multipart import parse_options_header

from app.core.errors import BadRequestError


# =============================================================================
# CONSTANTS
# =============================================================================

# Bytes in a kilobyte (for size conversions)
BYTES_PER_KB: int = 1024

# Random bytes behind every generated asset path
ASSET_PATH_RANDOM_BYTES: int = 32

# Extension used when a content type has no usable subtype
DEFAULT_EXTENSION: str = ".bin"


# =============================================================================
# CONTENT TYPES
# =============================================================================


def parse_media_type(content_type: str | None) -> str:
    """
    Return the bare, lower-cased media type from a Content-Type value.

    Args:
        content_type: Header value, e.g. ``"video/mp4; codecs=avc1"``.

    Returns:
        str: ``"video/mp4"``; an empty string when the header is absent.

    Example:
        >>> parse_media_type("Image/PNG; charset=binary")
        'image/png'
    """
    if not content_type:
        return ""
    media_type, _ = parse_options_header(content_type)
    return media_type.decode("latin-1").strip().lower()


def validate_thumbnail_type(content_type: str | None, allowed: list[str]) -> str:
    """
    Check a thumbnail's declared content type against the accepted list.

    Raises:
        BadRequestError: If the type is missing or not accepted.
    """
    media_type = parse_media_type(content_type)
    if not media_type:
        raise BadRequestError("Missing Content-Type for thumbnail")
    if media_type not in {a.lower() for a in allowed}:
        raise BadRequestError(
            f"Invalid file type '{media_type}'. Allowed types: {', '.join(allowed)}"
        )
    return media_type


def validate_video_type(content_type: str | None, allowed: str) -> str:
    """
    Check a video's declared content type equals the single accepted value.

    Raises:
        BadRequestError: For any other value, including a missing header.
    """
    media_type = parse_media_type(content_type)
    if media_type != allowed.lower():
        raise BadRequestError(f"Invalid file type '{media_type or 'unknown'}'. Only {allowed} is allowed")
    return media_type


# =============================================================================
# ASSET PATHS
# =============================================================================


def media_type_to_extension(media_type: str) -> str:
    """
    Map a media type to a file extension using its subtype.

    Example:
        >>> media_type_to_extension("image/png")
        '.png'
        >>> media_type_to_extension("garbage")
        '.bin'
    """
    parts = media_type.split("/")
    if len(parts) != 2 or not parts[1]:
        return DEFAULT_EXTENSION
    return "." + parts[1]


def generate_asset_path(media_type: str) -> str:
    """
    Build a random, URL-safe object name for an uploaded asset.

    32 random bytes encoded as unpadded URL-safe base64, followed by the
    extension for ``media_type``.
    """
    return secrets.token_urlsafe(ASSET_PATH_RANDOM_BYTES) + media_type_to_extension(media_type)


# =============================================================================
# FORMATTING
# =============================================================================


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count with binary units.

    Example:
        >>> format_file_size(10 << 20)
        '10.0 MB'
    """
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < BYTES_PER_KB or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= BYTES_PER_KB
    return f"{size:.1f} GB"
