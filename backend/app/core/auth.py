"""
Tubely Authentication Module

This module implements the identity check used by every protected route:

- Extracts the bearer token from the ``Authorization`` header
- Verifies the token's signature and expiry against the shared secret (HS256)
- Yields the owner identifier carried in the ``sub`` claim

Token issuance lives elsewhere; ``create_access_token`` is provided for local
tooling and tests so that they mint tokens exactly the way they are verified.

Usage:
    ```python
    from fastapi import Depends
    from app.core.auth import get_current_user_id

    @router.get("/protected")
    async def protected_route(user_id: str = Depends(get_current_user_id)):
        return {"user_id": user_id}
    ```
"""

import logging

from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from app.config import Settings, get_settings
from app.core.errors import UnauthenticatedError


# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Security Scheme
# =============================================================================

# auto_error=False: missing credentials are rejected by get_current_user_id
security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication.",
    auto_error=False,
)

BEARER_PREFIX = "bearer"


# =============================================================================
# Token Helpers
# =============================================================================


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract the token from a raw ``Authorization`` header value.

    Args:
        authorization: Header value, e.g. ``"Bearer eyJhbGciOi..."``.

    Returns:
        str: The token string.

    Raises:
        UnauthenticatedError: If the header is absent or not a bearer credential.
    """
    if not authorization:
        raise UnauthenticatedError("Couldn't find JWT")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != BEARER_PREFIX or not token or " " in token:
        raise UnauthenticatedError("Malformed authorization header")
    return token


def create_access_token(
    user_id: str,
    settings: Settings | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """
    Create an access token for the given user.

    Token claims:
    - iss: configured issuer (``tubely-access`` by default)
    - sub: user ID (subject)
    - iat: issued-at timestamp
    - exp: expiration timestamp

    Args:
        user_id: The user's unique identifier.
        settings: Optional Settings instance. If not provided, uses get_settings().
        expires_in: Optional lifetime; defaults to ``jwt_expiration_hours``.

    Returns:
        str: The encoded JWT.
    """
    if settings is None:
        settings = get_settings()

    now = datetime.now(UTC)
    expire = now + (expires_in or timedelta(hours=settings.jwt_expiration_hours))
    payload = {
        "iss": settings.jwt_issuer,
        "sub": user_id,
        "iat": now,
        "exp": expire,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    logger.debug("Created access token for user: %s (expires: %s)", user_id, expire.isoformat())
    return token


def validate_jwt(token: str, settings: Settings) -> str:
    """
    Verify a token and return the owner identifier it carries.

    Args:
        token: The JWT string.
        settings: Settings with the shared secret, algorithm and issuer.

    Returns:
        str: The ``sub`` claim.

    Raises:
        UnauthenticatedError: If the signature, expiry or issuer is invalid,
            or the token carries no subject.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except ExpiredSignatureError as e:
        logger.warning("Bearer token has expired")
        raise UnauthenticatedError("Token has expired") from e
    except JWTError as e:
        logger.warning("Bearer token validation failed: %s", str(e))
        raise UnauthenticatedError("Couldn't validate JWT") from e

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("Token missing 'sub' claim")
        raise UnauthenticatedError("Invalid token: missing user identifier")
    return str(user_id)


# =============================================================================
# Authentication Dependencies
# =============================================================================


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    FastAPI dependency performing the identity check.

    Args:
        credentials: Credentials parsed by HTTPBearer (None when absent or
            not a bearer scheme).
        settings: Application settings (injected via FastAPI dependency).

    Returns:
        str: The authenticated owner identifier.

    Raises:
        UnauthenticatedError: With 401 status if the token is missing or invalid.
    """
    if credentials is None:
        raise UnauthenticatedError("Couldn't find JWT")

    token = get_bearer_token(f"{credentials.scheme} {credentials.credentials}")
    return validate_jwt(token, settings)
