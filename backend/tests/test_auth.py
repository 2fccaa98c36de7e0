"""
Tubely Authentication Test Suite

Tests for backend/app/core/auth.py covering:
- Bearer token extraction from the Authorization header
- HS256 token validation (signature, expiry, issuer, subject)
- The get_current_user_id FastAPI dependency
- 401 responses with the JSON error envelope on protected routes
"""

from datetime import UTC, datetime, timedelta

import pytest

from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from app.config import Settings
from app.core.auth import (
    create_access_token,
    get_bearer_token,
    get_current_user_id,
    validate_jwt,
)
from app.core.errors import UnauthenticatedError


# =============================================================================
# Bearer Token Extraction
# =============================================================================


class TestGetBearerToken:
    """Tests for parsing the Authorization header."""

    def test_extracts_token(self) -> None:
        assert get_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self) -> None:
        assert get_bearer_token("bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header: str | None) -> None:
        with pytest.raises(UnauthenticatedError) as exc_info:
            get_bearer_token(header)
        assert exc_info.value.message == "Couldn't find JWT"

    @pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Bearer", "Bearer ", "Bearer a b", "abc.def.ghi"])
    def test_malformed_header(self, header: str) -> None:
        with pytest.raises(UnauthenticatedError):
            get_bearer_token(header)


# =============================================================================
# Token Validation
# =============================================================================


class TestValidateJWT:
    """Tests for signature, expiry and claim checks."""

    def test_valid_token_returns_subject(self, test_settings: Settings) -> None:
        token = create_access_token("user-123", test_settings)
        assert validate_jwt(token, test_settings) == "user-123"

    def test_expired_token(self, test_settings: Settings) -> None:
        token = create_access_token("user-123", test_settings, expires_in=timedelta(seconds=-10))
        with pytest.raises(UnauthenticatedError) as exc_info:
            validate_jwt(token, test_settings)
        assert exc_info.value.message == "Token has expired"

    def test_wrong_secret(self, test_settings: Settings, make_settings) -> None:
        other = make_settings(jwt_secret="another-secret-key-that-is-at-least-32-chars")
        token = create_access_token("user-123", other)
        with pytest.raises(UnauthenticatedError) as exc_info:
            validate_jwt(token, test_settings)
        assert exc_info.value.message == "Couldn't validate JWT"

    def test_wrong_issuer(self, test_settings: Settings, make_settings) -> None:
        other = make_settings(jwt_issuer="someone-else")
        token = create_access_token("user-123", other)
        with pytest.raises(UnauthenticatedError):
            validate_jwt(token, test_settings)

    def test_garbage_token(self, test_settings: Settings) -> None:
        with pytest.raises(UnauthenticatedError):
            validate_jwt("not-a-jwt", test_settings)

    def test_missing_subject(self, test_settings: Settings) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {"iss": test_settings.jwt_issuer, "iat": now, "exp": now + timedelta(hours=1)},
            test_settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(UnauthenticatedError) as exc_info:
            validate_jwt(token, test_settings)
        assert "missing user identifier" in exc_info.value.message


# =============================================================================
# Dependency
# =============================================================================


class TestGetCurrentUserId:
    """Tests for the FastAPI identity dependency."""

    async def test_returns_user_id(self, test_settings: Settings) -> None:
        token = create_access_token("user-456", test_settings)
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        assert await get_current_user_id(credentials, test_settings) == "user-456"

    async def test_missing_credentials(self, test_settings: Settings) -> None:
        with pytest.raises(UnauthenticatedError):
            await get_current_user_id(None, test_settings)


class TestProtectedRoutes:
    """401 handling at the HTTP boundary."""

    def test_missing_token_returns_401_envelope(self, test_client, owned_video) -> None:
        response = test_client.post(
            f"/api/thumbnails/{owned_video.id}",
            files={"thumbnail": ("boots.png", b"png", "image/png")},
        )

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["error"] == "unauthenticated"
        assert body["status_code"] == 401

    def test_expired_token_returns_401(self, test_client, test_settings, owned_video, user_id) -> None:
        token = create_access_token(user_id, test_settings, expires_in=timedelta(seconds=-10))

        response = test_client.get(
            f"/api/videos/{owned_video.id}", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Token has expired"

    def test_non_bearer_scheme_returns_401(self, test_client, owned_video) -> None:
        response = test_client.get(
            f"/api/videos/{owned_video.id}", headers={"Authorization": "Basic dXNlcjpwYXNz"}
        )

        assert response.status_code == 401
