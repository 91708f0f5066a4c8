# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token utilities.

Tests the JWTManager class and token operations.
"""

import time
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from jose import jwt
from pydantic import SecretStr

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

SECRET = "test-secret-key-for-jwt-testing"


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr(SECRET)
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_create_and_decode_access_token(self, jwt_manager: JWTManager) -> None:
        user_id = str(uuid4())

        token = jwt_manager.create_access_token(user_id=user_id, user_type="admin", email="a@example.com")
        payload = jwt_manager.decode_token(token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == user_id
        assert payload.user_type == "admin"
        assert payload.email == "a@example.com"
        assert payload.type == "access"
        assert payload.exp > payload.iat

    def test_tokens_have_unique_jti(self, jwt_manager: JWTManager) -> None:
        first = jwt_manager.decode_token(jwt_manager.create_access_token("u1", "student"))
        second = jwt_manager.decode_token(jwt_manager.create_access_token("u1", "student"))

        assert first.jti != second.jti

    def test_expired_token(self, jwt_manager: JWTManager) -> None:
        token = jwt_manager.create_access_token("u1", "student", expires_minutes=-1)

        with pytest.raises(TokenExpiredError):
            jwt_manager.decode_token(token)

    def test_wrong_signature(self, jwt_manager: JWTManager) -> None:
        token = jwt.encode(
            {"sub": "u1", "type": "access", "user_type": "student", "exp": int(time.time()) + 60},
            "another-secret",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_malformed_token(self, jwt_manager: JWTManager) -> None:
        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token("not-a-jwt")

    def test_wrong_token_type(self, jwt_manager: JWTManager) -> None:
        now = int(time.time())
        token = jwt.encode(
            {"sub": "u1", "type": "refresh", "user_type": "student", "exp": now + 60, "iat": now, "jti": "x"},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_missing_user_type(self, jwt_manager: JWTManager) -> None:
        now = int(time.time())
        token = jwt.encode(
            {"sub": "u1", "type": "access", "exp": now + 60, "iat": now, "jti": "x"},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_unknown_user_type(self, jwt_manager: JWTManager) -> None:
        token = jwt_manager.create_access_token("u1", "parent")

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)
