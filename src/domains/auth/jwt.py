# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module verifies bearer tokens using python-jose. Tokens are issued by
the identity layer; ``create_access_token`` exists for service-to-service
calls and tests.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(user_id="user-123", user_type="admin")
    >>> claims = jwt_manager.decode_token(token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, ValidationError

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (user ID).
        type: Token type.
        user_type: Account role (student, teacher, admin).
        email: Optional email for logging and display.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    type: Literal["access"] = "access"
    user_type: Literal["student", "teacher", "admin"]
    email: str | None = None
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def create_access_token(
        self,
        user_id: str,
        user_type: str,
        email: str | None = None,
        expires_minutes: int | None = None,
    ) -> str:
        """Create an access token.

        Args:
            user_id: User identifier.
            user_type: Account role.
            email: Optional email claim.
            expires_minutes: Override for the configured lifetime.

        Returns:
            JWT access token string.
        """
        now = datetime.now(timezone.utc)
        lifetime = expires_minutes if expires_minutes is not None else self._settings.access_token_expire_minutes
        exp = now + timedelta(minutes=lifetime)

        payload = {
            "sub": str(user_id),
            "type": "access",
            "user_type": user_type,
            "email": email,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(
        self,
        token: str,
        expected_type: Literal["access"] | None = "access",
    ) -> TokenPayload:
        """Decode and validate a JWT token.

        Args:
            token: JWT token string.
            expected_type: Expected token type.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid, of the wrong type,
                or lacks required claims.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JoseJWTError as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        if expected_type and payload.get("type") != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token, got {payload.get('type')}")

        try:
            return TokenPayload(**payload)
        except ValidationError as e:
            logger.warning("Token claims invalid: %s", str(e))
            raise InvalidTokenError("Invalid token claims")
