# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

Bearer tokens are issued by the identity layer; this package only decodes
them into a payload the API middleware turns into the current user.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "InvalidTokenError",
    "JWTError",
    "JWTManager",
    "TokenExpiredError",
    "TokenPayload",
]
