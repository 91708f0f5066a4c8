# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

- AuthMiddleware: JWT authentication.
- limiter: slowapi rate limiter shared by routers.
"""

from src.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from src.api.middleware.rate_limit import limiter, rate_limit, rate_limit_exceeded_handler

__all__ = [
    "AuthMiddleware",
    "CurrentUser",
    "get_current_user",
    "limiter",
    "rate_limit",
    "rate_limit_exceeded_handler",
]
