# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

Dependencies are used to:
- Get database sessions
- Get authenticated users and enforce roles

Example:
    @router.get("/enrollments")
    async def list_enrollments(
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(require_auth),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.infrastructure.database.connection import get_sessionmaker

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request.

    Services commit explicitly; anything left uncommitted when the
    request ends is rolled back when the session closes.

    Yields:
        AsyncSession for the request.
    """
    async with get_sessionmaker()() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "NOT_AUTHENTICATED", "message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require admin user.

    Raises:
        HTTPException: If not authenticated or not admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "ADMIN_REQUIRED", "message": "Admin access required"},
        )
    return user


def require_teacher_or_admin(request: Request) -> CurrentUser:
    """Require teacher or admin user.

    Raises:
        HTTPException: If not teacher or admin.
    """
    user = require_auth(request)
    if not (user.is_teacher or user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "TEACHER_OR_ADMIN_REQUIRED", "message": "Teacher or admin access required"},
        )
    return user


def ensure_owner_or_admin(current_user: CurrentUser, owner_id: str) -> None:
    """Reject access to another user's resource unless the caller is an admin.

    Raises:
        HTTPException: 403 when the caller is neither owner nor admin.
    """
    if not current_user.can_access(owner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "ACCESS_DENIED", "message": "Access denied to this resource"},
        )


# Type aliases for cleaner endpoint signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
AuthUser = Annotated[CurrentUser, Depends(require_auth)]
AdminUser = Annotated[CurrentUser, Depends(require_admin)]
TeacherOrAdmin = Annotated[CurrentUser, Depends(require_teacher_or_admin)]
