# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

Example:
    from src.infrastructure.database import get_session

    async with get_session() as session:
        result = await session.execute(select(Enrollment))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    get_worker_session,
    init_database,
)

__all__ = [
    "DatabaseError",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "get_worker_session",
    "init_database",
]
