# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Helpers shared by the Dramatiq actors.

Actors are synchronous; the domain services are async. Each worker thread
keeps one event loop for its whole life and runs every coroutine on it,
so the thread's SQLAlchemy engine (see connection.get_worker_session)
stays bound to a live loop.
"""

import asyncio
import logging
import threading
from typing import Any, Coroutine, TypeVar

from src.infrastructure.database.connection import _clear_thread_db_connections

logger = logging.getLogger(__name__)

T = TypeVar("T")

_loops = threading.local()


def _thread_loop() -> asyncio.AbstractEventLoop:
    """Return this thread's event loop, creating it on first use.

    A fresh loop invalidates the thread's cached engine.
    """
    loop: asyncio.AbstractEventLoop | None = getattr(_loops, "loop", None)
    if loop is not None and not loop.is_closed():
        return loop

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _loops.loop = loop
    _clear_thread_db_connections()

    logger.debug("Created event loop for worker thread %s", threading.current_thread().name)
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on the worker thread's loop.

    Args:
        coro: Coroutine to run.

    Returns:
        Result of the coroutine.

    Example:
        @dramatiq.actor
        def render_contract_document(contract_id: str):
            async def _render():
                async with get_worker_session() as session:
                    return await ContractService(session).ensure_document(contract_id)
            return run_async(_render())
    """
    return _thread_loop().run_until_complete(coro)
