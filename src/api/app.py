# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the Secretaria
Online API.

Run with:
    uvicorn src.api.app:create_app --factory --host 0.0.0.0 --port 3000
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.infrastructure.background import (
    setup_dramatiq,
    shutdown_dramatiq,
    start_scheduler,
    stop_scheduler,
)
from src.infrastructure.database.connection import (
    DatabaseError,
    close_database,
    get_session,
    init_database,
)
from src.infrastructure.database.migrations.runner import run_migrations
from src.infrastructure.database.seeds import seed_catalog
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes and cleans up:
    - Database connections, migrations and catalog seed
    - Dramatiq broker
    - APScheduler for the reenrollment sweep and contract regeneration

    Database failures abort startup; broker and scheduler failures are
    logged and the API keeps serving.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    logger.info(
        "Starting Secretaria Online API: environment=%s, debug=%s",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    await init_database(settings)
    logger.info("Database connections initialized")

    if settings.api.run_migrations:
        applied = await run_migrations(settings.db.url)
        logger.info("Applied %d migrations", len(applied))

    if settings.api.seed_catalog:
        try:
            async with get_session() as session:
                await seed_catalog(session)
        except (DatabaseError, SQLAlchemyError) as e:
            logger.warning("Failed to seed catalog: %s", str(e))

    try:
        setup_dramatiq()
        logger.info("Dramatiq broker initialized")
    except Exception as e:
        logger.warning("Failed to setup Dramatiq: %s", str(e))

    if settings.worker.scheduler_enabled:
        try:
            await start_scheduler()
            logger.info("Scheduler started")
        except Exception as e:
            logger.warning("Failed to start scheduler: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await stop_scheduler()
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.warning("Error stopping scheduler: %s", str(e))

    try:
        shutdown_dramatiq()
        logger.info("Dramatiq broker shutdown")
    except Exception as e:
        logger.warning("Error shutting down Dramatiq: %s", str(e))

    await close_database()
    logger.info("Shutting down Secretaria Online API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Secretaria Online API",
        description="Academic enrollment lifecycle: documents, contracts, reenrollment and grades",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.limiter = limiter

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    # Auth middleware - validates JWT tokens
    app.add_middleware(AuthMiddleware)

    # CORS middleware (added last so it runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
