# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as aioredis
from fastapi import APIRouter
from pydantic import BaseModel, Field
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.core.config import get_settings
from src.infrastructure.background.scheduler import get_scheduler
from src.infrastructure.database.connection import DatabaseError, get_engine

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class HealthResponse(BaseModel):
    """Liveness response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database() -> ComponentHealth:
    """Check database connection."""
    start = time.time()
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, DatabaseError) as e:
        logger.error("Database health check failed: %s", e)
        return ComponentHealth(status="unhealthy", message=str(e))

    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


async def check_redis() -> ComponentHealth:
    """Check Redis connection used by the task broker and rate limiter."""
    settings = get_settings()
    start = time.time()
    client = aioredis.Redis.from_url(settings.redis.url, socket_connect_timeout=2)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error("Redis health check failed: %s", e)
        return ComponentHealth(status="unhealthy", message=str(e))
    finally:
        await client.aclose()

    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report that the API process is up."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    The database is required. Redis is reported but only required
    outside test mode, where the broker is a stub.

    Returns:
        ReadinessResponse with individual check results.
    """
    settings = get_settings()
    checks: dict[str, Any] = {}

    db_health = await check_database()
    checks["database"] = db_health.model_dump(exclude_none=True)
    all_ready = db_health.status == "healthy"

    if settings.environment != "test":
        redis_health = await check_redis()
        checks["redis"] = redis_health.model_dump(exclude_none=True)
        if redis_health.status != "healthy":
            all_ready = False

    scheduler = get_scheduler()
    if scheduler.is_running:
        stats = scheduler.get_stats()
        checks["scheduler"] = {
            "status": "healthy",
            "task_count": stats["task_count"],
            "total_errors": stats["total_errors"],
        }

    return ReadinessResponse(ready=all_ready, checks=checks)
