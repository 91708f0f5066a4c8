# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dramatiq broker configuration.

This module provides background task processing with:
- Redis broker for message persistence and durability
- Result backend for task results
- Log context propagation from the triggering request

Example:
    from src.infrastructure.background.broker import setup_dramatiq, get_broker

    # Setup at application startup
    broker = setup_dramatiq()

    # Get broker for manual operations
    broker = get_broker()
"""

import logging
import os

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker
from dramatiq.results import Results
from dramatiq.results.backends.redis import RedisBackend

from src.core.config import get_settings
from src.infrastructure.background.middleware import LogContextMiddleware

logger = logging.getLogger(__name__)


class Queues:
    """Queue name constants for task routing."""

    DEFAULT = "default"
    ENROLLMENT = "enrollment"
    CONTRACTS = "contracts"


class Priority:
    """Task priority levels (lower number = higher priority)."""

    HIGH = 1
    NORMAL = 3
    LOW = 5


class BrokerManager:
    """Manages Dramatiq broker lifecycle.

    Attributes:
        _broker: The Dramatiq broker instance.
        _results_backend: The results backend instance.
        _initialized: Whether the broker has been initialized.
    """

    def __init__(self) -> None:
        self._broker: dramatiq.Broker | None = None
        self._results_backend: RedisBackend | None = None
        self._initialized = False

    @property
    def broker(self) -> dramatiq.Broker:
        """Get the configured broker.

        Raises:
            RuntimeError: If broker not initialized.
        """
        if self._broker is None:
            raise RuntimeError("Broker not initialized. Call setup() first.")
        return self._broker

    def setup(self) -> dramatiq.Broker:
        """Setup and configure the Dramatiq broker.

        Uses a StubBroker when DRAMATIQ_TEST_MODE=true.

        Returns:
            Configured broker instance.
        """
        if self._initialized:
            return self._broker  # type: ignore

        logger.info("Setting up Dramatiq broker...")

        use_stub = os.getenv("DRAMATIQ_TEST_MODE", "false").lower() == "true"

        if use_stub:
            self._broker = StubBroker()
            self._broker.add_middleware(LogContextMiddleware())
            self._broker.emit_after("process_boot")
            logger.info("Using StubBroker for testing")
        else:
            redis_url = get_settings().redis.url

            self._results_backend = RedisBackend(url=redis_url)
            self._broker = RedisBroker(url=redis_url)
            self._broker.add_middleware(Results(backend=self._results_backend))
            self._broker.add_middleware(LogContextMiddleware())

            logger.info("Redis broker initialized (url: %s)", redis_url.split("@")[-1])

        dramatiq.set_broker(self._broker)
        self._initialized = True

        return self._broker

    def shutdown(self) -> None:
        """Shutdown the broker."""
        if self._broker is not None:
            self._broker.close()
            self._broker = None
            self._initialized = False
            logger.info("Broker shutdown complete")


_broker_manager: BrokerManager | None = None


def get_broker_manager() -> BrokerManager:
    """Get the singleton broker manager."""
    global _broker_manager
    if _broker_manager is None:
        _broker_manager = BrokerManager()
    return _broker_manager


def setup_dramatiq() -> dramatiq.Broker:
    """Setup Dramatiq with configuration from settings.

    This should be called once at startup, before task modules are imported.

    Returns:
        Configured broker.
    """
    return get_broker_manager().setup()


def get_broker() -> dramatiq.Broker:
    """Get the current Dramatiq broker.

    Raises:
        RuntimeError: If broker not initialized.
    """
    return get_broker_manager().broker


def shutdown_dramatiq() -> None:
    """Shutdown the Dramatiq broker."""
    global _broker_manager
    if _broker_manager is not None:
        _broker_manager.shutdown()
        _broker_manager = None
