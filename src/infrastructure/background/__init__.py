# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure.

Dramatiq actors run the reenrollment sweep and contract rendering;
APScheduler sends them on cron schedules.

Quick Start:
    from src.infrastructure.background import setup_dramatiq, start_scheduler

    setup_dramatiq()
    await start_scheduler()

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4

Task actors are imported from ``tasks`` directly; importing them here
would configure the broker as a side effect.
"""

from src.infrastructure.background.broker import (
    BrokerManager,
    Priority,
    Queues,
    get_broker,
    get_broker_manager,
    setup_dramatiq,
    shutdown_dramatiq,
)
from src.infrastructure.background.middleware import (
    LogContextMiddleware,
    get_triggered_by,
    reset_triggered_by,
    set_triggered_by,
)
from src.infrastructure.background.scheduler import (
    DramatiqScheduler,
    ScheduledTask,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "BrokerManager",
    "Priority",
    "Queues",
    "get_broker",
    "get_broker_manager",
    "setup_dramatiq",
    "shutdown_dramatiq",
    "LogContextMiddleware",
    "get_triggered_by",
    "reset_triggered_by",
    "set_triggered_by",
    "DramatiqScheduler",
    "ScheduledTask",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
