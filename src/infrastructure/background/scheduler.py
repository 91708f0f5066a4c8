# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic Dramatiq tasks.

Uses APScheduler for cron-style job scheduling integrated with Dramatiq
actors. The scheduler only enqueues messages; the work runs in workers.

Example:
    from src.infrastructure.background.scheduler import get_scheduler

    scheduler = get_scheduler()
    await scheduler.start()

    # Add cron job (runs daily at 03:00)
    scheduler.add_cron_task(
        name="Daily Reenrollment Sweep",
        actor_name="reenrollment_sweep_job",
        cron_expression="0 3 * * *",
    )
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """Configuration for a scheduled Dramatiq task.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        actor_name: Name of the Dramatiq actor to call.
        cron_expression: Five-field cron expression.
        args: Positional arguments for the actor.
        kwargs: Keyword arguments for the actor.
        enabled: Whether the task is enabled.
        last_run: Last run timestamp.
        run_count: Total number of runs.
        error_count: Number of failed sends.
    """

    name: str
    actor_name: str
    cron_expression: str
    args: tuple = field(default_factory=tuple)
    kwargs: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    enabled: bool = True
    last_run: datetime | None = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "actor_name": self.actor_name,
            "cron_expression": self.cron_expression,
            "enabled": self.enabled,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


def parse_cron(cron_expression: str) -> CronTrigger:
    """Build a UTC CronTrigger from a five-field expression.

    Raises:
        ValueError: If the expression does not have five fields.
    """
    parts = cron_expression.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression: {cron_expression}")

    return CronTrigger(
        minute=parts[0],
        hour=parts[1],
        day=parts[2],
        month=parts[3],
        day_of_week=parts[4],
        timezone=timezone.utc,
    )


class DramatiqScheduler:
    """Scheduler for periodic Dramatiq task execution.

    Attributes:
        _scheduler: APScheduler instance.
        _tasks: Dictionary of scheduled tasks.
        _running: Whether scheduler is running.
    """

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def _get_actor(self, actor_name: str) -> Callable[..., Any] | None:
        """Get a Dramatiq actor by name from the tasks package."""
        from src.infrastructure.background import tasks

        return getattr(tasks, actor_name, None)

    def add_cron_task(
        self,
        name: str,
        actor_name: str,
        cron_expression: str,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        enabled: bool = True,
    ) -> ScheduledTask:
        """Add a cron-scheduled task.

        Args:
            name: Task name.
            actor_name: Dramatiq actor to call.
            cron_expression: Cron expression (minute hour day month weekday).
            args: Actor arguments.
            kwargs: Actor keyword arguments.
            enabled: Whether task is enabled.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the cron expression is invalid.
        """
        trigger = parse_cron(cron_expression)

        task = ScheduledTask(
            name=name,
            actor_name=actor_name,
            cron_expression=cron_expression,
            args=args,
            kwargs=kwargs or {},
            enabled=enabled,
        )

        self._tasks[task.id] = task

        if self._scheduler and enabled:
            self._scheduler.add_job(
                self._execute_task,
                trigger=trigger,
                args=[task.id],
                id=task.id,
                name=name,
            )

        logger.info("Added cron task: %s (%s)", name, cron_expression)
        return task

    async def _execute_task(self, task_id: str) -> None:
        """Send a scheduled task's message.

        Args:
            task_id: ID of the task to execute.
        """
        task = self._tasks.get(task_id)
        if not task or not task.enabled:
            return

        logger.debug("Executing scheduled task: %s", task.name)

        actor = self._get_actor(task.actor_name)
        if actor is None:
            task.error_count += 1
            logger.error("Scheduled task %s failed: actor not found: %s", task.name, task.actor_name)
            return

        try:
            actor.send(*task.args, **task.kwargs)
        except Exception as e:
            task.error_count += 1
            logger.error("Scheduled task %s failed: %s", task.name, str(e))
            return

        task.last_run = datetime.now(timezone.utc)
        task.run_count += 1
        logger.debug("Scheduled task %s sent to queue", task.name)

    def remove_task(self, task_id: str) -> bool:
        """Remove a scheduled task.

        Returns:
            True if removed.
        """
        if task_id not in self._tasks:
            return False

        if self._scheduler:
            try:
                self._scheduler.remove_job(task_id)
            except JobLookupError:
                logger.debug("Job %s was not scheduled", task_id)

        del self._tasks[task_id]
        logger.info("Removed scheduled task: %s", task_id)
        return True

    def disable_task(self, task_id: str) -> bool:
        task = self._tasks.get(task_id)
        if not task:
            return False

        task.enabled = False
        if self._scheduler:
            try:
                self._scheduler.pause_job(task_id)
            except JobLookupError:
                logger.debug("Job %s was not scheduled", task_id)

        return True

    def get_task(self, task_id: str) -> ScheduledTask | None:
        return self._tasks.get(task_id)

    def list_tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._scheduler.start()
        self._running = True

        logger.info("Dramatiq scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Dramatiq scheduler stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "is_running": self._running,
            "task_count": len(self._tasks),
            "enabled_count": sum(1 for t in self._tasks.values() if t.enabled),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }


_scheduler: DramatiqScheduler | None = None


def get_scheduler() -> DramatiqScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = DramatiqScheduler()
    return _scheduler


async def start_scheduler() -> DramatiqScheduler:
    """Start the scheduler and register the enrollment jobs.

    Returns:
        Started scheduler instance.
    """
    settings = get_settings()
    scheduler = get_scheduler()
    await scheduler.start()

    if settings.reenrollment.sweep_enabled:
        scheduler.add_cron_task(
            name="Daily Reenrollment Sweep",
            actor_name="reenrollment_sweep_job",
            cron_expression=settings.reenrollment.sweep_cron,
        )

    scheduler.add_cron_task(
        name="Contract Document Regeneration",
        actor_name="regenerate_contract_documents_job",
        cron_expression=settings.contract.regeneration_cron,
        kwargs={"limit": settings.contract.regeneration_batch_size},
    )

    logger.info("Registered %d scheduled tasks", len(scheduler.list_tasks()))
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
