# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the cron scheduler."""

from datetime import timezone
from unittest.mock import MagicMock, patch

import pytest

from src.infrastructure.background.scheduler import DramatiqScheduler, ScheduledTask, parse_cron


class TestParseCron:
    """Tests for parse_cron."""

    def test_valid_expression(self):
        trigger = parse_cron("0 3 * * *")

        assert trigger.timezone == timezone.utc

    @pytest.mark.parametrize("expression", ["", "0 3 * *", "0 3 * * * *"])
    def test_wrong_field_count(self, expression):
        with pytest.raises(ValueError):
            parse_cron(expression)


class TestScheduledTask:
    def test_to_dict_before_first_run(self):
        task = ScheduledTask(name="Sweep", actor_name="reenrollment_sweep_job", cron_expression="0 3 * * *")

        data = task.to_dict()

        assert data["name"] == "Sweep"
        assert data["last_run"] is None
        assert data["run_count"] == 0
        assert data["enabled"] is True


class TestDramatiqScheduler:
    """Tests for task registration and execution."""

    def test_add_cron_task_registers_task(self):
        scheduler = DramatiqScheduler()

        task = scheduler.add_cron_task("Sweep", "reenrollment_sweep_job", "0 3 * * *")

        assert scheduler.get_task(task.id) is task
        assert scheduler.get_stats()["task_count"] == 1

    def test_add_cron_task_rejects_invalid_cron(self):
        scheduler = DramatiqScheduler()

        with pytest.raises(ValueError):
            scheduler.add_cron_task("Broken", "reenrollment_sweep_job", "nightly")

        assert scheduler.list_tasks() == []

    @pytest.mark.asyncio
    async def test_execute_sends_message(self):
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task("Sweep", "reenrollment_sweep_job", "0 3 * * *", kwargs={"dry_run": False})
        actor = MagicMock()

        with patch.object(scheduler, "_get_actor", return_value=actor):
            await scheduler._execute_task(task.id)

        actor.send.assert_called_once_with(dry_run=False)
        assert task.run_count == 1
        assert task.last_run is not None

    @pytest.mark.asyncio
    async def test_execute_missing_actor_counts_error(self):
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task("Sweep", "missing_actor", "0 3 * * *")

        with patch.object(scheduler, "_get_actor", return_value=None):
            await scheduler._execute_task(task.id)

        assert task.error_count == 1
        assert task.run_count == 0

    @pytest.mark.asyncio
    async def test_disabled_task_is_not_sent(self):
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task("Sweep", "reenrollment_sweep_job", "0 3 * * *")
        scheduler.disable_task(task.id)
        actor = MagicMock()

        with patch.object(scheduler, "_get_actor", return_value=actor):
            await scheduler._execute_task(task.id)

        actor.send.assert_not_called()

    def test_remove_task(self):
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task("Sweep", "reenrollment_sweep_job", "0 3 * * *")

        assert scheduler.remove_task(task.id) is True
        assert scheduler.remove_task(task.id) is False
