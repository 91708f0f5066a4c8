# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment lifecycle actors.

Actors:
    - reenrollment_sweep_job: Term rollover, sent daily by the scheduler
    - regenerate_contract_documents_job: Re-renders contracts missing a document
    - render_contract_document: Renders one contract's document
"""

import logging
from typing import Any

import dramatiq

from src.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from src.infrastructure.background.middleware import get_triggered_by
from src.infrastructure.background.tasks.base import run_async
from src.infrastructure.database.connection import get_worker_session

setup_dramatiq()

logger = logging.getLogger(__name__)


@dramatiq.actor(
    queue_name=Queues.ENROLLMENT,
    max_retries=0,
    time_limit=1800000,  # 30 minutes
    priority=Priority.NORMAL,
)
def reenrollment_sweep_job(
    semester: int | None = None,
    year: int | None = None,
    template_id: str | None = None,
) -> dict[str, Any]:
    """Run the reenrollment sweep for a term.

    Re-running for the same term is a no-op, so the job is not retried;
    the next scheduled run picks up anything left behind.

    Args:
        semester: Target semester, defaults to the current one.
        year: Target year, defaults to the current one.
        template_id: Contract template, defaults to the first active one.

    Returns:
        Sweep summary.
    """
    logger.info("Reenrollment sweep job triggered")

    async def _execute() -> dict[str, Any]:
        from src.domains.reenrollment import ReenrollmentService

        async with get_worker_session() as session:
            result = await ReenrollmentService(session).run_sweep(
                semester=semester,
                year=year,
                template_id=template_id,
                triggered_by=get_triggered_by(),
            )
            return result.model_dump(mode="json")

    try:
        result = run_async(_execute())
        logger.info(
            "Reenrollment sweep job completed: term=%s/%s, renewed=%d, failed=%d",
            result["semester"],
            result["year"],
            result["success"],
            result["failed"],
        )
        return result
    except Exception as e:
        logger.error("Reenrollment sweep job failed: %s", e, exc_info=True)
        return {"status": "failed", "error": str(e)}


@dramatiq.actor(
    queue_name=Queues.CONTRACTS,
    max_retries=1,
    time_limit=900000,  # 15 minutes
    priority=Priority.LOW,
)
def regenerate_contract_documents_job(limit: int = 100) -> dict[str, Any]:
    """Re-render contracts whose document reference is missing.

    Args:
        limit: Maximum contracts processed in this run.

    Returns:
        Batch summary.
    """
    logger.info("Contract document regeneration job triggered")

    async def _execute() -> dict[str, Any]:
        from src.domains.contract import ContractService

        async with get_worker_session() as session:
            result = await ContractService(session).regenerate_missing_documents(limit=limit)
            return result.model_dump(mode="json")

    try:
        result = run_async(_execute())
        logger.info(
            "Contract document regeneration completed: success=%d, failed=%d",
            result["success"],
            result["failed"],
        )
        return result
    except Exception as e:
        logger.error("Contract document regeneration failed: %s", e, exc_info=True)
        return {"status": "failed", "error": str(e)}


@dramatiq.actor(
    queue_name=Queues.CONTRACTS,
    max_retries=3,
    min_backoff=30000,
    time_limit=120000,
    priority=Priority.HIGH,
)
def render_contract_document(contract_id: str) -> dict[str, Any]:
    """Render one contract's document if it is missing.

    Raising lets Dramatiq retry with backoff.

    Args:
        contract_id: Contract identifier.

    Returns:
        The document reference.
    """

    async def _execute() -> dict[str, Any]:
        from src.domains.contract import ContractService

        async with get_worker_session() as session:
            document = await ContractService(session).ensure_document(contract_id)
            return document.model_dump(mode="json")

    result = run_async(_execute())
    logger.info("Rendered contract document: contract=%s", contract_id)
    return result
