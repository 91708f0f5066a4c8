# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reenrollment API endpoints.

- POST /sweep - Run the term rollover sweep now (admin)

The same sweep runs daily from the scheduler.
"""

import logging

from fastapi import APIRouter, Request

from src.api.dependencies import AdminUser, DbSession
from src.api.errors import to_http_error
from src.api.middleware.rate_limit import RATE_LIMIT_EXPENSIVE, rate_limit
from src.domains.contract import ContractServiceError
from src.domains.reenrollment import ReenrollmentService, ReenrollmentServiceError
from src.models.reenrollment import SweepRequest, SweepResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Run reenrollment sweep",
    description=(
        "Create next-term contracts for every active enrollment and mark them "
        "awaiting renewal. Re-running for the same term is a no-op."
    ),
)
@rate_limit(RATE_LIMIT_EXPENSIVE)
async def run_sweep(
    request: Request,
    current_user: AdminUser,
    db: DbSession,
    data: SweepRequest | None = None,
) -> SweepResponse:
    """Run the reenrollment sweep.

    Raises:
        HTTPException: 404 when the template is unknown or none is active,
            422 for an invalid term.
    """
    data = data or SweepRequest()
    logger.info(
        "Manual reenrollment sweep: term=%s/%s by %s",
        data.semester,
        data.year,
        current_user.id,
    )

    try:
        return await ReenrollmentService(db).run_sweep(
            semester=data.semester,
            year=data.year,
            template_id=data.template_id,
            triggered_by=current_user.id,
        )
    except (ReenrollmentServiceError, ContractServiceError) as e:
        raise to_http_error(e)
