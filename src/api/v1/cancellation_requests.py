# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cancellation request review endpoints (admin).

Students submit requests through /enrollments/{id}/cancellation-requests.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query

from src.api.dependencies import AdminUser, DbSession
from src.api.errors import to_http_error
from src.domains.cancellation import CancellationService, CancellationServiceError
from src.domains.enrollment import EnrollmentServiceError
from src.models.cancellation import (
    CancellationListResponse,
    CancellationResponse,
    CancellationReviewRequest,
)
from src.models.common import CancellationStatus

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=CancellationListResponse,
    summary="List cancellation requests",
)
async def list_cancellation_requests(
    current_user: AdminUser,
    db: DbSession,
    status_filter: Annotated[CancellationStatus | None, Query(alias="status")] = None,
    student_id: Annotated[str | None, Query(description="Filter by student")] = None,
) -> CancellationListResponse:
    """List cancellation requests, newest first."""
    return await CancellationService(db).list_requests(
        status=status_filter.value if status_filter else None,
        student_id=student_id,
    )


@router.post(
    "/{request_id}/approve",
    response_model=CancellationResponse,
    summary="Approve cancellation",
    description="Approve the request and cancel the enrollment.",
)
async def approve_cancellation(
    request_id: str,
    current_user: AdminUser,
    db: DbSession,
    data: CancellationReviewRequest | None = None,
) -> CancellationResponse:
    """Approve a cancellation request.

    Raises:
        HTTPException: 404 if not found, 409 if already reviewed or the
            enrollment changed concurrently.
    """
    try:
        return await CancellationService(db).approve(
            request_id=request_id,
            reviewer_id=current_user.id,
            note=data.note if data else None,
        )
    except (CancellationServiceError, EnrollmentServiceError) as e:
        raise to_http_error(e)


@router.post(
    "/{request_id}/reject",
    response_model=CancellationResponse,
    summary="Reject cancellation",
)
async def reject_cancellation(
    request_id: str,
    data: CancellationReviewRequest,
    current_user: AdminUser,
    db: DbSession,
) -> CancellationResponse:
    """Reject a cancellation request. A note is required.

    Raises:
        HTTPException: 404 if not found, 409 if already reviewed,
            422 MISSING_REVIEW_NOTE.
    """
    try:
        return await CancellationService(db).reject(
            request_id=request_id,
            reviewer_id=current_user.id,
            note=data.note,
        )
    except CancellationServiceError as e:
        raise to_http_error(e)
