# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluation grading API endpoints.

- POST /{evaluation_id}/grades/batch - Submit a batch of grades
- POST /{evaluation_id}/grades/legacy-import - Import legacy grades (admin)
- GET /{evaluation_id}/grades - List grades

Batch status codes: 201 when every item applied, 207 on partial
failure, 422 when nothing applied. Item failures never abort the batch.
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import AdminUser, DbSession, TeacherOrAdmin
from src.api.errors import to_http_error
from src.api.middleware.auth import CurrentUser
from src.domains.grading import GradingService, GradingServiceError
from src.models.grading import GradeBatchRequest, GradeBatchResponse, GradeListResponse

logger = logging.getLogger(__name__)

router = APIRouter()

_BATCH_RESPONSES = {
    207: {"model": GradeBatchResponse, "description": "Some items failed"},
    422: {"description": "Every item failed, or the request is invalid"},
}


def batch_status_code(result: GradeBatchResponse) -> int:
    """Pick the HTTP status for a batch result."""
    if result.failed == 0:
        return status.HTTP_201_CREATED
    if result.success == 0:
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_207_MULTI_STATUS


async def _submit(
    db: AsyncSession,
    evaluation_id: str,
    data: GradeBatchRequest,
    current_user: CurrentUser,
    legacy_import: bool,
) -> JSONResponse:
    logger.info(
        "Submitting grade batch: evaluation=%s, items=%d, legacy=%s, by=%s",
        evaluation_id,
        len(data.items),
        legacy_import,
        current_user.id,
    )

    try:
        result = await GradingService(db).submit_batch(
            evaluation_id=evaluation_id,
            items=data.items,
            submitted_by=current_user.id,
            is_admin=current_user.is_admin,
            legacy_import=legacy_import,
        )
    except GradingServiceError as e:
        raise to_http_error(e)

    return JSONResponse(
        status_code=batch_status_code(result),
        content=result.model_dump(mode="json"),
    )


@router.post(
    "/{evaluation_id}/grades/batch",
    response_model=GradeBatchResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_BATCH_RESPONSES,
    summary="Submit grade batch",
)
async def submit_grade_batch(
    evaluation_id: str,
    data: GradeBatchRequest,
    current_user: TeacherOrAdmin,
    db: DbSession,
) -> JSONResponse:
    """Submit grades for an evaluation. Teachers may only grade their own evaluations."""
    return await _submit(db, evaluation_id, data, current_user, legacy_import=False)


@router.post(
    "/{evaluation_id}/grades/legacy-import",
    response_model=GradeBatchResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_BATCH_RESPONSES,
    summary="Import legacy grades",
    description=(
        "Legacy rules: blank cells are skipped, decimal commas are accepted "
        "and grades above 10 are clamped to 10."
    ),
)
async def import_legacy_grades(
    evaluation_id: str,
    data: GradeBatchRequest,
    current_user: AdminUser,
    db: DbSession,
) -> JSONResponse:
    """Import grades from the legacy system."""
    return await _submit(db, evaluation_id, data, current_user, legacy_import=True)


@router.get(
    "/{evaluation_id}/grades",
    response_model=GradeListResponse,
    summary="List grades",
)
async def list_grades(
    evaluation_id: str,
    current_user: TeacherOrAdmin,
    db: DbSession,
) -> GradeListResponse:
    """List the grades of an evaluation."""
    try:
        return await GradingService(db).list_grades(
            evaluation_id=evaluation_id,
            requested_by=current_user.id,
            is_admin=current_user.is_admin,
        )
    except GradingServiceError as e:
        raise to_http_error(e)
