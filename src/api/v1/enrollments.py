# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API endpoints.

- POST / - Create an enrollment (admin)
- GET / - List enrollments
- GET /{enrollment_id} - Get enrollment details
- POST /{enrollment_id}/activate - Activate once documents are approved (admin)
- GET /{enrollment_id}/documents - Document checklist of the student
- POST /{enrollment_id}/cancellation-requests - Request cancellation (owner student)

Students only see their own enrollments.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import AdminUser, AuthUser, DbSession, ensure_owner_or_admin
from src.api.errors import to_http_error
from src.domains.cancellation import CancellationService, CancellationServiceError
from src.domains.enrollment import EnrollmentService, EnrollmentServiceError
from src.models.cancellation import CancellationResponse, CancellationSubmitRequest
from src.models.common import EnrollmentStatus
from src.models.document import RequirementStatusResponse
from src.models.enrollment import (
    EnrollmentCreateRequest,
    EnrollmentListResponse,
    EnrollmentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> EnrollmentService:
    """Get enrollment service instance."""
    return EnrollmentService(db=db)


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create enrollment",
    description="Enroll a student in a course. The enrollment awaits initial approval.",
)
async def create_enrollment(
    data: EnrollmentCreateRequest,
    current_user: AdminUser,
    db: DbSession,
) -> EnrollmentResponse:
    """Create an enrollment.

    Raises:
        HTTPException: 404 for unknown student or course, 409 when the
            student already holds an open enrollment, 422 for non-students.
    """
    logger.info(
        "Creating enrollment: student=%s, course=%s by %s",
        data.student_id,
        data.course_id,
        current_user.id,
    )

    try:
        return await _get_service(db).create_enrollment(
            student_id=data.student_id,
            course_id=data.course_id,
            enrollment_date=data.enrollment_date,
            created_by=current_user.id,
        )
    except EnrollmentServiceError as e:
        raise to_http_error(e)


@router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List enrollments",
)
async def list_enrollments(
    current_user: AuthUser,
    db: DbSession,
    student_id: Annotated[str | None, Query(description="Filter by student")] = None,
    course_id: Annotated[str | None, Query(description="Filter by course")] = None,
    status_filter: Annotated[EnrollmentStatus | None, Query(alias="status")] = None,
) -> EnrollmentListResponse:
    """List enrollments.

    Admins may filter freely; everyone else only sees their own.
    """
    if not current_user.is_admin:
        student_id = current_user.id

    return await _get_service(db).list_enrollments(
        student_id=student_id,
        course_id=course_id,
        status=status_filter.value if status_filter else None,
    )


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
)
async def get_enrollment(
    enrollment_id: str,
    current_user: AuthUser,
    db: DbSession,
) -> EnrollmentResponse:
    """Get enrollment details."""
    try:
        enrollment = await _get_service(db).get_enrollment(enrollment_id)
    except EnrollmentServiceError as e:
        raise to_http_error(e)

    ensure_owner_or_admin(current_user, enrollment.student_id)
    return enrollment


@router.post(
    "/{enrollment_id}/activate",
    response_model=EnrollmentResponse,
    summary="Activate enrollment",
    description="Activate an enrollment. Every required document must be approved.",
)
async def activate_enrollment(
    enrollment_id: str,
    current_user: AdminUser,
    db: DbSession,
) -> EnrollmentResponse:
    """Activate an enrollment.

    Raises:
        HTTPException: 422 DOCUMENTS_PENDING when the document gate fails,
            409 for cancelled or concurrently modified enrollments.
    """
    try:
        return await _get_service(db).activate(enrollment_id, activated_by=current_user.id)
    except EnrollmentServiceError as e:
        raise to_http_error(e)


@router.get(
    "/{enrollment_id}/documents",
    response_model=RequirementStatusResponse,
    summary="Enrollment document checklist",
)
async def get_enrollment_documents(
    enrollment_id: str,
    current_user: AuthUser,
    db: DbSession,
) -> RequirementStatusResponse:
    """Get the required documents of the enrollment's student."""
    service = _get_service(db)
    try:
        enrollment = await service.get_enrollment(enrollment_id)
        ensure_owner_or_admin(current_user, enrollment.student_id)
        return await service.get_pending_documents(enrollment_id)
    except EnrollmentServiceError as e:
        raise to_http_error(e)


@router.post(
    "/{enrollment_id}/cancellation-requests",
    response_model=CancellationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request cancellation",
)
async def request_cancellation(
    enrollment_id: str,
    data: CancellationSubmitRequest,
    current_user: AuthUser,
    db: DbSession,
) -> CancellationResponse:
    """Submit a cancellation request for one's own enrollment.

    Raises:
        HTTPException: 403 for non-students or non-owners, 409 when a
            request is already pending or the enrollment is cancelled.
    """
    if not current_user.is_student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "STUDENT_REQUIRED", "message": "Only students can request cancellation"},
        )

    try:
        return await CancellationService(db).submit(
            enrollment_id=enrollment_id,
            student_id=current_user.id,
            reason=data.reason,
        )
    except (CancellationServiceError, EnrollmentServiceError) as e:
        raise to_http_error(e)
