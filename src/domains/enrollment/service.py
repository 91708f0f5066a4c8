# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for managing course enrollments.

This module provides the EnrollmentService class for:
- Creating enrollments for students
- Admin activation behind the document approval gate
- The transitions driven by contracts, the reenrollment sweep and
  cancellation approval

Every status write is a compare-and-set on (status, version). When another
writer got there first, EnrollmentConflictError is raised and nothing
changes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.document.service import DocumentService
from src.domains.enrollment.state import GATED_STATES, can_transition
from src.infrastructure.database.models import Course, Enrollment, User
from src.models.common import EnrollmentStatus
from src.models.document import RequirementStatusResponse
from src.models.enrollment import EnrollmentListResponse, EnrollmentResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    code = "ENROLLMENT_ERROR"


class EnrollmentNotFoundError(EnrollmentServiceError):
    """Raised when enrollment is not found."""

    code = "ENROLLMENT_NOT_FOUND"


class StudentNotFoundError(EnrollmentServiceError):
    """Raised when student is not found."""

    code = "STUDENT_NOT_FOUND"


class CourseNotFoundError(EnrollmentServiceError):
    """Raised when course is not found."""

    code = "COURSE_NOT_FOUND"


class InvalidStudentTypeError(EnrollmentServiceError):
    """Raised when user is not a student."""

    code = "INVALID_STUDENT"


class AlreadyEnrolledError(EnrollmentServiceError):
    """Raised when the student already has a non-cancelled enrollment."""

    code = "ALREADY_ENROLLED"


class DocumentsPendingError(EnrollmentServiceError):
    """Raised when activation is attempted before all required documents are approved."""

    code = "DOCUMENTS_PENDING"


class InvalidTransitionError(EnrollmentServiceError):
    """Raised when the requested status change is not permitted."""

    code = "INVALID_TRANSITION"


class EnrollmentConflictError(EnrollmentServiceError):
    """Raised when a concurrent write changed the enrollment first."""

    code = "ENROLLMENT_CONFLICT"


class EnrollmentService:
    """Service for enrollment records and status transitions.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create_enrollment(
        self,
        student_id: str,
        course_id: str,
        enrollment_date: date | None = None,
        created_by: str | None = None,
    ) -> EnrollmentResponse:
        """Create an enrollment awaiting initial approval.

        Args:
            student_id: Student identifier.
            course_id: Course identifier.
            enrollment_date: Optional enrollment date, defaults to today.
            created_by: ID of user performing the operation.

        Returns:
            Created enrollment.

        Raises:
            StudentNotFoundError: If student not found.
            InvalidStudentTypeError: If user is not a student.
            CourseNotFoundError: If course not found.
            AlreadyEnrolledError: If the student has an open enrollment.
        """
        await self._get_student(student_id)
        await self._get_course(course_id)

        existing = await self.get_open_enrollment(student_id)
        if existing is not None:
            raise AlreadyEnrolledError(
                f"Student {student_id} already has enrollment {existing.id} ({existing.status})"
            )

        enrollment = Enrollment(
            student_id=student_id,
            course_id=course_id,
            status=EnrollmentStatus.AWAITING_INITIAL_APPROVAL.value,
            version=1,
        )
        if enrollment_date is not None:
            enrollment.enrollment_date = enrollment_date

        self.db.add(enrollment)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyEnrolledError(f"Student {student_id} already has an open enrollment") from e
        await self.db.refresh(enrollment)

        logger.info(
            "Created enrollment: enrollment=%s, student=%s, course=%s, by=%s",
            enrollment.id,
            student_id,
            course_id,
            created_by,
        )

        return self._to_response(enrollment)

    async def activate(
        self,
        enrollment_id: str,
        activated_by: str | None = None,
    ) -> EnrollmentResponse:
        """Activate an enrollment once every required document is approved.

        Activating an already-active enrollment is a no-op.

        Args:
            enrollment_id: Enrollment identifier.
            activated_by: ID of user performing the operation.

        Returns:
            Enrollment in its resulting state.

        Raises:
            EnrollmentNotFoundError: If not found.
            InvalidTransitionError: If the enrollment is cancelled.
            DocumentsPendingError: If the document gate does not hold.
            EnrollmentConflictError: If a concurrent write won.
        """
        enrollment = await self.get_enrollment_model(enrollment_id)

        if enrollment.status == EnrollmentStatus.ACTIVE.value:
            logger.info("Enrollment already active: enrollment=%s", enrollment_id)
            return self._to_response(enrollment)

        if not can_transition(enrollment.status, EnrollmentStatus.ACTIVE):
            raise InvalidTransitionError(
                f"Cannot activate enrollment in status {enrollment.status}"
            )

        if EnrollmentStatus(enrollment.status) in GATED_STATES:
            approved = await DocumentService(self.db).is_fully_approved(enrollment.student_id)
            if not approved:
                logger.warning(
                    "Activation blocked by pending documents: enrollment=%s, student=%s",
                    enrollment_id,
                    enrollment.student_id,
                )
                raise DocumentsPendingError(
                    "All required documents must be approved before activation"
                )

        await self._transition(
            enrollment,
            EnrollmentStatus.ACTIVE,
            activated_at=utc_now(),
        )
        await self.db.commit()

        logger.info(
            "Activated enrollment: enrollment=%s, student=%s, by=%s",
            enrollment_id,
            enrollment.student_id,
            activated_by,
        )

        return self._to_response(enrollment)

    async def mark_awaiting_renewal(self, enrollment: Enrollment) -> Enrollment:
        """Move an active enrollment to awaiting_renewal.

        Only the reenrollment sweep calls this. Does not commit.

        Raises:
            InvalidTransitionError: If the enrollment is not active.
            EnrollmentConflictError: If a concurrent write won.
        """
        if enrollment.status != EnrollmentStatus.ACTIVE.value:
            raise InvalidTransitionError(
                f"Only active enrollments can await renewal, got {enrollment.status}"
            )
        return await self._transition(enrollment, EnrollmentStatus.AWAITING_RENEWAL)

    async def reactivate_after_acceptance(self, enrollment: Enrollment) -> Enrollment:
        """Activate an enrollment because its contract was accepted.

        The caller decides whether the document gate applies. Does not commit.

        Raises:
            InvalidTransitionError: If the enrollment cannot become active.
            EnrollmentConflictError: If a concurrent write won.
        """
        if enrollment.status == EnrollmentStatus.ACTIVE.value:
            return enrollment
        if not can_transition(enrollment.status, EnrollmentStatus.ACTIVE):
            raise InvalidTransitionError(
                f"Cannot activate enrollment in status {enrollment.status}"
            )
        return await self._transition(enrollment, EnrollmentStatus.ACTIVE, activated_at=utc_now())

    async def cancel(self, enrollment: Enrollment) -> Enrollment:
        """Cancel an enrollment. Does not commit.

        Raises:
            InvalidTransitionError: If already cancelled.
            EnrollmentConflictError: If a concurrent write won.
        """
        if not can_transition(enrollment.status, EnrollmentStatus.CANCELLED):
            raise InvalidTransitionError(f"Enrollment {enrollment.id} is already cancelled")
        return await self._transition(
            enrollment,
            EnrollmentStatus.CANCELLED,
            cancelled_at=utc_now(),
        )

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentResponse:
        """Get enrollment details.

        Raises:
            EnrollmentNotFoundError: If not found.
        """
        return self._to_response(await self.get_enrollment_model(enrollment_id))

    async def list_enrollments(
        self,
        student_id: str | None = None,
        course_id: str | None = None,
        status: str | None = None,
    ) -> EnrollmentListResponse:
        """List enrollments with optional filters, newest first."""
        query = select(Enrollment)
        if student_id:
            query = query.where(Enrollment.student_id == student_id)
        if course_id:
            query = query.where(Enrollment.course_id == course_id)
        if status:
            query = query.where(Enrollment.status == status)
        query = query.order_by(Enrollment.created_at.desc())

        result = await self.db.execute(query)
        items = [self._to_response(e) for e in result.scalars().all()]
        return EnrollmentListResponse(items=items, total=len(items))

    async def get_pending_documents(self, enrollment_id: str) -> RequirementStatusResponse:
        """Get the document checklist of the enrollment's student.

        Raises:
            EnrollmentNotFoundError: If not found.
        """
        enrollment = await self.get_enrollment_model(enrollment_id)
        return await DocumentService(self.db).get_requirement_status(enrollment.student_id)

    async def get_open_enrollment(self, student_id: str) -> Enrollment | None:
        """Get the student's non-cancelled enrollment, if any."""
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.status != EnrollmentStatus.CANCELLED.value,
            )
        )
        return result.scalar_one_or_none()

    async def get_enrollment_model(self, enrollment_id: str) -> Enrollment:
        """Get enrollment row by ID.

        Raises:
            EnrollmentNotFoundError: If not found.
        """
        result = await self.db.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")
        return enrollment

    async def _transition(
        self,
        enrollment: Enrollment,
        target: EnrollmentStatus,
        **values: Any,
    ) -> Enrollment:
        """Compare-and-set the enrollment status.

        Raises:
            EnrollmentConflictError: If status or version changed underneath.
        """
        expected_status = enrollment.status
        expected_version = enrollment.version

        result = await self.db.execute(
            update(Enrollment)
            .where(
                Enrollment.id == enrollment.id,
                Enrollment.status == expected_status,
                Enrollment.version == expected_version,
            )
            .values(
                status=target.value,
                version=expected_version + 1,
                updated_at=utc_now(),
                **values,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            logger.warning(
                "Enrollment transition conflict: enrollment=%s, expected=%s/v%d, target=%s",
                enrollment.id,
                expected_status,
                expected_version,
                target.value,
            )
            raise EnrollmentConflictError(
                f"Enrollment {enrollment.id} was modified concurrently"
            )

        await self.db.refresh(enrollment)

        logger.info(
            "Enrollment transition: enrollment=%s, %s -> %s",
            enrollment.id,
            expected_status,
            target.value,
        )
        return enrollment

    async def _get_student(self, student_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == student_id))
        user = result.scalar_one_or_none()

        if not user:
            raise StudentNotFoundError(f"Student {student_id} not found")
        if not user.is_student:
            raise InvalidStudentTypeError(f"User {student_id} is not a student")

        return user

    async def _get_course(self, course_id: str) -> Course:
        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()

        if not course:
            raise CourseNotFoundError(f"Course {course_id} not found")

        return course

    def _to_response(self, enrollment: Enrollment) -> EnrollmentResponse:
        return EnrollmentResponse.model_validate(enrollment)
