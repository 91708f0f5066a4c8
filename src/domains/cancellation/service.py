# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cancellation request service.

Students ask for their enrollment to be cancelled; an administrator
approves or rejects. Approval cancels the enrollment in the same
transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.enrollment.service import EnrollmentService
from src.domains.enrollment.state import is_open
from src.infrastructure.database.models import CancellationRequest
from src.models.cancellation import CancellationListResponse, CancellationResponse
from src.models.common import CancellationStatus
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class CancellationServiceError(Exception):
    """Base exception for cancellation service errors."""

    code = "CANCELLATION_ERROR"


class CancellationRequestNotFoundError(CancellationServiceError):
    """Raised when a cancellation request is not found."""

    code = "CANCELLATION_REQUEST_NOT_FOUND"


class NotEnrollmentOwnerError(CancellationServiceError):
    """Raised when a student requests cancellation of someone else's enrollment."""

    code = "NOT_ENROLLMENT_OWNER"


class EnrollmentAlreadyCancelledError(CancellationServiceError):
    """Raised when the enrollment is already cancelled."""

    code = "ENROLLMENT_ALREADY_CANCELLED"


class CancellationAlreadyRequestedError(CancellationServiceError):
    """Raised when a pending request already exists for the enrollment."""

    code = "CANCELLATION_ALREADY_REQUESTED"


class RequestAlreadyReviewedError(CancellationServiceError):
    """Raised when approving or rejecting a request that is not pending."""

    code = "REQUEST_ALREADY_REVIEWED"


class MissingReviewNoteError(CancellationServiceError):
    """Raised when rejecting without a note."""

    code = "MISSING_REVIEW_NOTE"


class CancellationService:
    """Service for cancellation requests.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def submit(
        self,
        enrollment_id: str,
        student_id: str,
        reason: str,
    ) -> CancellationResponse:
        """Submit a cancellation request.

        Args:
            enrollment_id: Enrollment to cancel.
            student_id: Requesting student; must own the enrollment.
            reason: Free-text reason.

        Returns:
            Created request.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
            NotEnrollmentOwnerError: If the student does not own it.
            EnrollmentAlreadyCancelledError: If already cancelled.
            CancellationAlreadyRequestedError: If a pending request exists.
        """
        enrollment = await EnrollmentService(self.db).get_enrollment_model(enrollment_id)

        if enrollment.student_id != student_id:
            raise NotEnrollmentOwnerError("Only the enrolled student can request cancellation")
        if not is_open(enrollment.status):
            raise EnrollmentAlreadyCancelledError(f"Enrollment {enrollment_id} is already cancelled")

        result = await self.db.execute(
            select(CancellationRequest).where(
                CancellationRequest.enrollment_id == enrollment_id,
                CancellationRequest.status == CancellationStatus.PENDING.value,
            )
        )
        if result.scalar_one_or_none() is not None:
            raise CancellationAlreadyRequestedError(
                f"Enrollment {enrollment_id} already has a pending cancellation request"
            )

        request = CancellationRequest(
            enrollment_id=enrollment_id,
            student_id=student_id,
            reason=reason.strip(),
            status=CancellationStatus.PENDING.value,
        )
        self.db.add(request)
        await self.db.commit()
        await self.db.refresh(request)

        logger.info(
            "Cancellation requested: request=%s, enrollment=%s, student=%s",
            request.id,
            enrollment_id,
            student_id,
        )

        return self._to_response(request)

    async def approve(
        self,
        request_id: str,
        reviewer_id: str,
        note: str | None = None,
    ) -> CancellationResponse:
        """Approve a request and cancel its enrollment.

        Raises:
            CancellationRequestNotFoundError: If not found.
            RequestAlreadyReviewedError: If not pending.
            EnrollmentConflictError: If the enrollment changed concurrently.
        """
        request = await self._get_pending(request_id)
        enrollment_service = EnrollmentService(self.db)
        enrollment = await enrollment_service.get_enrollment_model(request.enrollment_id)

        if is_open(enrollment.status):
            await enrollment_service.cancel(enrollment)

        self._mark_reviewed(request, CancellationStatus.APPROVED, reviewer_id, note)
        await self.db.commit()
        await self.db.refresh(request)

        logger.info(
            "Cancellation approved: request=%s, enrollment=%s, reviewer=%s",
            request_id,
            request.enrollment_id,
            reviewer_id,
        )

        return self._to_response(request)

    async def reject(
        self,
        request_id: str,
        reviewer_id: str,
        note: str | None,
    ) -> CancellationResponse:
        """Reject a request; the enrollment is unchanged.

        Raises:
            CancellationRequestNotFoundError: If not found.
            RequestAlreadyReviewedError: If not pending.
            MissingReviewNoteError: If note is blank.
        """
        if not note or not note.strip():
            raise MissingReviewNoteError("A note is required when rejecting a request")

        request = await self._get_pending(request_id)
        self._mark_reviewed(request, CancellationStatus.REJECTED, reviewer_id, note)
        await self.db.commit()
        await self.db.refresh(request)

        logger.info("Cancellation rejected: request=%s, reviewer=%s", request_id, reviewer_id)

        return self._to_response(request)

    async def list_requests(
        self,
        status: str | None = None,
        student_id: str | None = None,
    ) -> CancellationListResponse:
        """List cancellation requests, newest first."""
        query = select(CancellationRequest)
        if status:
            query = query.where(CancellationRequest.status == status)
        if student_id:
            query = query.where(CancellationRequest.student_id == student_id)
        query = query.order_by(CancellationRequest.created_at.desc())

        result = await self.db.execute(query)
        items = [self._to_response(r) for r in result.scalars().all()]
        return CancellationListResponse(items=items, total=len(items))

    async def _get_pending(self, request_id: str) -> CancellationRequest:
        result = await self.db.execute(
            select(CancellationRequest).where(CancellationRequest.id == request_id)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise CancellationRequestNotFoundError(f"Cancellation request {request_id} not found")
        if request.status != CancellationStatus.PENDING.value:
            raise RequestAlreadyReviewedError(f"Request {request_id} is already {request.status}")
        return request

    @staticmethod
    def _mark_reviewed(
        request: CancellationRequest,
        status: CancellationStatus,
        reviewer_id: str,
        note: str | None,
    ) -> None:
        request.status = status.value
        request.reviewed_by = reviewer_id
        request.review_note = note.strip() if note else None
        request.reviewed_at = utc_now()

    def _to_response(self, request: CancellationRequest) -> CancellationResponse:
        return CancellationResponse.model_validate(request)
