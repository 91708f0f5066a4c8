# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reenrollment sweep.

For every active enrollment, the sweep creates the contract of the target
term and moves the enrollment to awaiting_renewal. The student accepting
that contract reactivates the enrollment.

Each enrollment is processed in its own savepoint, so one failure does not
stop the sweep. Running the sweep twice for the same term is a no-op.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.contract.service import ContractService, ContractServiceError
from src.domains.enrollment.service import EnrollmentService, EnrollmentServiceError
from src.infrastructure.database.models import Contract, ContractTemplate, Course, Enrollment
from src.models.batch import BatchResult, ItemFailure, ItemSkipped, ItemSuccess
from src.models.common import EnrollmentStatus
from src.models.reenrollment import SweepResponse
from src.utils.datetime import utc_today

logger = logging.getLogger(__name__)


class ReenrollmentServiceError(Exception):
    """Base exception for reenrollment errors."""

    code = "REENROLLMENT_ERROR"


class InvalidTermError(ReenrollmentServiceError):
    """Raised when the target term is out of range."""

    code = "INVALID_TERM"


def current_term(today: date | None = None) -> tuple[int, int]:
    """Return (semester, year) for a date.

    January to June is semester 1, July to December semester 2.
    """
    today = today or utc_today()
    return (1 if today.month <= 6 else 2), today.year


class ReenrollmentService:
    """Service for the term rollover sweep.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, contract_service: ContractService | None = None) -> None:
        """Initialize reenrollment service.

        Args:
            db: Async database session.
            contract_service: Contract service, defaults to one on the same session.
        """
        self.db = db
        self.contracts = contract_service or ContractService(db)
        self.enrollments = EnrollmentService(db)

    async def run_sweep(
        self,
        semester: int | None = None,
        year: int | None = None,
        template_id: str | None = None,
        triggered_by: str | None = None,
    ) -> SweepResponse:
        """Roll every active enrollment over to the target term.

        Args:
            semester: Target semester, defaults to the current one.
            year: Target year, defaults to the current one.
            template_id: Template for new contracts, defaults to the first active one.
            triggered_by: User ID, or None for the scheduled job.

        Returns:
            Per-enrollment outcomes for the target term.

        Raises:
            InvalidTermError: If the term is out of range.
            TemplateNotFoundError: If template_id is unknown or inactive.
            NoActiveTemplateError: If no template is active.
        """
        default_semester, default_year = current_term()
        if semester is None:
            semester = default_semester
        if year is None:
            year = default_year
        if semester not in (1, 2) or not 2000 <= year <= 2100:
            raise InvalidTermError(f"Invalid term {semester}/{year}")

        template = await self.contracts.resolve_template(template_id)

        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.status == EnrollmentStatus.ACTIVE.value)
            .order_by(Enrollment.created_at)
        )
        enrollments = list(result.scalars().all())

        logger.info(
            "Starting reenrollment sweep: term=%d/%d, candidates=%d, by=%s",
            semester,
            year,
            len(enrollments),
            triggered_by or "scheduler",
        )

        outcomes: list[ItemSuccess | ItemFailure | ItemSkipped] = []
        renewed: list[Contract] = []
        for enrollment in enrollments:
            outcome, contract = await self._process(enrollment, semester, year, template)
            outcomes.append(outcome)
            if contract is not None:
                renewed.append(contract)

        await self.db.commit()

        for contract in renewed:
            if await self.contracts.render_document(contract):
                await self.db.commit()

        batch = BatchResult.from_outcomes(outcomes)
        logger.info(
            "Reenrollment sweep complete: term=%d/%d, total=%d, renewed=%d, skipped=%d, failed=%d",
            semester,
            year,
            batch.total,
            batch.success,
            batch.skipped,
            batch.failed,
        )

        return SweepResponse(
            semester=semester,
            year=year,
            total=batch.total,
            success=batch.success,
            failed=batch.failed,
            skipped=batch.skipped,
            results=batch.results,
        )

    async def _process(
        self,
        enrollment: Enrollment,
        semester: int,
        year: int,
        template: ContractTemplate,
    ) -> tuple[ItemSuccess | ItemFailure | ItemSkipped, Contract | None]:
        enrollment_id = enrollment.id
        try:
            async with self.db.begin_nested():
                existing = await self.contracts.find_term_contract(
                    enrollment.student_id, enrollment_id, semester, year
                )
                if existing is not None:
                    return ItemSkipped(item_id=enrollment_id, reason="contract_exists"), None

                course = await self.db.get(Course, enrollment.course_id)
                terms_done = await self._count_terms(enrollment_id)
                if course is not None and terms_done >= course.term_count:
                    return ItemSkipped(item_id=enrollment_id, reason="course_completed"), None

                contract = await self.contracts.create_contract(
                    enrollment.student_id, enrollment_id, semester, year, template
                )
                await self.enrollments.mark_awaiting_renewal(enrollment)
        except (EnrollmentServiceError, ContractServiceError) as e:
            logger.warning("Reenrollment failed: enrollment=%s, error=%s", enrollment_id, e)
            return ItemFailure(item_id=enrollment_id, code=e.code, message=str(e)), None
        except SQLAlchemyError as e:
            logger.warning("Reenrollment failed: enrollment=%s, error=%s", enrollment_id, e)
            return (
                ItemFailure(item_id=enrollment_id, code="DATABASE_ERROR", message=type(e).__name__),
                None,
            )

        return (
            ItemSuccess(
                item_id=enrollment_id,
                data={"contract_id": contract.id, "student_id": enrollment.student_id},
            ),
            contract,
        )

    async def _count_terms(self, enrollment_id: str) -> int:
        """Count distinct (semester, year) contracts of an enrollment."""
        result = await self.db.execute(
            select(func.count()).select_from(
                select(Contract.semester, Contract.year)
                .where(Contract.enrollment_id == enrollment_id)
                .distinct()
                .subquery()
            )
        )
        return result.scalar_one()
