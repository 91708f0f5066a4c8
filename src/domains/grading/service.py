# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Batch grade submission service.

A batch is a list of independent writes against one evaluation. Each item
is validated and written in its own savepoint; failures are reported per
item and never abort the batch.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.grading.legacy import (
    MAX_GRADE,
    clamp_legacy_grade,
    is_blank,
    parse_legacy_number,
)
from src.infrastructure.database.models import ClassStudent, Enrollment, Evaluation, Grade
from src.models.batch import BatchResult, ItemFailure, ItemSkipped, ItemSuccess
from src.models.common import Concept, EnrollmentStatus, EvaluationType
from src.models.grading import GradeBatchResponse, GradeItem, GradeListResponse, GradeResponse

logger = logging.getLogger(__name__)


class GradingServiceError(Exception):
    """Base exception for grading service errors."""

    code = "GRADING_ERROR"


class EvaluationNotFoundError(GradingServiceError):
    """Raised when evaluation is not found."""

    code = "EVALUATION_NOT_FOUND"


class EvaluationAccessDeniedError(GradingServiceError):
    """Raised when a teacher works on an evaluation they do not own."""

    code = "EVALUATION_ACCESS_DENIED"


class GradeItemError(GradingServiceError):
    """Raised for one invalid batch item; reported, never propagated."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def validate_grade_value(
    evaluation_type: str,
    grade: Any,
    concept: Any,
    legacy_import: bool = False,
) -> tuple[float | None, str | None]:
    """Validate one item's value against the evaluation type.

    Args:
        evaluation_type: grade or concept.
        grade: Submitted numeric grade.
        concept: Submitted concept.
        legacy_import: Clamp grades above 10 instead of rejecting them.

    Returns:
        (grade, concept) with exactly one populated.

    Raises:
        GradeItemError: With the machine-readable failure code.
    """
    if evaluation_type == EvaluationType.GRADE.value:
        if not is_blank(concept):
            raise GradeItemError("VALUE_TYPE_MISMATCH", "Grade evaluations take a numeric grade, not a concept")
        if grade is None or (isinstance(grade, str) and not grade.strip()):
            raise GradeItemError("MISSING_GRADE_VALUE", "A numeric grade is required")
        if isinstance(grade, bool):
            raise GradeItemError("INVALID_GRADE_FORMAT", "Grade must be a number")
        try:
            value = parse_legacy_number(grade) if legacy_import else float(grade)
        except (TypeError, ValueError):
            raise GradeItemError("INVALID_GRADE_FORMAT", "Grade must be a number")
        if not math.isfinite(value):
            raise GradeItemError("INVALID_GRADE_FORMAT", "Grade must be a finite number")
        if value < 0:
            raise GradeItemError("GRADE_OUT_OF_RANGE", "Grade must be between 0 and 10")
        if value > MAX_GRADE:
            if not legacy_import:
                raise GradeItemError("GRADE_OUT_OF_RANGE", "Grade must be between 0 and 10")
            value = clamp_legacy_grade(value)
        return round(value, 2), None

    if not is_blank(grade):
        raise GradeItemError("VALUE_TYPE_MISMATCH", "Concept evaluations take a concept, not a grade")
    if concept is None or (isinstance(concept, str) and not concept.strip()):
        raise GradeItemError("MISSING_CONCEPT_VALUE", "A concept is required")
    if not isinstance(concept, str):
        raise GradeItemError("INVALID_CONCEPT_VALUE", "Concept must be satisfactory or unsatisfactory")
    try:
        return None, Concept(concept.strip().lower()).value
    except ValueError:
        raise GradeItemError("INVALID_CONCEPT_VALUE", "Concept must be satisfactory or unsatisfactory")


class GradingService:
    """Service for batch grade submission.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize grading service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def submit_batch(
        self,
        evaluation_id: str,
        items: list[GradeItem],
        submitted_by: str,
        is_admin: bool = False,
        legacy_import: bool = False,
    ) -> GradeBatchResponse:
        """Apply a batch of grade writes.

        Args:
            evaluation_id: Evaluation identifier.
            items: Grade writes, one per student.
            submitted_by: Submitting user.
            is_admin: Whether the submitter is an administrator.
            legacy_import: Apply legacy import rules (blank cells skipped,
                decimal comma accepted, values above 10 clamped).

        Returns:
            Per-item outcomes; fully_applied is true only with zero failures.

        Raises:
            EvaluationNotFoundError: If the evaluation does not exist.
            EvaluationAccessDeniedError: If a teacher does not own it.
        """
        evaluation = await self._get_evaluation(evaluation_id, submitted_by, is_admin)

        student_ids = {item.student_id for item in items}
        members = await self._class_members(evaluation.class_id, student_ids)
        active = await self._actively_enrolled(student_ids)

        outcomes: list[ItemSuccess | ItemFailure | ItemSkipped] = []
        seen: set[str] = set()

        for item in items:
            if item.student_id in seen:
                outcomes.append(
                    ItemFailure(
                        item_id=item.student_id,
                        code="DUPLICATE_ITEM",
                        message="Student appears more than once in the batch",
                    )
                )
                continue
            seen.add(item.student_id)

            if legacy_import and is_blank(item.grade) and is_blank(item.concept):
                outcomes.append(ItemSkipped(item_id=item.student_id, reason="blank_legacy_value"))
                continue

            try:
                if item.student_id not in members:
                    raise GradeItemError("STUDENT_NOT_IN_CLASS", "Student is not a member of the class")
                if item.student_id not in active:
                    raise GradeItemError("ENROLLMENT_NOT_ACTIVE", "Student does not have an active enrollment")

                grade, concept = validate_grade_value(
                    evaluation.type, item.grade, item.concept, legacy_import
                )
                row = await self._write_grade(evaluation.id, item.student_id, grade, concept)
            except GradeItemError as e:
                outcomes.append(ItemFailure(item_id=item.student_id, code=e.code, message=e.message))
                continue

            outcomes.append(
                ItemSuccess(
                    item_id=item.student_id,
                    data={"grade_id": row.id, "grade": row.grade, "concept": row.concept},
                )
            )

        await self.db.commit()

        batch = BatchResult.from_outcomes(outcomes)
        log = logger.info if batch.fully_applied else logger.warning
        log(
            "Grade batch: evaluation=%s, total=%d, success=%d, failed=%d, skipped=%d, legacy=%s, by=%s",
            evaluation_id,
            batch.total,
            batch.success,
            batch.failed,
            batch.skipped,
            legacy_import,
            submitted_by,
        )

        return GradeBatchResponse(
            evaluation_id=evaluation_id,
            total=batch.total,
            success=batch.success,
            failed=batch.failed,
            skipped=batch.skipped,
            results=batch.results,
        )

    async def list_grades(
        self,
        evaluation_id: str,
        requested_by: str,
        is_admin: bool = False,
    ) -> GradeListResponse:
        """List grades of an evaluation.

        Raises:
            EvaluationNotFoundError: If the evaluation does not exist.
            EvaluationAccessDeniedError: If a teacher does not own it.
        """
        await self._get_evaluation(evaluation_id, requested_by, is_admin)

        result = await self.db.execute(
            select(Grade).where(Grade.evaluation_id == evaluation_id).order_by(Grade.created_at)
        )
        items = [GradeResponse.model_validate(g) for g in result.scalars().all()]
        return GradeListResponse(evaluation_id=evaluation_id, items=items, total=len(items))

    async def _write_grade(
        self,
        evaluation_id: str,
        student_id: str,
        grade: float | None,
        concept: str | None,
    ) -> Grade:
        """Insert or update one grade inside a savepoint.

        Raises:
            GradeItemError: DUPLICATE_GRADE when a concurrent insert won.
        """
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(
                    select(Grade).where(
                        Grade.evaluation_id == evaluation_id,
                        Grade.student_id == student_id,
                    )
                )
                row = result.scalar_one_or_none()
                if row is None:
                    row = Grade(evaluation_id=evaluation_id, student_id=student_id)
                    self.db.add(row)
                row.grade = grade
                row.concept = concept
                await self.db.flush()
        except IntegrityError:
            raise GradeItemError("DUPLICATE_GRADE", "A grade for this student was written concurrently")
        return row

    async def _get_evaluation(self, evaluation_id: str, user_id: str, is_admin: bool) -> Evaluation:
        result = await self.db.execute(select(Evaluation).where(Evaluation.id == evaluation_id))
        evaluation = result.scalar_one_or_none()

        if not evaluation:
            raise EvaluationNotFoundError(f"Evaluation {evaluation_id} not found")
        if not is_admin and evaluation.teacher_id != user_id:
            raise EvaluationAccessDeniedError("Teachers can only grade their own evaluations")

        return evaluation

    async def _class_members(self, class_id: str, student_ids: set[str]) -> set[str]:
        if not student_ids:
            return set()
        result = await self.db.execute(
            select(ClassStudent.student_id).where(
                ClassStudent.class_id == class_id,
                ClassStudent.student_id.in_(student_ids),
            )
        )
        return set(result.scalars().all())

    async def _actively_enrolled(self, student_ids: set[str]) -> set[str]:
        if not student_ids:
            return set()
        result = await self.db.execute(
            select(Enrollment.student_id).where(
                Enrollment.student_id.in_(student_ids),
                Enrollment.status == EnrollmentStatus.ACTIVE.value,
            )
        )
        return set(result.scalars().all())
