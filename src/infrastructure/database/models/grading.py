# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluations and grades."""

from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    uuid_fk,
)


class Evaluation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A gradable event within a class and discipline.

    teacher_id references the owning user account.
    """

    __tablename__ = "evaluations"
    __table_args__ = (
        CheckConstraint("type IN ('grade', 'concept')", name="type"),
    )

    class_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    teacher_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    discipline_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("disciplines.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    evaluation_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="grade")


class Grade(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One student's result for one evaluation."""

    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("evaluation_id", "student_id", name="uq_grades_evaluation_student"),
        CheckConstraint(
            "(grade IS NOT NULL AND concept IS NULL) OR (grade IS NULL AND concept IS NOT NULL)",
            name="one_value",
        ),
        CheckConstraint("grade IS NULL OR (grade >= 0 AND grade <= 10)", name="grade_range"),
        CheckConstraint(
            "concept IS NULL OR concept IN ('satisfactory', 'unsatisfactory')",
            name="concept",
        ),
    )

    evaluation_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    grade: Mapped[float | None] = mapped_column(Numeric(4, 2, asdecimal=False), nullable=True)
    concept: Mapped[str | None] = mapped_column(String(20), nullable=True)
