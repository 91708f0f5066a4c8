# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic catalog: courses, disciplines, classes and class rosters.

These tables are maintained by the catalog CRUD surface; the enrollment
core only reads them.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    uuid_fk,
)
from src.utils.datetime import utc_now


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A course offering with a fixed number of terms."""

    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("term_count >= 1", name="term_count_positive"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    term_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class Discipline(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A subject taught within classes."""

    __tablename__ = "disciplines"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)


class Class(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A term-level group of students."""

    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    course_id: Mapped[str | None] = mapped_column(
        uuid_fk(), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True, index=True
    )
    semester: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)


class ClassStudent(UUIDPrimaryKeyMixin, Base):
    """Class membership, independent of course enrollment."""

    __tablename__ = "class_students"
    __table_args__ = (
        UniqueConstraint("class_id", "student_id", name="uq_class_students_class_student"),
    )

    class_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
