# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course enrollments and cancellation requests."""

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    uuid_fk,
)
from src.utils.datetime import utc_today

ENROLLMENT_STATUSES = (
    "awaiting_initial_approval",
    "active",
    "awaiting_renewal",
    "cancelled",
)


class Enrollment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's standing relationship to one course.

    Status writes go through compare-and-set on (status, version); see
    EnrollmentService. Rows are never deleted.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        CheckConstraint(
            "status IN ('awaiting_initial_approval', 'active', 'awaiting_renewal', 'cancelled')",
            name="status",
        ),
        Index(
            "uq_enrollments_student_open",
            "student_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    student_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    course_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="awaiting_initial_approval", index=True
    )
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False, default=utc_today)
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class CancellationRequest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student-initiated request to cancel an enrollment."""

    __tablename__ = "cancellation_requests"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="status"),
    )

    enrollment_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    reviewed_by: Mapped[str | None] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    review_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
