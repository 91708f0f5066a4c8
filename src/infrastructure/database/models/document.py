# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document catalog, uploaded documents and the review audit trail."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    uuid_fk,
)
from src.utils.datetime import utc_now


class DocumentType(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A category of upload, scoped to a role."""

    __tablename__ = "document_types"
    __table_args__ = (
        CheckConstraint(
            "applicable_role IN ('student', 'teacher', 'both')",
            name="applicable_role",
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    applicable_role: Mapped[str] = mapped_column(String(20), nullable=False, default="both")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def applies_to(self, role: str) -> bool:
        """Check whether this type applies to the given user role."""
        return self.applicable_role in (role, "both")


class Document(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One uploaded artifact.

    A rejected document replaced by a re-upload keeps its row with
    superseded_at set so its review history stays available.
    At most one non-superseded document exists per user and type.
    """

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="status"),
        Index(
            "uq_documents_user_type_current",
            "user_id",
            "document_type_id",
            unique=True,
            postgresql_where=text("superseded_at IS NULL"),
            sqlite_where=text("superseded_at IS NULL"),
        ),
    )

    user_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_type_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("document_types.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    blob_ref: Mapped[str] = mapped_column(String(512), nullable=False)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    reviewed_by: Mapped[str | None] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    review_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    superseded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class DocumentReview(UUIDPrimaryKeyMixin, Base):
    """Append-only record of one review decision."""

    __tablename__ = "document_reviews"
    __table_args__ = (
        CheckConstraint("decision IN ('approve', 'reject')", name="decision"),
    )

    document_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewer_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
