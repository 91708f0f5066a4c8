# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Contract templates and term contracts."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    uuid_fk,
)


class ContractTemplate(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Agreement text with {{placeholder}} markers."""

    __tablename__ = "contract_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Contract(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A term-scoped agreement.

    enrollment_id is nullable for legacy rows. document_ref stays null
    until rendering succeeds.
    """

    __tablename__ = "contracts"
    __table_args__ = (
        UniqueConstraint(
            "enrollment_id", "semester", "year", name="uq_contracts_enrollment_term"
        ),
        CheckConstraint("semester IN (1, 2)", name="semester"),
    )

    enrollment_id: Mapped[str | None] = mapped_column(
        uuid_fk(), ForeignKey("enrollments.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    template_id: Mapped[str] = mapped_column(
        uuid_fk(), ForeignKey("contract_templates.id", ondelete="RESTRICT"), nullable=False
    )
    document_ref: Mapped[str | None] = mapped_column(String(512), nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    @property
    def is_accepted(self) -> bool:
        """Check whether the contract has been accepted."""
        return self.accepted_at is not None
