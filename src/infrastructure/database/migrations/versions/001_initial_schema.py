# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial schema.

Creates the catalog tables read by the core (users, courses, disciplines,
classes, class_students), the document registry (document_types,
documents, document_reviews), enrollments with cancellation requests,
contracts with their templates, and evaluations with grades.

Storage-level invariants created here:
- one non-cancelled enrollment per student (partial unique index)
- one non-superseded document per (user, document type) (partial unique index)
- one contract per (enrollment, semester, year)
- one grade per (evaluation, student)

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-10-27
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid() -> sa.Uuid:
    return sa.Uuid(as_uuid=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""

    # =========================================================================
    # Catalog
    # =========================================================================
    op.create_table(
        "users",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('student', 'teacher', 'admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "courses",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("term_count", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_courses"),
        sa.CheckConstraint("term_count >= 1", name="ck_courses_term_count_positive"),
    )

    op.create_table(
        "disciplines",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_disciplines"),
    )

    op.create_table(
        "classes",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("course_id", _uuid(), nullable=True),
        sa.Column("semester", sa.Integer(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_classes"),
        sa.ForeignKeyConstraint(
            ["course_id"], ["courses.id"], name="fk_classes_course_id_courses", ondelete="SET NULL"
        ),
    )
    op.create_index("ix_classes_course_id", "classes", ["course_id"])

    op.create_table(
        "class_students",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("class_id", _uuid(), nullable=False),
        sa.Column("student_id", _uuid(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_class_students"),
        sa.ForeignKeyConstraint(
            ["class_id"], ["classes.id"], name="fk_class_students_class_id_classes", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["student_id"], ["users.id"], name="fk_class_students_student_id_users", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("class_id", "student_id", name="uq_class_students_class_student"),
    )
    op.create_index("ix_class_students_class_id", "class_students", ["class_id"])
    op.create_index("ix_class_students_student_id", "class_students", ["student_id"])

    # =========================================================================
    # Document registry
    # =========================================================================
    op.create_table(
        "document_types",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("applicable_role", sa.String(20), nullable=False, server_default="both"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_document_types"),
        sa.CheckConstraint(
            "applicable_role IN ('student', 'teacher', 'both')",
            name="ck_document_types_applicable_role",
        ),
    )

    op.create_table(
        "documents",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("document_type_id", _uuid(), nullable=False),
        sa.Column("blob_ref", sa.String(512), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("reviewed_by", _uuid(), nullable=True),
        sa.Column("review_note", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_documents"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_documents_user_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["document_type_id"],
            ["document_types.id"],
            name="fk_documents_document_type_id_document_types",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"], ["users.id"], name="fk_documents_reviewed_by_users", ondelete="SET NULL"
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_documents_status"
        ),
    )
    op.create_index("ix_documents_user_id", "documents", ["user_id"])
    op.create_index("ix_documents_document_type_id", "documents", ["document_type_id"])
    op.create_index(
        "uq_documents_user_type_current",
        "documents",
        ["user_id", "document_type_id"],
        unique=True,
        postgresql_where=sa.text("superseded_at IS NULL"),
        sqlite_where=sa.text("superseded_at IS NULL"),
    )

    op.create_table(
        "document_reviews",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("document_id", _uuid(), nullable=False),
        sa.Column("reviewer_id", _uuid(), nullable=False),
        sa.Column("decision", sa.String(20), nullable=False),
        sa.Column("previous_status", sa.String(20), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_document_reviews"),
        sa.ForeignKeyConstraint(
            ["document_id"],
            ["documents.id"],
            name="fk_document_reviews_document_id_documents",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["reviewer_id"],
            ["users.id"],
            name="fk_document_reviews_reviewer_id_users",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint(
            "decision IN ('approve', 'reject')", name="ck_document_reviews_decision"
        ),
    )
    op.create_index("ix_document_reviews_document_id", "document_reviews", ["document_id"])

    # =========================================================================
    # Enrollments
    # =========================================================================
    op.create_table(
        "enrollments",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("student_id", _uuid(), nullable=False),
        sa.Column("course_id", _uuid(), nullable=False),
        sa.Column(
            "status", sa.String(32), nullable=False, server_default="awaiting_initial_approval"
        ),
        sa.Column("enrollment_date", sa.Date(), nullable=False),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_enrollments"),
        sa.ForeignKeyConstraint(
            ["student_id"], ["users.id"], name="fk_enrollments_student_id_users", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["course_id"], ["courses.id"], name="fk_enrollments_course_id_courses", ondelete="RESTRICT"
        ),
        sa.CheckConstraint(
            "status IN ('awaiting_initial_approval', 'active', 'awaiting_renewal', 'cancelled')",
            name="ck_enrollments_status",
        ),
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_status", "enrollments", ["status"])
    op.create_index(
        "uq_enrollments_student_open",
        "enrollments",
        ["student_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        "cancellation_requests",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("enrollment_id", _uuid(), nullable=False),
        sa.Column("student_id", _uuid(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("reviewed_by", _uuid(), nullable=True),
        sa.Column("review_note", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_cancellation_requests"),
        sa.ForeignKeyConstraint(
            ["enrollment_id"],
            ["enrollments.id"],
            name="fk_cancellation_requests_enrollment_id_enrollments",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["users.id"],
            name="fk_cancellation_requests_student_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"],
            ["users.id"],
            name="fk_cancellation_requests_reviewed_by_users",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_cancellation_requests_status",
        ),
    )
    op.create_index(
        "ix_cancellation_requests_enrollment_id", "cancellation_requests", ["enrollment_id"]
    )
    op.create_index(
        "ix_cancellation_requests_student_id", "cancellation_requests", ["student_id"]
    )

    # =========================================================================
    # Contracts
    # =========================================================================
    op.create_table(
        "contract_templates",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_contract_templates"),
    )

    op.create_table(
        "contracts",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("enrollment_id", _uuid(), nullable=True),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("template_id", _uuid(), nullable=False),
        sa.Column("document_ref", sa.String(512), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_contracts"),
        sa.ForeignKeyConstraint(
            ["enrollment_id"],
            ["enrollments.id"],
            name="fk_contracts_enrollment_id_enrollments",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_contracts_user_id_users", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["contract_templates.id"],
            name="fk_contracts_template_id_contract_templates",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint(
            "enrollment_id", "semester", "year", name="uq_contracts_enrollment_term"
        ),
        sa.CheckConstraint("semester IN (1, 2)", name="ck_contracts_semester"),
    )
    op.create_index("ix_contracts_enrollment_id", "contracts", ["enrollment_id"])
    op.create_index("ix_contracts_user_id", "contracts", ["user_id"])

    # =========================================================================
    # Grading
    # =========================================================================
    op.create_table(
        "evaluations",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("class_id", _uuid(), nullable=False),
        sa.Column("teacher_id", _uuid(), nullable=False),
        sa.Column("discipline_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="grade"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_evaluations"),
        sa.ForeignKeyConstraint(
            ["class_id"], ["classes.id"], name="fk_evaluations_class_id_classes", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["teacher_id"], ["users.id"], name="fk_evaluations_teacher_id_users", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["discipline_id"],
            ["disciplines.id"],
            name="fk_evaluations_discipline_id_disciplines",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint("type IN ('grade', 'concept')", name="ck_evaluations_type"),
    )
    op.create_index("ix_evaluations_class_id", "evaluations", ["class_id"])
    op.create_index("ix_evaluations_teacher_id", "evaluations", ["teacher_id"])
    op.create_index("ix_evaluations_discipline_id", "evaluations", ["discipline_id"])

    op.create_table(
        "grades",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("evaluation_id", _uuid(), nullable=False),
        sa.Column("student_id", _uuid(), nullable=False),
        sa.Column("grade", sa.Numeric(4, 2), nullable=True),
        sa.Column("concept", sa.String(20), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_grades"),
        sa.ForeignKeyConstraint(
            ["evaluation_id"],
            ["evaluations.id"],
            name="fk_grades_evaluation_id_evaluations",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["student_id"], ["users.id"], name="fk_grades_student_id_users", ondelete="RESTRICT"
        ),
        sa.UniqueConstraint("evaluation_id", "student_id", name="uq_grades_evaluation_student"),
        sa.CheckConstraint(
            "(grade IS NOT NULL AND concept IS NULL) OR (grade IS NULL AND concept IS NOT NULL)",
            name="ck_grades_one_value",
        ),
        sa.CheckConstraint(
            "grade IS NULL OR (grade >= 0 AND grade <= 10)", name="ck_grades_grade_range"
        ),
        sa.CheckConstraint(
            "concept IS NULL OR concept IN ('satisfactory', 'unsatisfactory')",
            name="ck_grades_concept",
        ),
    )
    op.create_index("ix_grades_evaluation_id", "grades", ["evaluation_id"])
    op.create_index("ix_grades_student_id", "grades", ["student_id"])


def downgrade() -> None:
    """Drop all tables in dependency order."""
    op.drop_table("grades")
    op.drop_table("evaluations")
    op.drop_table("contracts")
    op.drop_table("contract_templates")
    op.drop_table("cancellation_requests")
    op.drop_index("uq_enrollments_student_open", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_table("document_reviews")
    op.drop_index("uq_documents_user_type_current", table_name="documents")
    op.drop_table("documents")
    op.drop_table("document_types")
    op.drop_table("class_students")
    op.drop_table("classes")
    op.drop_table("disciplines")
    op.drop_table("courses")
    op.drop_table("users")
