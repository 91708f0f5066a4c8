# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models.

Importing this package registers every table on Base.metadata.
"""

from src.infrastructure.database.models.academic import Class, ClassStudent, Course, Discipline
from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.infrastructure.database.models.contract import Contract, ContractTemplate
from src.infrastructure.database.models.document import Document, DocumentReview, DocumentType
from src.infrastructure.database.models.enrollment import CancellationRequest, Enrollment
from src.infrastructure.database.models.grading import Evaluation, Grade
from src.infrastructure.database.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "Course",
    "Discipline",
    "Class",
    "ClassStudent",
    "DocumentType",
    "Document",
    "DocumentReview",
    "Enrollment",
    "CancellationRequest",
    "ContractTemplate",
    "Contract",
    "Evaluation",
    "Grade",
]
