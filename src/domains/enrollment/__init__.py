# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides course enrollment management including:
- Enrollment creation
- Status transitions gated by document approval
- Compare-and-set status writes
"""

from src.domains.enrollment.service import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    DocumentsPendingError,
    EnrollmentConflictError,
    EnrollmentNotFoundError,
    EnrollmentService,
    EnrollmentServiceError,
    InvalidStudentTypeError,
    InvalidTransitionError,
    StudentNotFoundError,
)
from src.domains.enrollment.state import ALLOWED_TRANSITIONS, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "EnrollmentService",
    "EnrollmentServiceError",
    "AlreadyEnrolledError",
    "CourseNotFoundError",
    "DocumentsPendingError",
    "EnrollmentConflictError",
    "EnrollmentNotFoundError",
    "InvalidStudentTypeError",
    "InvalidTransitionError",
    "StudentNotFoundError",
]
