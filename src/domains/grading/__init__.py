# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grading domain package.

Batch grade submission with per-item outcomes, plus the legacy import
rules.
"""

from src.domains.grading.service import (
    EvaluationAccessDeniedError,
    EvaluationNotFoundError,
    GradeItemError,
    GradingService,
    GradingServiceError,
    validate_grade_value,
)

__all__ = [
    "EvaluationAccessDeniedError",
    "EvaluationNotFoundError",
    "GradeItemError",
    "GradingService",
    "GradingServiceError",
    "validate_grade_value",
]
