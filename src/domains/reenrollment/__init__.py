# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reenrollment domain package.

Provides the term rollover sweep run daily by the scheduler or on demand
by an administrator.
"""

from src.domains.reenrollment.service import (
    InvalidTermError,
    ReenrollmentService,
    ReenrollmentServiceError,
    current_term,
)

__all__ = [
    "InvalidTermError",
    "ReenrollmentService",
    "ReenrollmentServiceError",
    "current_term",
]
