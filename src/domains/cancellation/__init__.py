# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cancellation request domain package."""

from src.domains.cancellation.service import (
    CancellationAlreadyRequestedError,
    CancellationRequestNotFoundError,
    CancellationService,
    CancellationServiceError,
    EnrollmentAlreadyCancelledError,
    MissingReviewNoteError,
    NotEnrollmentOwnerError,
    RequestAlreadyReviewedError,
)

__all__ = [
    "CancellationService",
    "CancellationServiceError",
    "CancellationAlreadyRequestedError",
    "CancellationRequestNotFoundError",
    "EnrollmentAlreadyCancelledError",
    "MissingReviewNoteError",
    "NotEnrollmentOwnerError",
    "RequestAlreadyReviewedError",
]
