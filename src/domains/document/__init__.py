# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document registry domain package.

This package provides:
- Required document types per role
- Upload recording and review
- The "all required documents approved" gate used by enrollment
"""

from src.domains.document.service import (
    DocumentAlreadySubmittedError,
    DocumentNotFoundError,
    DocumentService,
    DocumentServiceError,
    DocumentSupersededError,
    InvalidDocumentTypeError,
    MissingReviewNoteError,
    UserNotFoundError,
)

__all__ = [
    "DocumentService",
    "DocumentServiceError",
    "DocumentAlreadySubmittedError",
    "DocumentNotFoundError",
    "DocumentSupersededError",
    "InvalidDocumentTypeError",
    "MissingReviewNoteError",
    "UserNotFoundError",
]
