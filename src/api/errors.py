# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Translation of domain errors into HTTP errors.

Every domain error carries a machine-readable ``code``; the response
body is ``{"detail": {"code": ..., "message": ...}}``.
"""

from fastapi import HTTPException, status

from src.models.common import ErrorDetail

STATUS_BY_CODE: dict[str, int] = {
    # Not found
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "STUDENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "COURSE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "DOCUMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ENROLLMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CANCELLATION_REQUEST_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CONTRACT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TEMPLATE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NO_ACTIVE_TEMPLATE": status.HTTP_404_NOT_FOUND,
    "EVALUATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    # Access
    "NOT_ENROLLMENT_OWNER": status.HTTP_403_FORBIDDEN,
    "CONTRACT_ACCESS_DENIED": status.HTTP_403_FORBIDDEN,
    "EVALUATION_ACCESS_DENIED": status.HTTP_403_FORBIDDEN,
    # Conflicts
    "ALREADY_ENROLLED": status.HTTP_409_CONFLICT,
    "ENROLLMENT_CONFLICT": status.HTTP_409_CONFLICT,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "DOCUMENT_ALREADY_SUBMITTED": status.HTTP_409_CONFLICT,
    "DUPLICATE_CONTRACT": status.HTTP_409_CONFLICT,
    "CANCELLATION_ALREADY_REQUESTED": status.HTTP_409_CONFLICT,
    "REQUEST_ALREADY_REVIEWED": status.HTTP_409_CONFLICT,
    "ENROLLMENT_ALREADY_CANCELLED": status.HTTP_409_CONFLICT,
    # Downstream
    "CONTRACT_RENDER_FAILED": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_error(error: Exception) -> HTTPException:
    """Build the HTTPException for a coded domain error.

    Codes not listed above are business-rule violations (422).

    Args:
        error: Domain error with a ``code`` attribute.

    Returns:
        HTTPException carrying the coded detail body.
    """
    code = getattr(error, "code", "UNPROCESSABLE")
    return HTTPException(
        status_code=STATUS_BY_CODE.get(code, status.HTTP_422_UNPROCESSABLE_ENTITY),
        detail=ErrorDetail(code=code, message=str(error)).model_dump(),
    )
