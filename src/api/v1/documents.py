# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document registry API endpoints.

- GET /document-types - Document type catalog
- POST /documents - Register an uploaded document
- GET /documents - List a user's documents
- GET /documents/{document_id} - Get document details
- POST /documents/{document_id}/review - Approve or reject (admin)
- GET /documents/{document_id}/reviews - Review history (admin)
- GET /users/{user_id}/document-approval - Requirement checklist
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, Request, status

from src.api.dependencies import AdminUser, AuthUser, DbSession, ensure_owner_or_admin
from src.api.errors import to_http_error
from src.api.middleware.rate_limit import RATE_LIMIT_UPLOAD, rate_limit
from src.domains.document import DocumentService, DocumentServiceError
from src.models.common import ApplicableRole
from src.models.document import (
    DocumentListResponse,
    DocumentResponse,
    DocumentReviewEntry,
    DocumentReviewRequest,
    DocumentTypeResponse,
    DocumentUploadRequest,
    RequirementStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/document-types",
    response_model=list[DocumentTypeResponse],
    summary="List document types",
)
async def list_document_types(
    current_user: AuthUser,
    db: DbSession,
    role: Annotated[ApplicableRole | None, Query(description="Filter by applicable role")] = None,
) -> list[DocumentTypeResponse]:
    """List the document type catalog."""
    return await DocumentService(db).list_document_types(role.value if role else None)


@router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register document",
    description="Register an uploaded file as a pending document.",
)
@rate_limit(RATE_LIMIT_UPLOAD)
async def register_document(
    request: Request,
    data: DocumentUploadRequest,
    current_user: AuthUser,
    db: DbSession,
) -> DocumentResponse:
    """Register a document for the caller, or for any user when admin.

    Raises:
        HTTPException: 422 INVALID_DOCUMENT_TYPE, 409 DOCUMENT_ALREADY_SUBMITTED.
    """
    user_id = data.user_id or current_user.id
    ensure_owner_or_admin(current_user, user_id)

    try:
        return await DocumentService(db).record_upload(
            user_id=user_id,
            document_type_id=data.document_type_id,
            blob_ref=data.blob_ref,
            file_name=data.file_name,
        )
    except DocumentServiceError as e:
        raise to_http_error(e)


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    summary="List documents",
)
async def list_documents(
    current_user: AuthUser,
    db: DbSession,
    user_id: Annotated[str | None, Query(description="Owner; defaults to the caller")] = None,
    include_superseded: Annotated[bool, Query(description="Include replaced rejections")] = False,
) -> DocumentListResponse:
    """List a user's documents."""
    user_id = user_id or current_user.id
    ensure_owner_or_admin(current_user, user_id)

    return await DocumentService(db).list_documents(user_id, include_superseded=include_superseded)


@router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    summary="Get document",
)
async def get_document(
    document_id: str,
    current_user: AuthUser,
    db: DbSession,
) -> DocumentResponse:
    """Get document details."""
    try:
        document = await DocumentService(db).get_document(document_id)
    except DocumentServiceError as e:
        raise to_http_error(e)

    ensure_owner_or_admin(current_user, document.user_id)
    return document


@router.post(
    "/documents/{document_id}/review",
    response_model=DocumentResponse,
    summary="Review document",
)
async def review_document(
    document_id: str,
    data: DocumentReviewRequest,
    current_user: AdminUser,
    db: DbSession,
) -> DocumentResponse:
    """Approve or reject a document.

    Raises:
        HTTPException: 404 if not found, 422 MISSING_REVIEW_NOTE or
            DOCUMENT_SUPERSEDED.
    """
    try:
        return await DocumentService(db).review(
            document_id=document_id,
            decision=data.decision,
            reviewer_id=current_user.id,
            note=data.note,
        )
    except DocumentServiceError as e:
        raise to_http_error(e)


@router.get(
    "/documents/{document_id}/reviews",
    response_model=list[DocumentReviewEntry],
    summary="Document review history",
)
async def get_review_history(
    document_id: str,
    current_user: AdminUser,
    db: DbSession,
) -> list[DocumentReviewEntry]:
    """Get a document's review history, oldest first."""
    try:
        return await DocumentService(db).get_review_history(document_id)
    except DocumentServiceError as e:
        raise to_http_error(e)


@router.get(
    "/users/{user_id}/document-approval",
    response_model=RequirementStatusResponse,
    summary="Document approval status",
)
async def get_document_approval(
    user_id: str,
    current_user: AuthUser,
    db: DbSession,
) -> RequirementStatusResponse:
    """Get the requirement checklist and overall approval flag of a user."""
    ensure_owner_or_admin(current_user, user_id)

    try:
        return await DocumentService(db).get_requirement_status(user_id)
    except DocumentServiceError as e:
        raise to_http_error(e)
