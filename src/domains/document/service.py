# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document registry service.

This module provides the DocumentService class for:
- Listing the document types required from a role
- Recording uploads and superseding rejected documents
- Reviewing documents with an append-only audit trail
- Answering whether a user has every required document approved
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import Document, DocumentReview, DocumentType, User
from src.models.common import DocumentStatus, RequirementStatus, ReviewDecision
from src.models.document import (
    DocumentListResponse,
    DocumentResponse,
    DocumentReviewEntry,
    DocumentTypeResponse,
    RequirementItem,
    RequirementStatusResponse,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class DocumentServiceError(Exception):
    """Base exception for document service errors."""

    code = "DOCUMENT_ERROR"


class UserNotFoundError(DocumentServiceError):
    """Raised when the document owner does not exist."""

    code = "USER_NOT_FOUND"


class DocumentNotFoundError(DocumentServiceError):
    """Raised when a document is not found."""

    code = "DOCUMENT_NOT_FOUND"


class InvalidDocumentTypeError(DocumentServiceError):
    """Raised when the type does not exist or does not apply to the user's role."""

    code = "INVALID_DOCUMENT_TYPE"


class DocumentAlreadySubmittedError(DocumentServiceError):
    """Raised when a pending or approved document of the same type exists."""

    code = "DOCUMENT_ALREADY_SUBMITTED"


class MissingReviewNoteError(DocumentServiceError):
    """Raised when a rejection has no note."""

    code = "MISSING_REVIEW_NOTE"


class DocumentSupersededError(DocumentServiceError):
    """Raised when reviewing a document replaced by a newer upload."""

    code = "DOCUMENT_SUPERSEDED"


class DocumentService:
    """Service for the document registry.

    A user has at most one current (non-superseded) document per type.
    Approval state is never cached; is_fully_approved queries it each time.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize document service.

        Args:
            db: Async database session.
        """
        self.db = db

    # =========================================================================
    # Catalog
    # =========================================================================

    async def list_document_types(self, role: str | None = None) -> list[DocumentTypeResponse]:
        """List the document type catalog.

        Args:
            role: Optional role filter; includes types applicable to both.

        Returns:
            Document types ordered by name.
        """
        query = select(DocumentType)
        if role:
            query = query.where(DocumentType.applicable_role.in_([role, "both"]))
        query = query.order_by(DocumentType.name)

        result = await self.db.execute(query)
        return [DocumentTypeResponse.model_validate(t) for t in result.scalars().all()]

    async def list_required_types(self, role: str) -> list[DocumentType]:
        """List required document types applicable to a role.

        Args:
            role: User role (student, teacher, admin).

        Returns:
            Required DocumentType rows.
        """
        query = (
            select(DocumentType)
            .where(
                DocumentType.is_required.is_(True),
                or_(DocumentType.applicable_role == role, DocumentType.applicable_role == "both"),
            )
            .order_by(DocumentType.name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # =========================================================================
    # Uploads
    # =========================================================================

    async def record_upload(
        self,
        user_id: str,
        document_type_id: str,
        blob_ref: str,
        file_name: str | None = None,
    ) -> DocumentResponse:
        """Record an uploaded document in pending status.

        Args:
            user_id: Owner identifier.
            document_type_id: Document type identifier.
            blob_ref: Blob storage reference of the file.
            file_name: Original file name.

        Returns:
            The created document.

        Raises:
            UserNotFoundError: If the user does not exist.
            InvalidDocumentTypeError: If the type is unknown or not applicable.
            DocumentAlreadySubmittedError: If a pending or approved document exists.
        """
        user = await self._get_user(user_id)

        doc_type = await self.db.get(DocumentType, document_type_id)
        if doc_type is None:
            raise InvalidDocumentTypeError(f"Document type {document_type_id} not found")
        if not doc_type.applies_to(user.role):
            raise InvalidDocumentTypeError(
                f"Document type {doc_type.name} does not apply to role {user.role}"
            )

        current = await self._get_current_document(user_id, document_type_id)
        if current is not None:
            if current.status != DocumentStatus.REJECTED.value:
                raise DocumentAlreadySubmittedError(
                    f"A {current.status} document of this type already exists"
                )
            current.superseded_at = utc_now()
            await self.db.flush()
            logger.info(
                "Superseding rejected document: document=%s, user=%s, type=%s",
                current.id,
                user_id,
                document_type_id,
            )

        document = Document(
            user_id=user_id,
            document_type_id=document_type_id,
            blob_ref=blob_ref,
            file_name=file_name,
            status=DocumentStatus.PENDING.value,
        )

        self.db.add(document)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DocumentAlreadySubmittedError(
                "A document of this type was submitted concurrently"
            ) from e
        await self.db.refresh(document)

        logger.info(
            "Recorded document upload: document=%s, user=%s, type=%s",
            document.id,
            user_id,
            document_type_id,
        )

        return self._to_response(document)

    async def get_document(self, document_id: str) -> DocumentResponse:
        """Get a document by ID.

        Raises:
            DocumentNotFoundError: If not found.
        """
        return self._to_response(await self._get_document(document_id))

    async def list_documents(
        self,
        user_id: str,
        include_superseded: bool = False,
    ) -> DocumentListResponse:
        """List a user's documents, newest first.

        Args:
            user_id: Owner identifier.
            include_superseded: Include rejected documents that were replaced.

        Returns:
            Document list response.
        """
        query = select(Document).where(Document.user_id == user_id)
        if not include_superseded:
            query = query.where(Document.superseded_at.is_(None))
        query = query.order_by(Document.created_at.desc())

        result = await self.db.execute(query)
        items = [self._to_response(d) for d in result.scalars().all()]
        return DocumentListResponse(items=items, total=len(items))

    # =========================================================================
    # Review
    # =========================================================================

    async def review(
        self,
        document_id: str,
        decision: ReviewDecision,
        reviewer_id: str,
        note: str | None = None,
    ) -> DocumentResponse:
        """Approve or reject a document.

        Re-reviewing overwrites the previous decision; every review is
        appended to the document's history.

        Args:
            document_id: Document identifier.
            decision: approve or reject.
            reviewer_id: Reviewing user identifier.
            note: Review note, required for rejections.

        Returns:
            The reviewed document.

        Raises:
            DocumentNotFoundError: If not found.
            DocumentSupersededError: If the document was replaced.
            MissingReviewNoteError: If rejecting without a note.
        """
        decision = ReviewDecision(decision)
        document = await self._get_document(document_id)

        if document.superseded_at is not None:
            raise DocumentSupersededError(f"Document {document_id} was superseded")

        note = note.strip() if note else None
        if decision == ReviewDecision.REJECT and not note:
            raise MissingReviewNoteError("A note is required when rejecting a document")

        previous_status = document.status
        if previous_status != DocumentStatus.PENDING.value:
            logger.info(
                "Overwriting review: document=%s, previous=%s, reviewer=%s",
                document_id,
                previous_status,
                reviewer_id,
            )

        now = utc_now()
        document.status = (
            DocumentStatus.APPROVED.value
            if decision == ReviewDecision.APPROVE
            else DocumentStatus.REJECTED.value
        )
        document.reviewed_by = reviewer_id
        document.review_note = note
        document.reviewed_at = now

        self.db.add(
            DocumentReview(
                document_id=document.id,
                reviewer_id=reviewer_id,
                decision=decision.value,
                previous_status=previous_status,
                note=note,
                reviewed_at=now,
            )
        )
        await self.db.commit()
        await self.db.refresh(document)

        logger.info(
            "Reviewed document: document=%s, decision=%s, reviewer=%s",
            document_id,
            decision.value,
            reviewer_id,
        )

        return self._to_response(document)

    async def get_review_history(self, document_id: str) -> list[DocumentReviewEntry]:
        """Get a document's review history, oldest first.

        Raises:
            DocumentNotFoundError: If not found.
        """
        await self._get_document(document_id)

        result = await self.db.execute(
            select(DocumentReview)
            .where(DocumentReview.document_id == document_id)
            .order_by(DocumentReview.reviewed_at)
        )
        return [DocumentReviewEntry.model_validate(r) for r in result.scalars().all()]

    # =========================================================================
    # Approval gate
    # =========================================================================

    async def is_fully_approved(self, user_id: str) -> bool:
        """Check whether every required document type has an approved document.

        Args:
            user_id: User identifier.

        Returns:
            True if nothing required is missing, pending or rejected.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        status = await self.get_requirement_status(user_id)
        return status.fully_approved

    async def get_requirement_status(self, user_id: str) -> RequirementStatusResponse:
        """Get the document checklist for a user.

        Args:
            user_id: User identifier.

        Returns:
            Per-type status plus the overall approval flag.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        user = await self._get_user(user_id)
        required = await self.list_required_types(user.role)

        result = await self.db.execute(
            select(Document).where(
                Document.user_id == user_id,
                Document.superseded_at.is_(None),
            )
        )
        current = {d.document_type_id: d for d in result.scalars().all()}

        items = []
        for doc_type in required:
            document = current.get(doc_type.id)
            items.append(
                RequirementItem(
                    document_type_id=doc_type.id,
                    name=doc_type.name,
                    status=(
                        RequirementStatus(document.status)
                        if document
                        else RequirementStatus.NOT_SUBMITTED
                    ),
                    document_id=document.id if document else None,
                    review_note=document.review_note if document else None,
                )
            )

        return RequirementStatusResponse(
            user_id=user_id,
            role=user.role,
            fully_approved=all(i.status == RequirementStatus.APPROVED for i in items),
            requirements=items,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_user(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _get_document(self, document_id: str) -> Document:
        result = await self.db.execute(select(Document).where(Document.id == document_id))
        document = result.scalar_one_or_none()
        if not document:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    async def _get_current_document(self, user_id: str, document_type_id: str) -> Document | None:
        result = await self.db.execute(
            select(Document).where(
                Document.user_id == user_id,
                Document.document_type_id == document_type_id,
                Document.superseded_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    def _to_response(self, document: Document) -> DocumentResponse:
        return DocumentResponse.model_validate(document)
