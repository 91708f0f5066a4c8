# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document registry request and response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.common import (
    ApplicableRole,
    DocumentStatus,
    RequirementStatus,
    ReviewDecision,
)


class DocumentTypeResponse(BaseModel):
    """A document type from the catalog."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    applicable_role: ApplicableRole
    is_required: bool


class DocumentUploadRequest(BaseModel):
    """Register an uploaded document.

    The file itself is already in blob storage; only its reference is
    recorded. Admins may upload on behalf of another user.
    """

    document_type_id: str
    blob_ref: str = Field(min_length=1, max_length=512)
    file_name: str | None = Field(default=None, max_length=255)
    user_id: str | None = Field(default=None, description="Owner; defaults to the caller")


class DocumentReviewRequest(BaseModel):
    """Approve or reject a document."""

    decision: ReviewDecision
    note: str | None = Field(default=None, max_length=2000)


class DocumentResponse(BaseModel):
    """An uploaded document."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    document_type_id: str
    blob_ref: str
    file_name: str | None = None
    status: DocumentStatus
    reviewed_by: str | None = None
    review_note: str | None = None
    reviewed_at: datetime | None = None
    superseded_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class DocumentListResponse(BaseModel):
    items: list[DocumentResponse]
    total: int


class DocumentReviewEntry(BaseModel):
    """One row of a document's review history."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    document_id: str
    reviewer_id: str
    decision: ReviewDecision
    previous_status: DocumentStatus
    note: str | None = None
    reviewed_at: datetime


class RequirementItem(BaseModel):
    """Status of one required document type for a user."""

    document_type_id: str
    name: str
    status: RequirementStatus
    document_id: str | None = None
    review_note: str | None = None


class RequirementStatusResponse(BaseModel):
    """Document checklist for one user."""

    user_id: str
    role: str
    fully_approved: bool
    requirements: list[RequirementItem]

    @model_validator(mode="after")
    def _check_consistency(self) -> "RequirementStatusResponse":
        if self.fully_approved and any(
            r.status != RequirementStatus.APPROVED for r in self.requirements
        ):
            raise ValueError("fully_approved requires every requirement approved")
        return self

    @property
    def pending_types(self) -> list[RequirementItem]:
        return [r for r in self.requirements if r.status != RequirementStatus.APPROVED]
