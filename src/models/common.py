# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enumerations and error payloads."""

from enum import Enum

from pydantic import BaseModel, Field


class ApplicableRole(str, Enum):
    """Roles a document type applies to."""

    STUDENT = "student"
    TEACHER = "teacher"
    BOTH = "both"


class DocumentStatus(str, Enum):
    """Review status of an uploaded document."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequirementStatus(str, Enum):
    """Status of a required document type for one user."""

    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewDecision(str, Enum):
    """Reviewer decision on a document."""

    APPROVE = "approve"
    REJECT = "reject"


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle state.

    awaiting_initial_approval and awaiting_renewal both block access until
    resolved; the first waits for the document gate, the second for the
    next term's contract acceptance.
    """

    AWAITING_INITIAL_APPROVAL = "awaiting_initial_approval"
    ACTIVE = "active"
    AWAITING_RENEWAL = "awaiting_renewal"
    CANCELLED = "cancelled"


class CancellationStatus(str, Enum):
    """Cancellation request status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContractDisposition(str, Enum):
    """Filter for contract listings."""

    PENDING = "pending"
    ACCEPTED = "accepted"


class EvaluationType(str, Enum):
    """How an evaluation is scored."""

    GRADE = "grade"
    CONCEPT = "concept"


class Concept(str, Enum):
    """Concept outcome for concept-type evaluations."""

    SATISFACTORY = "satisfactory"
    UNSATISFACTORY = "unsatisfactory"


class ErrorDetail(BaseModel):
    """Machine-readable error body returned in HTTPException.detail."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable message")
