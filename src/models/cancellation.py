# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cancellation request models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import CancellationStatus


class CancellationSubmitRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)


class CancellationReviewRequest(BaseModel):
    note: str | None = Field(default=None, max_length=2000)


class CancellationResponse(BaseModel):
    """A cancellation request."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    enrollment_id: str
    student_id: str
    reason: str
    status: CancellationStatus
    reviewed_by: str | None = None
    review_note: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class CancellationListResponse(BaseModel):
    items: list[CancellationResponse]
    total: int
