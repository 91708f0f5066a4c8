# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Batch grade submission models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.batch import BatchResult


class GradeItem(BaseModel):
    """One write in a grade batch.

    Values are validated per item by the service so one bad item does not
    reject the whole request.
    """

    student_id: str
    grade: Any | None = Field(default=None, description="Numeric grade 0-10, for grade evaluations")
    concept: Any | None = Field(default=None, description="satisfactory or unsatisfactory")


class GradeBatchRequest(BaseModel):
    items: list[GradeItem] = Field(min_length=1, max_length=500)


class GradeBatchResponse(BatchResult):
    """Batch outcome for one evaluation."""

    evaluation_id: str


class GradeResponse(BaseModel):
    """A recorded grade."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    evaluation_id: str
    student_id: str
    grade: float | None = None
    concept: str | None = None
    created_at: datetime
    updated_at: datetime


class GradeListResponse(BaseModel):
    evaluation_id: str
    items: list[GradeResponse]
    total: int
