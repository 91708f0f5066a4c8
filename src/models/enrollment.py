# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request and response models."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import EnrollmentStatus


class EnrollmentCreateRequest(BaseModel):
    """Create an enrollment for a student in a course."""

    student_id: str
    course_id: str
    enrollment_date: date | None = Field(default=None, description="Defaults to today (UTC)")


class EnrollmentResponse(BaseModel):
    """An enrollment record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    course_id: str
    status: EnrollmentStatus
    enrollment_date: date
    activated_at: datetime | None = None
    cancelled_at: datetime | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class EnrollmentListResponse(BaseModel):
    items: list[EnrollmentResponse]
    total: int
