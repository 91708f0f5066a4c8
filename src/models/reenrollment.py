# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reenrollment sweep models."""

from pydantic import BaseModel, Field

from src.models.batch import BatchResult


class SweepRequest(BaseModel):
    """Parameters for an admin-triggered sweep; all default to the current term."""

    semester: int | None = Field(default=None, ge=1, le=2)
    year: int | None = Field(default=None, ge=2000, le=2100)
    template_id: str | None = None


class SweepResponse(BatchResult):
    """Sweep outcome for one target term."""

    semester: int
    year: int
