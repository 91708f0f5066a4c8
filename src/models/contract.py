# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Contract request and response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ContractGenerateRequest(BaseModel):
    """Generate a contract for a user and term."""

    user_id: str
    enrollment_id: str | None = None
    semester: int = Field(ge=1, le=2)
    year: int = Field(ge=2000, le=2100)
    template_id: str | None = Field(default=None, description="Defaults to the first active template")


class ContractResponse(BaseModel):
    """A contract record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    enrollment_id: str | None = None
    user_id: str
    template_id: str
    document_ref: str | None = None
    file_name: str | None = None
    accepted_at: datetime | None = None
    semester: int
    year: int
    created_at: datetime


class ContractListResponse(BaseModel):
    items: list[ContractResponse]
    total: int


class ContractDocumentResponse(BaseModel):
    contract_id: str
    document_ref: str
    file_name: str | None = None
