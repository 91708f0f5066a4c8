# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-item outcomes and the aggregate result of a batch operation.

Used by batch grade submission, the reenrollment sweep and contract
document regeneration.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, computed_field


class ItemSuccess(BaseModel):
    """An item that was applied."""

    status: Literal["success"] = "success"
    item_id: str = Field(description="Identifier of the processed item")
    data: dict[str, Any] = Field(default_factory=dict)


class ItemFailure(BaseModel):
    """An item that was rejected; nothing was written for it."""

    status: Literal["failed"] = "failed"
    item_id: str
    code: str = Field(description="Machine-readable failure code")
    message: str


class ItemSkipped(BaseModel):
    """An item that needed no work."""

    status: Literal["skipped"] = "skipped"
    item_id: str
    reason: str


ItemOutcome = Annotated[
    Union[ItemSuccess, ItemFailure, ItemSkipped],
    Field(discriminator="status"),
]


class BatchResult(BaseModel):
    """Aggregate of per-item outcomes."""

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    results: list[ItemOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def fully_applied(self) -> bool:
        """True when no item failed."""
        return self.failed == 0

    @property
    def partially_applied(self) -> bool:
        return self.failed > 0 and self.success > 0

    @classmethod
    def from_outcomes(cls, outcomes: list[ItemSuccess | ItemFailure | ItemSkipped]) -> "BatchResult":
        """Build the summary counters from a list of outcomes."""
        return cls(
            total=len(outcomes),
            success=sum(1 for o in outcomes if o.status == "success"),
            failed=sum(1 for o in outcomes if o.status == "failed"),
            skipped=sum(1 for o in outcomes if o.status == "skipped"),
            results=list(outcomes),
        )
