# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for batch outcome aggregation."""

import logging
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.api.v1.evaluations import _submit, batch_status_code
from src.domains.reenrollment.service import current_term
from src.models.batch import BatchResult, ItemFailure, ItemSkipped, ItemSuccess
from src.models.grading import GradeBatchRequest, GradeBatchResponse, GradeItem


def _failure(item_id: str) -> ItemFailure:
    return ItemFailure(item_id=item_id, code="STUDENT_NOT_IN_CLASS", message="Not a member")


class TestBatchResult:
    """Tests for BatchResult.from_outcomes."""

    def test_counts(self):
        batch = BatchResult.from_outcomes(
            [ItemSuccess(item_id="a"), _failure("b"), ItemSkipped(item_id="c", reason="blank_legacy_value")]
        )

        assert (batch.total, batch.success, batch.failed, batch.skipped) == (3, 1, 1, 1)
        assert batch.fully_applied is False
        assert batch.partially_applied is True

    def test_empty_batch_is_fully_applied(self):
        batch = BatchResult.from_outcomes([])

        assert batch.total == 0
        assert batch.fully_applied is True
        assert batch.partially_applied is False

    def test_all_failed_is_not_partial(self):
        batch = BatchResult.from_outcomes([_failure("a"), _failure("b")])

        assert batch.fully_applied is False
        assert batch.partially_applied is False

    def test_fully_applied_is_serialized(self):
        data = BatchResult.from_outcomes([ItemSuccess(item_id="a")]).model_dump(mode="json")

        assert data["fully_applied"] is True
        assert data["results"][0] == {"status": "success", "item_id": "a", "data": {}}

    def test_outcomes_parse_by_status(self):
        batch = BatchResult.model_validate(
            {
                "total": 2,
                "success": 1,
                "failed": 1,
                "results": [
                    {"status": "success", "item_id": "a"},
                    {"status": "failed", "item_id": "b", "code": "X", "message": "m"},
                ],
            }
        )

        assert isinstance(batch.results[0], ItemSuccess)
        assert isinstance(batch.results[1], ItemFailure)


class TestBatchStatusCode:
    """Tests for the HTTP status of a grade batch."""

    @pytest.mark.parametrize(
        ("success", "failed", "skipped", "expected"),
        [
            (3, 0, 0, 201),
            (0, 0, 2, 201),
            (2, 1, 0, 207),
            (0, 3, 0, 422),
            (0, 1, 1, 422),
        ],
    )
    def test_status(self, success, failed, skipped, expected):
        result = GradeBatchResponse(
            evaluation_id="e-1",
            total=success + failed + skipped,
            success=success,
            failed=failed,
            skipped=skipped,
        )

        assert batch_status_code(result) == expected

    @pytest.mark.asyncio
    async def test_route_logs_and_returns_partial_status(self, caplog):
        result = GradeBatchResponse(evaluation_id="e-1", total=2, success=1, failed=1)
        request = GradeBatchRequest(
            items=[GradeItem(student_id="s-1", grade=8), GradeItem(student_id="s-2", grade=7)]
        )
        teacher = MagicMock(id="t-1", is_admin=False)

        with patch("src.api.v1.evaluations.GradingService") as service_cls:
            service_cls.return_value.submit_batch = AsyncMock(return_value=result)
            with caplog.at_level(logging.INFO, logger="src.api.v1.evaluations"):
                response = await _submit(MagicMock(), "e-1", request, teacher, legacy_import=False)

        assert response.status_code == 207
        assert "Submitting grade batch: evaluation=e-1, items=2, legacy=False, by=t-1" in caplog.text


class TestCurrentTerm:
    @pytest.mark.parametrize(
        ("today", "expected"),
        [
            (date(2025, 1, 1), (1, 2025)),
            (date(2025, 6, 30), (1, 2025)),
            (date(2025, 7, 1), (2, 2025)),
            (date(2025, 12, 31), (2, 2025)),
        ],
    )
    def test_semester_boundaries(self, today, expected):
        assert current_term(today) == expected
