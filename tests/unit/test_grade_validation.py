# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for grade value validation and legacy import rules."""

import pytest

from src.domains.grading.legacy import clamp_legacy_grade, is_blank, parse_legacy_number
from src.domains.grading.service import GradeItemError, validate_grade_value


def _code(evaluation_type, grade, concept, legacy_import=False) -> str:
    with pytest.raises(GradeItemError) as exc_info:
        validate_grade_value(evaluation_type, grade, concept, legacy_import)
    return exc_info.value.code


class TestLegacyHelpers:
    """Tests for the legacy sheet helpers."""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", [0, "0", "7,5"])
    def test_not_blank(self, value):
        assert not is_blank(value)

    def test_decimal_comma(self):
        assert parse_legacy_number(" 7,5 ") == 7.5

    def test_non_numeric(self):
        with pytest.raises(ValueError):
            parse_legacy_number("ten")

    def test_clamp(self):
        assert clamp_legacy_grade(10.5) == 10.0
        assert clamp_legacy_grade(9.25) == 9.25


class TestGradeEvaluations:
    """Tests for numeric grade evaluations."""

    @pytest.mark.parametrize(("grade", "expected"), [(0, 0.0), (10, 10.0), ("8.5", 8.5), (7.456, 7.46)])
    def test_valid(self, grade, expected):
        assert validate_grade_value("grade", grade, None) == (expected, None)

    def test_missing(self):
        assert _code("grade", None, None) == "MISSING_GRADE_VALUE"

    @pytest.mark.parametrize("grade", ["abc", True, float("nan"), float("inf")])
    def test_invalid_format(self, grade):
        assert _code("grade", grade, None) == "INVALID_GRADE_FORMAT"

    def test_negative_always_rejected(self):
        assert _code("grade", -1, None) == "GRADE_OUT_OF_RANGE"
        assert _code("grade", -1, None, legacy_import=True) == "GRADE_OUT_OF_RANGE"

    def test_above_ten_rejected_for_new_entries(self):
        assert _code("grade", 10.5, None) == "GRADE_OUT_OF_RANGE"

    def test_above_ten_clamped_for_legacy(self):
        assert validate_grade_value("grade", "12,0", None, legacy_import=True) == (10.0, None)

    def test_decimal_comma_only_for_legacy(self):
        assert _code("grade", "7,5", None) == "INVALID_GRADE_FORMAT"
        assert validate_grade_value("grade", "7,5", None, legacy_import=True) == (7.5, None)

    def test_concept_on_grade_evaluation(self):
        assert _code("grade", 8, "satisfactory") == "VALUE_TYPE_MISMATCH"


class TestConceptEvaluations:
    """Tests for concept evaluations."""

    @pytest.mark.parametrize("concept", ["satisfactory", " Unsatisfactory "])
    def test_valid(self, concept):
        grade, value = validate_grade_value("concept", None, concept)

        assert grade is None
        assert value == concept.strip().lower()

    def test_missing(self):
        assert _code("concept", None, "  ") == "MISSING_CONCEPT_VALUE"

    @pytest.mark.parametrize("concept", ["excellent", 5])
    def test_invalid(self, concept):
        assert _code("concept", None, concept) == "INVALID_CONCEPT_VALUE"

    def test_grade_on_concept_evaluation(self):
        assert _code("concept", 7, "satisfactory") == "VALUE_TYPE_MISMATCH"

    def test_blank_grade_cell_ignored(self):
        assert validate_grade_value("concept", "", "satisfactory") == (None, "satisfactory")
