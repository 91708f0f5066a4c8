# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for contract placeholders and template rendering."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.domains.contract.placeholders import (
    ContractPlaceholders,
    build_placeholders,
    describe_duration,
)
from src.domains.contract.renderer import find_markers, render_template, unknown_markers
from src.infrastructure.database.seeds.catalog import DEFAULT_TEMPLATE_CONTENT


@pytest.fixture
def placeholders() -> ContractPlaceholders:
    """Placeholder set for a student in a four-semester course."""
    return build_placeholders(
        student_name="Maria Souza",
        student_id="s-1",
        course_name="Pedagogia",
        course_id="c-1",
        term_count=4,
        semester=2,
        year=2025,
        institution_name="Faculdade Exemplo",
        today=date(2025, 7, 3),
    )


class TestPlaceholders:
    """Tests for ContractPlaceholders."""

    def test_names_are_camel_case(self):
        assert set(ContractPlaceholders.names()) == {
            "studentName",
            "studentId",
            "courseName",
            "courseId",
            "duration",
            "semester",
            "year",
            "institutionName",
            "currentDate",
        }

    def test_values_are_strings(self, placeholders):
        mapping = placeholders.as_mapping()

        assert mapping["semester"] == "2"
        assert mapping["year"] == "2025"
        assert mapping["currentDate"] == "03/07/2025"
        assert mapping["duration"] == "4 semesters"

    def test_braces_are_stripped(self):
        values = build_placeholders(
            student_name="{{courseName}} Maria",
            student_id="s-1",
            course_name=None,
            course_id=None,
            term_count=None,
            semester=1,
            year=2025,
            institution_name="X",
        )

        assert values.student_name == "courseName Maria"

    def test_frozen(self, placeholders):
        with pytest.raises(ValidationError):
            placeholders.student_name = "Other"

    @pytest.mark.parametrize(
        ("term_count", "expected"),
        [(1, "1 semester"), (8, "8 semesters"), (None, "as per curriculum"), (0, "as per curriculum")],
    )
    def test_describe_duration(self, term_count, expected):
        assert describe_duration(term_count) == expected

    def test_contract_without_course(self):
        values = build_placeholders(
            student_name="Maria",
            student_id="s-1",
            course_name=None,
            course_id=None,
            term_count=None,
            semester=1,
            year=2025,
            institution_name="X",
        )

        assert values.duration == "1 semester"
        assert values.course_name == ""


class TestRenderTemplate:
    """Tests for render_template."""

    def test_substitutes_declared_markers(self, placeholders):
        rendered = render_template("{{studentName}} - {{ courseName }} {{semester}}/{{year}}", placeholders)

        assert rendered == "Maria Souza - Pedagogia 2/2025"

    def test_unknown_markers_left_untouched(self, placeholders):
        rendered = render_template("Dear {{studentName}}, fee {{tuitionFee}}", placeholders)

        assert rendered == "Dear Maria Souza, fee {{tuitionFee}}"

    def test_snake_case_names_are_not_markers_of_the_set(self, placeholders):
        rendered = render_template("{{student_name}}", placeholders)

        assert rendered == "{{student_name}}"

    def test_marker_inspection(self):
        content = "{{studentName}} {{tuitionFee}} {{year}}"

        assert find_markers(content) == {"studentName", "tuitionFee", "year"}
        assert unknown_markers(content) == {"tuitionFee"}

    def test_default_template_uses_only_known_markers(self, placeholders):
        assert unknown_markers(DEFAULT_TEMPLATE_CONTENT) == set()

        rendered = render_template(DEFAULT_TEMPLATE_CONTENT, placeholders)

        assert "{{" not in rendered
        assert "Maria Souza" in rendered
        assert "Faculdade Exemplo" in rendered

    def test_values_are_html_escaped(self):
        placeholders = build_placeholders(
            student_name='<script>alert("x")</script> & Co',
            student_id="s-1",
            course_name="Pedagogia",
            course_id="c-1",
            term_count=4,
            semester=1,
            year=2025,
            institution_name="Faculdade Exemplo",
            today=date(2025, 2, 3),
        )

        rendered = render_template(DEFAULT_TEMPLATE_CONTENT, placeholders)

        assert "<script>" not in rendered
        assert "&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt; &amp; Co" in rendered
