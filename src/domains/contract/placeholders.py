# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""The fixed set of values a contract template may reference.

Templates use camelCase markers such as ``{{studentName}}``; the field
aliases below are the complete list of names that get substituted.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from src.utils.datetime import format_date_br, utc_today


class ContractPlaceholders(BaseModel):
    """Values substituted into a contract template."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    student_name: str
    student_id: str
    course_name: str
    course_id: str
    duration: str
    semester: str
    year: str
    institution_name: str
    current_date: str

    @field_validator("*", mode="before")
    @classmethod
    def _to_plain_string(cls, value: object) -> str:
        # Values must not be able to introduce new markers
        return str(value if value is not None else "").replace("{", "").replace("}", "")

    @classmethod
    def names(cls) -> list[str]:
        """Marker names a template may use."""
        return [field.alias or name for name, field in cls.model_fields.items()]

    def as_mapping(self) -> dict[str, str]:
        """Return marker name -> value."""
        return self.model_dump(by_alias=True)


def describe_duration(term_count: int | None) -> str:
    """Human-readable course length."""
    if not term_count:
        return "as per curriculum"
    return f"{term_count} semester" if term_count == 1 else f"{term_count} semesters"


def build_placeholders(
    *,
    student_name: str,
    student_id: str,
    course_name: str | None,
    course_id: str | None,
    term_count: int | None,
    semester: int,
    year: int,
    institution_name: str,
    today: date | None = None,
) -> ContractPlaceholders:
    """Assemble the placeholder set for one contract."""
    return ContractPlaceholders(
        student_name=student_name,
        student_id=student_id,
        course_name=course_name or "",
        course_id=course_id or "",
        duration=describe_duration(term_count) if course_id else "1 semester",
        semester=semester,
        year=year,
        institution_name=institution_name,
        current_date=format_date_br(today or utc_today()),
    )
