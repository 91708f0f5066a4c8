# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rules for grades imported from the legacy report-card system.

Legacy sheets store grades as text, sometimes with a decimal comma, and
contain a few values above the 0-10 scale. Those are clamped to 10 on
import; new entries above 10 are rejected instead.
"""

MAX_GRADE = 10.0


def is_blank(value: object) -> bool:
    """Blank cells are not imported."""
    return value is None or (isinstance(value, str) and not value.strip())


def parse_legacy_number(value: object) -> float:
    """Parse a legacy cell, accepting a decimal comma.

    Raises:
        ValueError: If the cell is not numeric.
    """
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    return float(value)  # type: ignore[arg-type]


def clamp_legacy_grade(value: float) -> float:
    """Clamp a legacy grade to the top of the scale."""
    return MAX_GRADE if value > MAX_GRADE else value
