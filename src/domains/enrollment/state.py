# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment status transition table.

    awaiting_initial_approval --activate / accept--> active
    awaiting_renewal ----------activate / accept--> active
    active ------------------------------sweep----> awaiting_renewal
    any non-cancelled ------------cancellation----> cancelled
"""

from src.models.common import EnrollmentStatus

ALLOWED_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.AWAITING_INITIAL_APPROVAL: frozenset(
        {EnrollmentStatus.ACTIVE, EnrollmentStatus.CANCELLED}
    ),
    EnrollmentStatus.AWAITING_RENEWAL: frozenset(
        {EnrollmentStatus.ACTIVE, EnrollmentStatus.CANCELLED}
    ),
    EnrollmentStatus.ACTIVE: frozenset(
        {EnrollmentStatus.AWAITING_RENEWAL, EnrollmentStatus.CANCELLED}
    ),
    EnrollmentStatus.CANCELLED: frozenset(),
}

# States in which the document gate must hold before activation
GATED_STATES = frozenset(
    {EnrollmentStatus.AWAITING_INITIAL_APPROVAL, EnrollmentStatus.AWAITING_RENEWAL}
)


def can_transition(current: str | EnrollmentStatus, target: str | EnrollmentStatus) -> bool:
    """Check whether current -> target is a permitted transition."""
    return EnrollmentStatus(target) in ALLOWED_TRANSITIONS[EnrollmentStatus(current)]


def is_open(status: str | EnrollmentStatus) -> bool:
    """An open enrollment counts toward the one-per-student limit."""
    return EnrollmentStatus(status) != EnrollmentStatus.CANCELLED
