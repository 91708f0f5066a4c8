# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

Each domain module provides a service class that owns its business rules
and works on an AsyncSession handed in by the caller.

Domains:
    auth: Bearer token decoding.
    document: Document registry and the approval gate.
    enrollment: Enrollment records and the status state machine.
    cancellation: Student cancellation requests.
    contract: Term contracts, rendering and acceptance.
    reenrollment: Term rollover sweep.
    grading: Batch grade submission.
"""
