# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    enrollments: Enrollment lifecycle and cancellation submission.
    cancellation_requests: Cancellation review (admin).
    documents: Document catalog, uploads, review and approval status.
    contracts: Contract generation, acceptance and documents.
    reenrollment: Manual term rollover sweep.
    evaluations: Batch grade submission and legacy import.
"""

from fastapi import APIRouter

from src.api.v1 import (
    cancellation_requests,
    contracts,
    documents,
    enrollments,
    evaluations,
    reenrollment,
)

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
router.include_router(
    cancellation_requests.router,
    prefix="/cancellation-requests",
    tags=["Cancellation Requests"],
)
router.include_router(documents.router, tags=["Documents"])
router.include_router(contracts.router, prefix="/contracts", tags=["Contracts"])
router.include_router(reenrollment.router, prefix="/reenrollment", tags=["Reenrollment"])
router.include_router(evaluations.router, prefix="/evaluations", tags=["Evaluations"])

__all__ = ["router"]
