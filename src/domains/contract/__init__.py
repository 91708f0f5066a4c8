# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Contract domain package.

This package provides:
- Term contract generation and acceptance
- Template rendering through a fixed placeholder set
- Re-rendering of contracts whose document is missing
"""

from src.domains.contract.placeholders import ContractPlaceholders, build_placeholders
from src.domains.contract.renderer import render_template
from src.domains.contract.service import (
    ContractAccessDeniedError,
    ContractAlreadyAcceptedError,
    ContractNotFoundError,
    ContractRenderFailedError,
    ContractService,
    ContractServiceError,
    DuplicateContractError,
    EnrollmentCancelledError,
    EnrollmentMismatchError,
    EnrollmentNotFoundError,
    InvalidTermError,
    NoActiveTemplateError,
    TemplateNotFoundError,
    UserNotFoundError,
)

__all__ = [
    "ContractPlaceholders",
    "build_placeholders",
    "render_template",
    "ContractService",
    "ContractServiceError",
    "ContractAccessDeniedError",
    "ContractAlreadyAcceptedError",
    "ContractNotFoundError",
    "ContractRenderFailedError",
    "DuplicateContractError",
    "EnrollmentCancelledError",
    "EnrollmentMismatchError",
    "EnrollmentNotFoundError",
    "InvalidTermError",
    "NoActiveTemplateError",
    "TemplateNotFoundError",
    "UserNotFoundError",
]
