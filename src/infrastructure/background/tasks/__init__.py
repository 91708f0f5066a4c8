# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors.

Usage:
    from src.infrastructure.background.tasks import render_contract_document

    render_contract_document.send(contract_id)

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4
"""

from src.infrastructure.background.tasks.enrollment import (
    reenrollment_sweep_job,
    regenerate_contract_documents_job,
    render_contract_document,
)

__all__ = [
    "reenrollment_sweep_job",
    "regenerate_contract_documents_job",
    "render_contract_document",
]
