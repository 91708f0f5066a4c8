# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed package.

Seeds the document type catalog and the default contract template.
"""

from src.infrastructure.database.seeds.catalog import (
    seed_catalog,
    seed_contract_template,
    seed_document_types,
)

__all__ = ["seed_catalog", "seed_contract_template", "seed_document_types"]
