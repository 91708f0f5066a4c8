# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog seed data.

This module seeds the reference data the enrollment core depends on:
- Document types required from students and teachers
- The default enrollment contract template

Seeding is idempotent: each step is skipped when rows already exist.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import ContractTemplate, DocumentType

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "Default Enrollment Contract"

DEFAULT_TEMPLATE_CONTENT = """<!DOCTYPE html>
<html lang="pt-BR">
<head><meta charset="UTF-8"><title>Enrollment Contract</title></head>
<body>
<h1>{{institutionName}}</h1>
<h2>Enrollment Contract - {{semester}}/{{year}}</h2>
<p>Student: <strong>{{studentName}}</strong> (ID {{studentId}})</p>
<p>Course: <strong>{{courseName}}</strong> (ID {{courseId}}), {{duration}}</p>
<p>
The student named above enrolls in the course for semester {{semester}} of {{year}}
and agrees to the academic rules of {{institutionName}}.
</p>
<p>Issued on {{currentDate}}.</p>
</body>
</html>
"""

DOCUMENT_TYPES = [
    # Students
    {"name": "Identity document (front and back)", "applicable_role": "student", "is_required": True},
    {"name": "Taxpayer registration", "applicable_role": "student", "is_required": True},
    {"name": "Proof of residence", "applicable_role": "student", "is_required": True},
    {"name": "Photo 3x4", "applicable_role": "student", "is_required": True},
    {"name": "High school completion certificate", "applicable_role": "student", "is_required": True},
    {"name": "High school transcript", "applicable_role": "student", "is_required": True},
    {"name": "Birth or marriage certificate", "applicable_role": "student", "is_required": False},
    {"name": "Voter registration", "applicable_role": "student", "is_required": False},
    {"name": "Military service certificate", "applicable_role": "student", "is_required": False},
    # Teachers
    {"name": "Identity document (front and back)", "applicable_role": "teacher", "is_required": True},
    {"name": "Taxpayer registration", "applicable_role": "teacher", "is_required": True},
    {"name": "Proof of residence", "applicable_role": "teacher", "is_required": True},
    {"name": "Photo 3x4", "applicable_role": "teacher", "is_required": True},
    {"name": "Higher education diploma", "applicable_role": "teacher", "is_required": True},
    {"name": "Curriculum vitae", "applicable_role": "teacher", "is_required": False},
]


async def seed_document_types(session: AsyncSession) -> list[DocumentType]:
    """Seed the document type catalog.

    Args:
        session: Database session.

    Returns:
        List of created document types (empty when already seeded).
    """
    existing = await session.scalar(select(func.count()).select_from(DocumentType))
    if existing:
        logger.info("Document types already present (%d), skipping", existing)
        return []

    document_types = [DocumentType(**data) for data in DOCUMENT_TYPES]
    session.add_all(document_types)
    await session.flush()

    logger.info("Seeded %d document types", len(document_types))
    return document_types


async def seed_contract_template(session: AsyncSession) -> ContractTemplate | None:
    """Seed the default contract template.

    Args:
        session: Database session.

    Returns:
        Created template, or None when one with the default name exists.
    """
    result = await session.execute(
        select(ContractTemplate).where(ContractTemplate.name == DEFAULT_TEMPLATE_NAME).limit(1)
    )
    if result.scalar_one_or_none() is not None:
        logger.info("Default contract template already present, skipping")
        return None

    template = ContractTemplate(
        name=DEFAULT_TEMPLATE_NAME,
        content=DEFAULT_TEMPLATE_CONTENT,
        is_active=True,
    )
    session.add(template)
    await session.flush()

    logger.info("Seeded default contract template: %s", template.id)
    return template


async def seed_catalog(session: AsyncSession) -> dict:
    """Seed all catalog reference data.

    Args:
        session: Database session.

    Returns:
        Dictionary with seeded entities.
    """
    logger.info("Seeding catalog...")

    document_types = await seed_document_types(session)
    template = await seed_contract_template(session)

    await session.commit()

    logger.info("Catalog seeding complete")

    return {
        "document_types": document_types,
        "contract_template": template,
    }
