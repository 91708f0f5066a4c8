# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for integration tests.

Each test gets a fresh in-memory SQLite database with the full schema,
plus a factory for the rows the scenarios need.
"""

from collections.abc import AsyncIterator
from datetime import date
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from src.core.config.settings import ContractSettings, StorageSettings
from src.domains.contract.service import ContractService
from src.infrastructure.database.connection import build_sessionmaker, enable_sqlite_savepoints
from src.infrastructure.database.models import (
    Class,
    ClassStudent,
    ContractTemplate,
    Course,
    Discipline,
    Document,
    DocumentType,
    Enrollment,
    Evaluation,
    User,
)
from src.infrastructure.database.models.base import Base
from src.infrastructure.database.seeds.catalog import DEFAULT_TEMPLATE_CONTENT
from src.infrastructure.storage.blob_store import LocalBlobStore


@pytest_asyncio.fixture
async def db_engine() -> AsyncIterator[AsyncEngine]:
    """Create an in-memory database with every table."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Create a session configured like the application's."""
    async with build_sessionmaker(db_engine)() as session:
        yield session


@pytest.fixture
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def contract_service(db_session: AsyncSession, blob_store: LocalBlobStore, tmp_path: Path) -> ContractService:
    """Contract service rendering into a temporary directory."""
    return ContractService(
        db_session,
        blob_store=blob_store,
        contract_settings=ContractSettings(institution_name="Faculdade Exemplo", render_on_generate=True),
        storage_settings=StorageSettings(root=tmp_path / "blobs"),
    )


class Factory:
    """Creates committed rows for integration scenarios."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def user(self, role: str = "student", full_name: str = "Maria Souza") -> User:
        return await self._save(
            User(email=f"{uuid4().hex[:12]}@example.com", full_name=full_name, role=role)
        )

    async def course(self, name: str = "Pedagogia", term_count: int = 8) -> Course:
        return await self._save(Course(name=name, term_count=term_count))

    async def document_type(self, role: str = "student", required: bool = True) -> DocumentType:
        return await self._save(
            DocumentType(name=f"Document {uuid4().hex[:6]}", applicable_role=role, is_required=required)
        )

    async def document(self, user: User, doc_type: DocumentType, status: str = "pending") -> Document:
        return await self._save(
            Document(
                user_id=user.id,
                document_type_id=doc_type.id,
                blob_ref=f"uploads/{uuid4().hex}.pdf",
                status=status,
            )
        )

    async def template(self, content: str = DEFAULT_TEMPLATE_CONTENT, active: bool = True) -> ContractTemplate:
        return await self._save(ContractTemplate(name="Enrollment contract", content=content, is_active=active))

    async def enrollment(self, student: User, course: Course, status: str = "active") -> Enrollment:
        return await self._save(
            Enrollment(student_id=student.id, course_id=course.id, status=status, version=1)
        )

    async def evaluation(self, teacher: User, members: list[User], type_: str = "grade") -> Evaluation:
        klass = await self._save(Class(name="Turma A", semester=1, year=2025))
        discipline = await self._save(Discipline(name="Didática"))
        for student in members:
            self.session.add(ClassStudent(class_id=klass.id, student_id=student.id))
        return await self._save(
            Evaluation(
                class_id=klass.id,
                teacher_id=teacher.id,
                discipline_id=discipline.id,
                name="Prova 1",
                evaluation_date=date(2025, 4, 10),
                type=type_,
            )
        )


@pytest.fixture
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)
