# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the enrollment lifecycle against a real database.

Covers the document gate, contract generation and acceptance, the
reenrollment sweep, cancellation requests and batch grading.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from src.domains.cancellation.service import (
    CancellationAlreadyRequestedError,
    CancellationService,
    RequestAlreadyReviewedError,
)
from src.domains.contract.service import (
    ContractAlreadyAcceptedError,
    DuplicateContractError,
    EnrollmentCancelledError,
)
from src.domains.document.service import DocumentAlreadySubmittedError, DocumentService
from src.domains.enrollment.service import (
    AlreadyEnrolledError,
    DocumentsPendingError,
    EnrollmentConflictError,
    EnrollmentService,
)
from src.domains.grading.service import GradingService
from src.domains.reenrollment.service import InvalidTermError, ReenrollmentService
from src.infrastructure.database.models import Contract, Enrollment, Grade
from src.infrastructure.storage.blob_store import BlobStorageError
from src.models.common import ReviewDecision
from src.models.grading import GradeItem

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest_asyncio.fixture
async def student(factory):
    return await factory.user("student")


@pytest_asyncio.fixture
async def admin(factory):
    return await factory.user("admin", full_name="Secretaria")


@pytest_asyncio.fixture
async def course(factory):
    return await factory.course(term_count=4)


class TestDocumentGate:
    """Activation waits for every required document."""

    async def test_activation_blocked_while_documents_pending(self, db_session, factory, student, course):
        doc_type = await factory.document_type()
        await factory.document(student, doc_type, status="pending")
        service = EnrollmentService(db_session)
        enrollment = await service.create_enrollment(student.id, course.id)

        with pytest.raises(DocumentsPendingError):
            await service.activate(enrollment.id)

        refreshed = await service.get_enrollment(enrollment.id)
        assert refreshed.status == "awaiting_initial_approval"
        assert refreshed.version == 1

    async def test_activation_after_review(self, db_session, factory, student, admin, course):
        doc_type = await factory.document_type()
        await factory.document_type(required=False)
        documents = DocumentService(db_session)
        uploaded = await documents.record_upload(student.id, doc_type.id, "uploads/rg.pdf", "rg.pdf")
        await documents.review(uploaded.id, ReviewDecision.APPROVE, admin.id)

        service = EnrollmentService(db_session)
        enrollment = await service.create_enrollment(student.id, course.id)
        activated = await service.activate(enrollment.id, activated_by=admin.id)

        assert activated.status == "active"
        assert activated.version == 2
        assert activated.activated_at is not None

        again = await service.activate(enrollment.id)
        assert again.version == 2

    async def test_rejected_document_can_be_replaced(self, db_session, factory, student, admin):
        doc_type = await factory.document_type()
        documents = DocumentService(db_session)
        first = await documents.record_upload(student.id, doc_type.id, "uploads/v1.pdf")
        await documents.review(first.id, "reject", admin.id, note="Illegible scan")

        second = await documents.record_upload(student.id, doc_type.id, "uploads/v2.pdf")

        current = await documents.list_documents(student.id)
        history = await documents.list_documents(student.id, include_superseded=True)
        assert [d.id for d in current.items] == [second.id]
        assert history.total == 2
        assert len(await documents.get_review_history(first.id)) == 1

    async def test_one_open_enrollment_per_student(self, db_session, factory, student, course):
        service = EnrollmentService(db_session)
        await service.create_enrollment(student.id, course.id)

        with pytest.raises(AlreadyEnrolledError):
            await service.create_enrollment(student.id, course.id)

    async def test_one_current_document_per_type_in_storage(self, db_session, factory, student):
        doc_type = await factory.document_type()
        await factory.document(student, doc_type, status="pending")

        with pytest.raises(IntegrityError):
            await factory.document(student, doc_type, status="pending")
        await db_session.rollback()

    async def test_concurrent_upload_is_rejected(self, db_session, factory, student):
        doc_type = await factory.document_type()
        student_id, doc_type_id = student.id, doc_type.id
        documents = DocumentService(db_session)
        first = await documents.record_upload(student_id, doc_type_id, "uploads/a.pdf")

        # The second writer did not see the first upload.
        with patch.object(documents, "_get_current_document", AsyncMock(return_value=None)):
            with pytest.raises(DocumentAlreadySubmittedError):
                await documents.record_upload(student_id, doc_type_id, "uploads/b.pdf")

        current = await documents.list_documents(student_id)
        assert [d.id for d in current.items] == [first.id]

    async def test_stale_cancel_loses_to_activation(self, db_session, factory, student, course):
        enrollment = await factory.enrollment(student, course, status="awaiting_initial_approval")
        stale = Enrollment(
            id=enrollment.id,
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            status=enrollment.status,
            version=enrollment.version,
        )
        service = EnrollmentService(db_session)

        await service.activate(enrollment.id)

        with pytest.raises(EnrollmentConflictError):
            await service.cancel(stale)

        current = await service.get_enrollment(enrollment.id)
        assert (current.status, current.version) == ("active", 2)


class TestContracts:
    """Contract generation and acceptance."""

    async def test_duplicate_contract_rejected(self, contract_service, factory, student, course):
        await factory.template()
        enrollment = await factory.enrollment(student, course, status="awaiting_initial_approval")
        first = await contract_service.generate(student.id, 1, 2025, enrollment_id=enrollment.id)

        with pytest.raises(DuplicateContractError):
            await contract_service.generate(student.id, 1, 2025, enrollment_id=enrollment.id)

        unchanged = await contract_service.get_contract(first.id)
        assert unchanged.document_ref == first.document_ref
        assert unchanged.accepted_at is None

    async def test_duplicate_contract_caught_by_storage(self, db_session, contract_service, factory, student, course):
        await factory.template()
        enrollment = await factory.enrollment(student, course, status="awaiting_initial_approval")
        student_id, enrollment_id = student.id, enrollment.id
        await contract_service.generate(student_id, 1, 2025, enrollment_id=enrollment_id)

        with patch.object(contract_service, "find_term_contract", AsyncMock(return_value=None)):
            with pytest.raises(DuplicateContractError):
                await contract_service.generate(student_id, 1, 2025, enrollment_id=enrollment_id)

        count = await db_session.scalar(
            select(func.count()).select_from(Contract).where(Contract.enrollment_id == enrollment_id)
        )
        assert count == 1

    async def test_render_failure_keeps_contract(self, db_session, contract_service, blob_store, factory, student):
        await factory.template()

        with patch.object(blob_store, "put", AsyncMock(side_effect=BlobStorageError("disk full"))):
            contract = await contract_service.generate(student.id, 1, 2025)

        assert contract.document_ref is None
        row = await db_session.get(Contract, contract.id)
        await db_session.refresh(row)
        assert row.document_ref is None

        document = await contract_service.ensure_document(contract.id)
        assert document.document_ref == f"contracts/contract-{contract.id}.html"

    async def test_generate_renders_document(self, contract_service, blob_store, factory, student, course):
        await factory.template()
        enrollment = await factory.enrollment(student, course)

        contract = await contract_service.generate(student.id, 2, 2025, enrollment_id=enrollment.id)

        assert contract.document_ref == f"contracts/contract-{contract.id}.html"
        html = (await blob_store.get(contract.document_ref)).decode("utf-8")
        assert "Maria Souza" in html
        assert "Pedagogia" in html
        assert "{{" not in html

    async def test_double_accept(self, db_session, contract_service, factory, student, course):
        await factory.template()
        doc_type = await factory.document_type()
        await factory.document(student, doc_type, status="approved")
        enrollment = await factory.enrollment(student, course, status="awaiting_initial_approval")
        contract = await contract_service.generate(student.id, 1, 2025, enrollment_id=enrollment.id)

        accepted = await contract_service.accept(contract.id, actor_id=student.id)

        assert accepted.accepted_at is not None
        with pytest.raises(ContractAlreadyAcceptedError):
            await contract_service.accept(contract.id, actor_id=student.id)
        reloaded = await EnrollmentService(db_session).get_enrollment(enrollment.id)
        assert reloaded.status == "active"

    async def test_accept_with_documents_pending_keeps_enrollment(self, db_session, contract_service, factory, student, course):
        await factory.template()
        await factory.document_type()
        enrollment = await factory.enrollment(student, course, status="awaiting_initial_approval")
        contract = await contract_service.generate(student.id, 1, 2025, enrollment_id=enrollment.id)

        await contract_service.accept(contract.id, actor_id=student.id)

        reloaded = await EnrollmentService(db_session).get_enrollment(enrollment.id)
        assert reloaded.status == "awaiting_initial_approval"

    async def test_accept_on_cancelled_enrollment(self, contract_service, factory, student, course):
        await factory.template()
        enrollment = await factory.enrollment(student, course, status="active")
        contract = await contract_service.generate(student.id, 1, 2025, enrollment_id=enrollment.id)
        enrollment.status = "cancelled"
        await contract_service.db.commit()

        with pytest.raises(EnrollmentCancelledError):
            await contract_service.accept(contract.id, actor_id=student.id)

    async def test_missing_document_is_rendered_on_access(self, db_session, contract_service, factory, student):
        await factory.template()
        contract = await contract_service.generate(student.id, 1, 2025)
        row = await db_session.get(Contract, contract.id)
        row.document_ref = None
        await db_session.commit()

        document = await contract_service.ensure_document(contract.id)

        assert document.document_ref == f"contracts/contract-{contract.id}.html"

    async def test_regenerate_missing_documents(self, db_session, contract_service, factory, student):
        await factory.template()
        contract = await contract_service.generate(student.id, 1, 2025)
        row = await db_session.get(Contract, contract.id)
        row.document_ref = None
        await db_session.commit()

        batch = await contract_service.regenerate_missing_documents()

        assert (batch.total, batch.success) == (1, 1)
        assert row.document_ref is not None


class TestReenrollmentSweep:
    """Term rollover of active enrollments."""

    async def test_sweep_moves_active_enrollments(self, db_session, contract_service, factory, course):
        await factory.template()
        first = await factory.enrollment(await factory.user("student", "Ana"), course)
        second = await factory.enrollment(await factory.user("student", "Bruno"), course)
        await factory.enrollment(await factory.user("student", "Carla"), course, status="awaiting_initial_approval")
        service = ReenrollmentService(db_session, contract_service=contract_service)

        result = await service.run_sweep(semester=2, year=2025)

        assert (result.total, result.success, result.failed) == (2, 2, 0)
        assert result.fully_applied
        for enrollment in (first, second):
            await db_session.refresh(enrollment)
            assert enrollment.status == "awaiting_renewal"
            assert enrollment.version == 2
        contracts = (await db_session.execute(select(Contract))).scalars().all()
        assert len(contracts) == 2
        assert all(c.document_ref is not None for c in contracts)

    async def test_sweep_twice_is_a_noop(self, db_session, contract_service, factory, student, course):
        await factory.template()
        enrollment = await factory.enrollment(student, course)
        service = ReenrollmentService(db_session, contract_service=contract_service)
        await service.run_sweep(semester=2, year=2025)

        contract = (await db_session.execute(select(Contract))).scalar_one()
        await contract_service.accept(contract.id, actor_id=student.id)
        await db_session.refresh(enrollment)
        assert enrollment.status == "active"

        again = await service.run_sweep(semester=2, year=2025)

        assert (again.total, again.success, again.skipped) == (1, 0, 1)
        assert again.results[0].reason == "contract_exists"
        count = await db_session.scalar(select(func.count()).select_from(Contract))
        assert count == 1

    async def test_completed_course_is_skipped(self, db_session, contract_service, factory, student):
        await factory.template()
        course = await factory.course(term_count=1)
        enrollment = await factory.enrollment(student, course)
        await contract_service.generate(student.id, 1, 2025, enrollment_id=enrollment.id)

        result = await ReenrollmentService(db_session, contract_service=contract_service).run_sweep(
            semester=2, year=2025
        )

        assert result.skipped == 1
        assert result.results[0].reason == "course_completed"
        await db_session.refresh(enrollment)
        assert enrollment.status == "active"

    async def test_semester_zero_is_rejected(self, db_session, contract_service):
        service = ReenrollmentService(db_session, contract_service=contract_service)

        with pytest.raises(InvalidTermError):
            await service.run_sweep(semester=0, year=2025)

    async def test_database_error_fails_only_that_enrollment(self, db_session, contract_service, factory, course):
        await factory.template()
        locked = await factory.enrollment(await factory.user("student", "Ana"), course)
        other = await factory.enrollment(await factory.user("student", "Bruno"), course)
        locked_id, other_id = locked.id, other.id
        find_term_contract = contract_service.find_term_contract

        async def lookup(user_id, enrollment_id, semester, year):
            if enrollment_id == locked_id:
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))
            return await find_term_contract(user_id, enrollment_id, semester, year)

        with patch.object(contract_service, "find_term_contract", lookup):
            result = await ReenrollmentService(db_session, contract_service=contract_service).run_sweep(
                semester=2, year=2025
            )

        outcomes = {r.item_id: r for r in result.results}
        assert (result.total, result.success, result.failed) == (2, 1, 1)
        assert outcomes[locked_id].code == "DATABASE_ERROR"
        assert outcomes[other_id].status == "success"
        await db_session.refresh(locked)
        assert (locked.status, locked.version) == ("active", 1)


class TestCancellation:
    """Student cancellation requests."""

    async def test_approve_cancels_enrollment(self, db_session, factory, student, admin, course):
        enrollment = await factory.enrollment(student, course)
        service = CancellationService(db_session)
        request = await service.submit(enrollment.id, student.id, "  Moving abroad ")

        assert request.reason == "Moving abroad"
        with pytest.raises(CancellationAlreadyRequestedError):
            await service.submit(enrollment.id, student.id, "Again")

        approved = await service.approve(request.id, admin.id)

        assert approved.status == "approved"
        await db_session.refresh(enrollment)
        assert enrollment.status == "cancelled"
        assert enrollment.cancelled_at is not None
        with pytest.raises(RequestAlreadyReviewedError):
            await service.reject(request.id, admin.id, note="Too late")

        reenrolled = await EnrollmentService(db_session).create_enrollment(student.id, course.id)
        assert reenrolled.status == "awaiting_initial_approval"

    async def test_reject_leaves_enrollment(self, db_session, factory, student, admin, course):
        enrollment = await factory.enrollment(student, course)
        service = CancellationService(db_session)
        request = await service.submit(enrollment.id, student.id, "Changed my mind")

        rejected = await service.reject(request.id, admin.id, note="Outstanding fees")

        assert rejected.status == "rejected"
        assert rejected.review_note == "Outstanding fees"
        await db_session.refresh(enrollment)
        assert enrollment.status == "active"


class TestBatchGrading:
    """Batch grade submission with per-item outcomes."""

    async def test_partial_batch(self, db_session, factory, course):
        teacher = await factory.user("teacher", "Prof. Lima")
        ana = await factory.user("student", "Ana")
        bruno = await factory.user("student", "Bruno")
        outsider = await factory.user("student", "Carla")
        for student in (ana, bruno, outsider):
            await factory.enrollment(student, course)
        evaluation = await factory.evaluation(teacher, members=[ana, bruno])

        result = await GradingService(db_session).submit_batch(
            evaluation.id,
            [
                GradeItem(student_id=ana.id, grade=8.5),
                GradeItem(student_id=bruno.id, grade="7"),
                GradeItem(student_id=outsider.id, grade=9),
            ],
            submitted_by=teacher.id,
        )

        assert (result.total, result.success, result.failed) == (3, 2, 1)
        assert result.partially_applied
        failure = result.results[2]
        assert failure.item_id == outsider.id
        assert failure.code == "STUDENT_NOT_IN_CLASS"
        count = await db_session.scalar(
            select(func.count()).select_from(Grade).where(Grade.evaluation_id == evaluation.id)
        )
        assert count == 2

    async def test_resubmission_updates_grade(self, db_session, factory, course):
        teacher = await factory.user("teacher")
        ana = await factory.user("student", "Ana")
        await factory.enrollment(ana, course)
        evaluation = await factory.evaluation(teacher, members=[ana])
        service = GradingService(db_session)

        await service.submit_batch(evaluation.id, [GradeItem(student_id=ana.id, grade=5)], teacher.id)
        await service.submit_batch(evaluation.id, [GradeItem(student_id=ana.id, grade=6.5)], teacher.id)

        grades = await service.list_grades(evaluation.id, teacher.id)
        assert grades.total == 1
        assert grades.items[0].grade == 6.5

    async def test_inactive_enrollment_fails_item(self, db_session, factory, course):
        teacher = await factory.user("teacher")
        ana = await factory.user("student", "Ana")
        await factory.enrollment(ana, course, status="awaiting_renewal")
        evaluation = await factory.evaluation(teacher, members=[ana])

        result = await GradingService(db_session).submit_batch(
            evaluation.id, [GradeItem(student_id=ana.id, grade=5)], teacher.id
        )

        assert result.failed == 1
        assert result.results[0].code == "ENROLLMENT_NOT_ACTIVE"

    async def test_concurrent_insert_fails_only_that_item(self, db_session, factory, course):
        teacher = await factory.user("teacher")
        ana = await factory.user("student", "Ana")
        bruno = await factory.user("student", "Bruno")
        for student in (ana, bruno):
            await factory.enrollment(student, course)
        evaluation = await factory.evaluation(teacher, members=[ana, bruno])
        teacher_id, ana_id, bruno_id, evaluation_id = teacher.id, ana.id, bruno.id, evaluation.id
        db_session.add(Grade(evaluation_id=evaluation_id, student_id=ana_id, grade=4.0))
        await db_session.commit()
        execute = db_session.execute

        # Grade lookups miss the row another writer committed.
        async def stale_execute(statement, *args, **kwargs):
            if isinstance(statement, Select) and statement.column_descriptions[0]["entity"] is Grade:
                result = MagicMock()
                result.scalar_one_or_none.return_value = None
                return result
            return await execute(statement, *args, **kwargs)

        service = GradingService(db_session)
        with patch.object(db_session, "execute", new=stale_execute):
            result = await service.submit_batch(
                evaluation_id,
                [GradeItem(student_id=ana_id, grade=9), GradeItem(student_id=bruno_id, grade=7)],
                teacher_id,
            )

        assert (result.success, result.failed) == (1, 1)
        assert result.results[0].item_id == ana_id
        assert result.results[0].code == "DUPLICATE_GRADE"
        grades = await service.list_grades(evaluation_id, teacher_id)
        by_student = {g.student_id: g.grade for g in grades.items}
        assert by_student == {ana_id: 4.0, bruno_id: 7.0}

    async def test_legacy_import(self, db_session, factory, course):
        teacher = await factory.user("teacher")
        admin = await factory.user("admin")
        ana = await factory.user("student", "Ana")
        bruno = await factory.user("student", "Bruno")
        for student in (ana, bruno):
            await factory.enrollment(student, course)
        evaluation = await factory.evaluation(teacher, members=[ana, bruno])

        result = await GradingService(db_session).submit_batch(
            evaluation.id,
            [GradeItem(student_id=ana.id, grade="10,5"), GradeItem(student_id=bruno.id, grade=" ")],
            submitted_by=admin.id,
            is_admin=True,
            legacy_import=True,
        )

        assert (result.success, result.skipped, result.failed) == (1, 1, 0)
        assert result.results[0].data["grade"] == 10.0
