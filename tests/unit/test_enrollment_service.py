# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Enrollment service."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from src.domains.enrollment.service import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    DocumentsPendingError,
    EnrollmentConflictError,
    EnrollmentNotFoundError,
    EnrollmentService,
    InvalidStudentTypeError,
    InvalidTransitionError,
    StudentNotFoundError,
)
from src.domains.enrollment.state import can_transition, is_open
from src.infrastructure.database.models import User
from src.models.common import EnrollmentStatus


def _result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def _rowcount(count: int):
    result = MagicMock()
    result.rowcount = count
    return result


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def enrollment_service(mock_db):
    """Create enrollment service with mock database."""
    return EnrollmentService(db=mock_db)


@pytest.fixture
def sample_student():
    """Create a transient student row."""
    return User(id=str(uuid4()), email="maria@example.com", full_name="Maria Souza", role="student")


@pytest.fixture
def sample_course():
    """Create a sample course model."""
    course = MagicMock()
    course.id = str(uuid4())
    course.name = "Pedagogia"
    course.term_count = 8
    return course


def _enrollment(status: str, version: int = 1):
    enrollment = MagicMock()
    enrollment.id = str(uuid4())
    enrollment.student_id = str(uuid4())
    enrollment.course_id = str(uuid4())
    enrollment.status = status
    enrollment.version = version
    return enrollment


class TestTransitionTable:
    """Tests for the status transition table."""

    def test_initial_state_can_activate_or_cancel(self):
        assert can_transition("awaiting_initial_approval", "active")
        assert can_transition("awaiting_initial_approval", "cancelled")
        assert not can_transition("awaiting_initial_approval", "awaiting_renewal")

    def test_only_active_can_await_renewal(self):
        assert can_transition("active", "awaiting_renewal")
        assert not can_transition("awaiting_renewal", "awaiting_renewal")

    def test_cancelled_is_terminal(self):
        for target in EnrollmentStatus:
            assert not can_transition(EnrollmentStatus.CANCELLED, target)

    def test_open_statuses(self):
        assert is_open("active")
        assert is_open("awaiting_renewal")
        assert not is_open("cancelled")


class TestCreateEnrollment:
    """Tests for enrollment creation."""

    @pytest.mark.asyncio
    async def test_create_success(self, enrollment_service, mock_db, sample_student, sample_course):
        """New enrollments start awaiting initial approval."""
        mock_db.execute.side_effect = [
            _result(sample_student),
            _result(sample_course),
            _result(None),
        ]

        with patch.object(EnrollmentService, "_to_response", side_effect=lambda e: e):
            enrollment = await enrollment_service.create_enrollment(
                student_id=sample_student.id,
                course_id=sample_course.id,
            )

        assert enrollment.status == "awaiting_initial_approval"
        assert enrollment.version == 1
        mock_db.add.assert_called_once()
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_student_not_found(self, enrollment_service, mock_db):
        mock_db.execute.return_value = _result(None)

        with pytest.raises(StudentNotFoundError):
            await enrollment_service.create_enrollment(str(uuid4()), str(uuid4()))

    @pytest.mark.asyncio
    async def test_user_is_not_a_student(self, enrollment_service, mock_db, sample_student):
        sample_student.role = "teacher"
        mock_db.execute.return_value = _result(sample_student)

        with pytest.raises(InvalidStudentTypeError):
            await enrollment_service.create_enrollment(sample_student.id, str(uuid4()))

    @pytest.mark.asyncio
    async def test_course_not_found(self, enrollment_service, mock_db, sample_student):
        mock_db.execute.side_effect = [_result(sample_student), _result(None)]

        with pytest.raises(CourseNotFoundError):
            await enrollment_service.create_enrollment(sample_student.id, str(uuid4()))

    @pytest.mark.asyncio
    async def test_already_enrolled(self, enrollment_service, mock_db, sample_student, sample_course):
        existing = _enrollment("awaiting_renewal")
        mock_db.execute.side_effect = [
            _result(sample_student),
            _result(sample_course),
            _result(existing),
        ]

        with pytest.raises(AlreadyEnrolledError):
            await enrollment_service.create_enrollment(sample_student.id, sample_course.id)

        mock_db.add.assert_not_called()


class TestActivate:
    """Tests for admin activation."""

    @pytest.mark.asyncio
    async def test_not_found(self, enrollment_service, mock_db):
        mock_db.execute.return_value = _result(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.activate(str(uuid4()))

    @pytest.mark.asyncio
    async def test_already_active_is_noop(self, enrollment_service, mock_db):
        enrollment = _enrollment("active", version=3)
        mock_db.execute.return_value = _result(enrollment)

        with patch.object(EnrollmentService, "_to_response", side_effect=lambda e: e):
            result = await enrollment_service.activate(enrollment.id)

        assert result.status == "active"
        assert result.version == 3
        assert mock_db.execute.call_count == 1
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancelled_cannot_activate(self, enrollment_service, mock_db):
        mock_db.execute.return_value = _result(_enrollment("cancelled"))

        with pytest.raises(InvalidTransitionError):
            await enrollment_service.activate(str(uuid4()))

    @pytest.mark.asyncio
    async def test_documents_pending(self, enrollment_service, mock_db):
        enrollment = _enrollment("awaiting_initial_approval")
        mock_db.execute.return_value = _result(enrollment)

        with patch(
            "src.domains.enrollment.service.DocumentService.is_fully_approved",
            new=AsyncMock(return_value=False),
        ):
            with pytest.raises(DocumentsPendingError):
                await enrollment_service.activate(enrollment.id)

        assert enrollment.status == "awaiting_initial_approval"
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_activate_when_documents_approved(self, enrollment_service, mock_db):
        enrollment = _enrollment("awaiting_initial_approval")
        mock_db.execute.side_effect = [_result(enrollment), _rowcount(1)]

        async def mock_refresh(obj):
            obj.status = "active"
            obj.version = 2

        mock_db.refresh.side_effect = mock_refresh

        with patch(
            "src.domains.enrollment.service.DocumentService.is_fully_approved",
            new=AsyncMock(return_value=True),
        ), patch.object(EnrollmentService, "_to_response", side_effect=lambda e: e):
            result = await enrollment_service.activate(enrollment.id)

        assert result.status == "active"
        assert result.version == 2
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_concurrent_write_conflicts(self, enrollment_service, mock_db):
        """Zero rows affected by the compare-and-set means another writer won."""
        enrollment = _enrollment("awaiting_initial_approval")
        mock_db.execute.side_effect = [_result(enrollment), _rowcount(0)]

        with patch(
            "src.domains.enrollment.service.DocumentService.is_fully_approved",
            new=AsyncMock(return_value=True),
        ):
            with pytest.raises(EnrollmentConflictError):
                await enrollment_service.activate(enrollment.id)

        mock_db.commit.assert_not_called()


class TestInternalTransitions:
    """Tests for the sweep, acceptance and cancellation transitions."""

    @pytest.mark.asyncio
    async def test_mark_awaiting_renewal_requires_active(self, enrollment_service):
        with pytest.raises(InvalidTransitionError):
            await enrollment_service.mark_awaiting_renewal(_enrollment("awaiting_initial_approval"))

    @pytest.mark.asyncio
    async def test_mark_awaiting_renewal_does_not_commit(self, enrollment_service, mock_db):
        mock_db.execute.return_value = _rowcount(1)

        await enrollment_service.mark_awaiting_renewal(_enrollment("active"))

        mock_db.execute.assert_called_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_reactivate_active_is_noop(self, enrollment_service, mock_db):
        enrollment = _enrollment("active")

        result = await enrollment_service.reactivate_after_acceptance(enrollment)

        assert result is enrollment
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_twice_is_invalid(self, enrollment_service):
        with pytest.raises(InvalidTransitionError):
            await enrollment_service.cancel(_enrollment("cancelled"))
