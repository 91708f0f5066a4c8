# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Contract service for term contracts.

This module provides the ContractService class for:
- Generating a contract for a user and term
- Rendering the agreement document into blob storage
- Recording acceptance and reactivating the linked enrollment
- Re-rendering contracts whose document is missing

The contract row is always persisted before rendering. A rendering or
storage failure leaves document_ref null; the document is produced later
on access or by the scheduled re-render.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.config.settings import ContractSettings, StorageSettings
from src.domains.contract.placeholders import build_placeholders
from src.domains.contract.renderer import render_template, unknown_markers
from src.domains.document.service import DocumentService
from src.domains.enrollment.service import EnrollmentService
from src.infrastructure.database.models import Contract, ContractTemplate, Course, Enrollment, User
from src.infrastructure.storage import BlobStorageError, BlobStore, get_blob_store
from src.models.batch import BatchResult, ItemFailure, ItemSuccess
from src.models.common import ContractDisposition, EnrollmentStatus
from src.models.contract import ContractDocumentResponse, ContractListResponse, ContractResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100


class ContractServiceError(Exception):
    """Base exception for contract service errors."""

    code = "CONTRACT_ERROR"


class ContractNotFoundError(ContractServiceError):
    """Raised when contract is not found."""

    code = "CONTRACT_NOT_FOUND"


class UserNotFoundError(ContractServiceError):
    """Raised when the signer does not exist."""

    code = "USER_NOT_FOUND"


class EnrollmentNotFoundError(ContractServiceError):
    """Raised when the linked enrollment does not exist."""

    code = "ENROLLMENT_NOT_FOUND"


class EnrollmentMismatchError(ContractServiceError):
    """Raised when the enrollment belongs to another user."""

    code = "ENROLLMENT_MISMATCH"


class EnrollmentCancelledError(ContractServiceError):
    """Raised when the linked enrollment is cancelled."""

    code = "ENROLLMENT_CANCELLED"


class InvalidTermError(ContractServiceError):
    """Raised when semester or year is out of range."""

    code = "INVALID_TERM"


class TemplateNotFoundError(ContractServiceError):
    """Raised when the requested template does not exist or is inactive."""

    code = "TEMPLATE_NOT_FOUND"


class NoActiveTemplateError(ContractServiceError):
    """Raised when no active template exists."""

    code = "NO_ACTIVE_TEMPLATE"


class DuplicateContractError(ContractServiceError):
    """Raised when a contract already exists for the term."""

    code = "DUPLICATE_CONTRACT"


class ContractAlreadyAcceptedError(ContractServiceError):
    """Raised when accepting a contract twice."""

    code = "CONTRACT_ALREADY_ACCEPTED"


class ContractAccessDeniedError(ContractServiceError):
    """Raised when the actor neither owns the contract nor is an admin."""

    code = "CONTRACT_ACCESS_DENIED"


class ContractRenderFailedError(ContractServiceError):
    """Raised when the document cannot be produced on access."""

    code = "CONTRACT_RENDER_FAILED"


class ContractService:
    """Service for contract generation, rendering and acceptance.

    Attributes:
        db: Async database session.
        blob_store: Storage for rendered documents.
    """

    def __init__(
        self,
        db: AsyncSession,
        blob_store: BlobStore | None = None,
        contract_settings: ContractSettings | None = None,
        storage_settings: StorageSettings | None = None,
    ) -> None:
        """Initialize contract service.

        Args:
            db: Async database session.
            blob_store: Blob store, defaults to the configured one.
            contract_settings: Contract settings, defaults to application settings.
            storage_settings: Storage settings, defaults to application settings.
        """
        self.db = db
        self.blob_store = blob_store or get_blob_store()
        settings = get_settings() if contract_settings is None or storage_settings is None else None
        self._contract_settings = contract_settings or settings.contract
        self._storage_settings = storage_settings or settings.storage

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate(
        self,
        user_id: str,
        semester: int,
        year: int,
        enrollment_id: str | None = None,
        template_id: str | None = None,
        generated_by: str | None = None,
    ) -> ContractResponse:
        """Generate a contract for a user and term.

        Args:
            user_id: Signer identifier.
            semester: 1 or 2.
            year: Four-digit year.
            enrollment_id: Optional linked enrollment.
            template_id: Optional template, defaults to the first active one.
            generated_by: ID of user performing the operation.

        Returns:
            Created contract. document_ref is null if rendering failed.

        Raises:
            InvalidTermError: If semester or year is out of range.
            UserNotFoundError: If the user does not exist.
            EnrollmentNotFoundError: If the enrollment does not exist.
            EnrollmentMismatchError: If the enrollment belongs to another user.
            EnrollmentCancelledError: If the enrollment is cancelled.
            TemplateNotFoundError: If the template is unknown or inactive.
            NoActiveTemplateError: If no template is active.
            DuplicateContractError: If the term already has a contract.
        """
        self._validate_term(semester, year)
        await self._get_user(user_id)

        enrollment = None
        if enrollment_id is not None:
            enrollment = await self._get_enrollment(enrollment_id)
            if enrollment.student_id != user_id:
                raise EnrollmentMismatchError(
                    f"Enrollment {enrollment_id} does not belong to user {user_id}"
                )
            if enrollment.status == EnrollmentStatus.CANCELLED.value:
                raise EnrollmentCancelledError(f"Enrollment {enrollment_id} is cancelled")

        existing = await self.find_term_contract(user_id, enrollment_id, semester, year)
        if existing is not None:
            raise DuplicateContractError(
                f"Contract {existing.id} already exists for {semester}/{year}"
            )

        template = await self.resolve_template(template_id)

        try:
            contract = await self.create_contract(user_id, enrollment_id, semester, year, template)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateContractError(f"Contract already exists for {semester}/{year}") from e
        await self.db.refresh(contract)

        logger.info(
            "Generated contract: contract=%s, user=%s, enrollment=%s, term=%d/%d, by=%s",
            contract.id,
            user_id,
            enrollment_id,
            semester,
            year,
            generated_by,
        )

        if self._contract_settings.render_on_generate:
            if await self.render_document(contract):
                await self.db.commit()

        return self._to_response(contract)

    async def create_contract(
        self,
        user_id: str,
        enrollment_id: str | None,
        semester: int,
        year: int,
        template: ContractTemplate,
    ) -> Contract:
        """Add and flush a contract row. Does not commit."""
        contract = Contract(
            user_id=user_id,
            enrollment_id=enrollment_id,
            template_id=template.id,
            semester=semester,
            year=year,
        )
        self.db.add(contract)
        await self.db.flush()
        return contract

    async def find_term_contract(
        self,
        user_id: str,
        enrollment_id: str | None,
        semester: int,
        year: int,
    ) -> Contract | None:
        """Find the contract for a term.

        Contracts without an enrollment are matched by user.
        """
        query = select(Contract).where(Contract.semester == semester, Contract.year == year)
        if enrollment_id is not None:
            query = query.where(Contract.enrollment_id == enrollment_id)
        else:
            query = query.where(Contract.user_id == user_id, Contract.enrollment_id.is_(None))

        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def resolve_template(self, template_id: str | None = None) -> ContractTemplate:
        """Get the given active template, or the first active one.

        Raises:
            TemplateNotFoundError: If template_id is unknown or inactive.
            NoActiveTemplateError: If no template is active.
        """
        if template_id is not None:
            result = await self.db.execute(
                select(ContractTemplate).where(ContractTemplate.id == template_id)
            )
            template = result.scalar_one_or_none()
            if not template or not template.is_active:
                raise TemplateNotFoundError(f"Active template {template_id} not found")
            return template

        result = await self.db.execute(
            select(ContractTemplate)
            .where(ContractTemplate.is_active.is_(True))
            .order_by(ContractTemplate.created_at)
            .limit(1)
        )
        template = result.scalar_one_or_none()
        if not template:
            raise NoActiveTemplateError("No active contract template")
        return template

    # =========================================================================
    # Rendering
    # =========================================================================

    async def render_document(self, contract: Contract) -> str | None:
        """Render a contract's document and store it.

        Sets document_ref and file_name on success. Does not commit.

        Args:
            contract: Persisted contract.

        Returns:
            Blob reference, or None if rendering or storage failed.
        """
        try:
            content = await self._render_content(contract)
            file_name = f"contract-{contract.id}.html"
            ref = await self.blob_store.put(
                self._storage_settings.contracts_prefix,
                file_name,
                content.encode("utf-8"),
            )
        except (BlobStorageError, ValidationError, ContractServiceError) as e:
            logger.warning("Contract document rendering failed: contract=%s, error=%s", contract.id, e)
            return None

        contract.document_ref = ref
        contract.file_name = file_name
        await self.db.flush()

        logger.info("Rendered contract document: contract=%s, ref=%s", contract.id, ref)
        return ref

    async def _render_content(self, contract: Contract) -> str:
        template = await self.db.get(ContractTemplate, contract.template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template {contract.template_id} not found")

        user = await self._get_user(contract.user_id)

        course = None
        if contract.enrollment_id is not None:
            enrollment = await self.db.get(Enrollment, contract.enrollment_id)
            if enrollment is not None:
                course = await self.db.get(Course, enrollment.course_id)

        placeholders = build_placeholders(
            student_name=user.full_name,
            student_id=user.id,
            course_name=course.name if course else None,
            course_id=course.id if course else None,
            term_count=course.term_count if course else None,
            semester=contract.semester,
            year=contract.year,
            institution_name=self._contract_settings.institution_name,
        )

        leftover = unknown_markers(template.content)
        if leftover:
            logger.warning(
                "Template has unknown markers: template=%s, markers=%s",
                template.id,
                ", ".join(sorted(leftover)),
            )

        return render_template(template.content, placeholders)

    async def ensure_document(self, contract_id: str) -> ContractDocumentResponse:
        """Return the contract's document, rendering it if missing.

        Raises:
            ContractNotFoundError: If not found.
            ContractRenderFailedError: If the document cannot be produced.
        """
        contract = await self._get_contract(contract_id)

        if contract.document_ref is None:
            ref = await self.render_document(contract)
            if ref is None:
                raise ContractRenderFailedError(
                    f"Contract {contract_id} document is not available"
                )
            await self.db.commit()

        return ContractDocumentResponse(
            contract_id=contract.id,
            document_ref=contract.document_ref,
            file_name=contract.file_name,
        )

    async def regenerate_missing_documents(self, limit: int = 100) -> BatchResult:
        """Re-render contracts whose document reference is null.

        Args:
            limit: Maximum contracts processed in this run.

        Returns:
            Per-contract outcomes.
        """
        result = await self.db.execute(
            select(Contract)
            .where(Contract.document_ref.is_(None))
            .order_by(Contract.created_at)
            .limit(limit)
        )
        contracts = list(result.scalars().all())

        outcomes: list[ItemSuccess | ItemFailure] = []
        for contract in contracts:
            ref = await self.render_document(contract)
            if ref is None:
                outcomes.append(
                    ItemFailure(
                        item_id=contract.id,
                        code=ContractRenderFailedError.code,
                        message="Document could not be rendered",
                    )
                )
                continue
            await self.db.commit()
            outcomes.append(ItemSuccess(item_id=contract.id, data={"document_ref": ref}))

        batch = BatchResult.from_outcomes(outcomes)
        logger.info(
            "Contract document regeneration: total=%d, success=%d, failed=%d",
            batch.total,
            batch.success,
            batch.failed,
        )
        return batch

    # =========================================================================
    # Acceptance
    # =========================================================================

    async def accept(
        self,
        contract_id: str,
        actor_id: str,
        actor_is_admin: bool = False,
    ) -> ContractResponse:
        """Accept a contract.

        A linked enrollment awaiting renewal becomes active. One awaiting
        initial approval becomes active only when every required document
        is approved; otherwise it stays for an admin to activate.

        Args:
            contract_id: Contract identifier.
            actor_id: Accepting user.
            actor_is_admin: Whether the actor is an administrator.

        Returns:
            Accepted contract.

        Raises:
            ContractNotFoundError: If not found.
            ContractAccessDeniedError: If the actor may not accept it.
            ContractAlreadyAcceptedError: If already accepted.
            EnrollmentCancelledError: If the linked enrollment is cancelled.
            EnrollmentConflictError: If the enrollment changed concurrently.
        """
        contract = await self._get_contract(contract_id)

        if contract.user_id != actor_id and not actor_is_admin:
            raise ContractAccessDeniedError("Only the contract owner or an admin can accept it")
        if contract.is_accepted:
            raise ContractAlreadyAcceptedError(f"Contract {contract_id} was already accepted")

        enrollment = None
        if contract.enrollment_id is not None:
            enrollment = await self._get_enrollment(contract.enrollment_id)
            if enrollment.status == EnrollmentStatus.CANCELLED.value:
                raise EnrollmentCancelledError(
                    f"Enrollment {enrollment.id} is cancelled; contract cannot be accepted"
                )

        result = await self.db.execute(
            update(Contract)
            .where(Contract.id == contract_id, Contract.accepted_at.is_(None))
            .values(accepted_at=utc_now(), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ContractAlreadyAcceptedError(f"Contract {contract_id} was already accepted")

        if enrollment is not None:
            await self._reactivate(enrollment)

        await self.db.commit()
        await self.db.refresh(contract)

        logger.info(
            "Accepted contract: contract=%s, user=%s, by=%s",
            contract_id,
            contract.user_id,
            actor_id,
        )

        return self._to_response(contract)

    async def _reactivate(self, enrollment: Enrollment) -> None:
        status = EnrollmentStatus(enrollment.status)
        enrollment_service = EnrollmentService(self.db)

        if status == EnrollmentStatus.AWAITING_RENEWAL:
            await enrollment_service.reactivate_after_acceptance(enrollment)
        elif status == EnrollmentStatus.AWAITING_INITIAL_APPROVAL:
            approved = await DocumentService(self.db).is_fully_approved(enrollment.student_id)
            if approved:
                await enrollment_service.reactivate_after_acceptance(enrollment)
            else:
                logger.info(
                    "Contract accepted with documents pending; enrollment stays: enrollment=%s",
                    enrollment.id,
                )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_contract(self, contract_id: str) -> ContractResponse:
        """Get contract details.

        Raises:
            ContractNotFoundError: If not found.
        """
        return self._to_response(await self._get_contract(contract_id))

    async def list_contracts(
        self,
        user_id: str | None = None,
        disposition: ContractDisposition | None = None,
        enrollment_id: str | None = None,
    ) -> ContractListResponse:
        """List contracts, newest term first."""
        query = select(Contract)
        if user_id:
            query = query.where(Contract.user_id == user_id)
        if enrollment_id:
            query = query.where(Contract.enrollment_id == enrollment_id)
        if disposition == ContractDisposition.PENDING:
            query = query.where(Contract.accepted_at.is_(None))
        elif disposition == ContractDisposition.ACCEPTED:
            query = query.where(Contract.accepted_at.is_not(None))
        query = query.order_by(Contract.year.desc(), Contract.semester.desc(), Contract.created_at.desc())

        result = await self.db.execute(query)
        items = [self._to_response(c) for c in result.scalars().all()]
        return ContractListResponse(items=items, total=len(items))

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate_term(semester: int, year: int) -> None:
        if semester not in (1, 2):
            raise InvalidTermError(f"Semester must be 1 or 2, got {semester}")
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise InvalidTermError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")

    async def _get_contract(self, contract_id: str) -> Contract:
        result = await self.db.execute(select(Contract).where(Contract.id == contract_id))
        contract = result.scalar_one_or_none()
        if not contract:
            raise ContractNotFoundError(f"Contract {contract_id} not found")
        return contract

    async def _get_user(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _get_enrollment(self, enrollment_id: str) -> Enrollment:
        result = await self.db.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")
        return enrollment

    def _to_response(self, contract: Contract) -> ContractResponse:
        return ContractResponse.model_validate(contract)
