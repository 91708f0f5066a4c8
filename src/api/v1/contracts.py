# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Contract API endpoints.

- POST / - Generate a term contract (admin)
- GET / - List contracts
- GET /{contract_id} - Get contract details
- POST /{contract_id}/accept - Accept a contract (owner or admin)
- GET /{contract_id}/document - Reference to the rendered document

A contract is created even when its document cannot be rendered; the
document is produced again on access or by the scheduled regeneration.
"""

import logging
from typing import Annotated

from dramatiq.errors import DramatiqError
from fastapi import APIRouter, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import AdminUser, AuthUser, DbSession, ensure_owner_or_admin
from src.api.errors import to_http_error
from src.core.config import get_settings
from src.domains.contract import ContractService, ContractServiceError
from src.domains.enrollment import EnrollmentServiceError
from src.infrastructure.background.middleware import reset_triggered_by, set_triggered_by
from src.models.common import ContractDisposition
from src.models.contract import (
    ContractDocumentResponse,
    ContractGenerateRequest,
    ContractListResponse,
    ContractResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> ContractService:
    """Get contract service instance."""
    return ContractService(db=db)


def _queue_render(contract_id: str, requested_by: str) -> None:
    """Send the contract to a worker for rendering."""
    from src.infrastructure.background.tasks.enrollment import render_contract_document

    token = set_triggered_by(requested_by)
    try:
        render_contract_document.send(contract_id)
    except DramatiqError as e:
        logger.warning("Could not queue rendering of contract %s: %s", contract_id, e)
    finally:
        reset_triggered_by(token)


@router.post(
    "",
    response_model=ContractResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate contract",
    description="Generate a contract for a user and term. document_ref may be null.",
)
async def generate_contract(
    data: ContractGenerateRequest,
    current_user: AdminUser,
    db: DbSession,
) -> ContractResponse:
    """Generate a term contract.

    Raises:
        HTTPException: 404 for unknown user, enrollment or template,
            409 DUPLICATE_CONTRACT, 422 for mismatched or cancelled enrollments.
    """
    logger.info(
        "Generating contract: user=%s, enrollment=%s, term=%d/%d by %s",
        data.user_id,
        data.enrollment_id,
        data.semester,
        data.year,
        current_user.id,
    )

    try:
        contract = await _get_service(db).generate(
            user_id=data.user_id,
            semester=data.semester,
            year=data.year,
            enrollment_id=data.enrollment_id,
            template_id=data.template_id,
            generated_by=current_user.id,
        )
    except ContractServiceError as e:
        raise to_http_error(e)

    if contract.document_ref is None and not get_settings().contract.render_on_generate:
        _queue_render(contract.id, current_user.id)

    return contract


@router.get(
    "",
    response_model=ContractListResponse,
    summary="List contracts",
)
async def list_contracts(
    current_user: AuthUser,
    db: DbSession,
    user_id: Annotated[str | None, Query(description="Filter by signer")] = None,
    enrollment_id: Annotated[str | None, Query(description="Filter by enrollment")] = None,
    status_filter: Annotated[ContractDisposition | None, Query(alias="status")] = None,
) -> ContractListResponse:
    """List contracts. Non-admins only see their own."""
    if not current_user.is_admin:
        user_id = current_user.id

    return await _get_service(db).list_contracts(
        user_id=user_id,
        disposition=status_filter,
        enrollment_id=enrollment_id,
    )


@router.get(
    "/{contract_id}",
    response_model=ContractResponse,
    summary="Get contract",
)
async def get_contract(
    contract_id: str,
    current_user: AuthUser,
    db: DbSession,
) -> ContractResponse:
    """Get contract details."""
    try:
        contract = await _get_service(db).get_contract(contract_id)
    except ContractServiceError as e:
        raise to_http_error(e)

    ensure_owner_or_admin(current_user, contract.user_id)
    return contract


@router.post(
    "/{contract_id}/accept",
    response_model=ContractResponse,
    summary="Accept contract",
)
async def accept_contract(
    contract_id: str,
    current_user: AuthUser,
    db: DbSession,
) -> ContractResponse:
    """Accept a contract, reactivating its enrollment where allowed.

    Raises:
        HTTPException: 403 CONTRACT_ACCESS_DENIED, 422 CONTRACT_ALREADY_ACCEPTED
            or ENROLLMENT_CANCELLED, 409 ENROLLMENT_CONFLICT.
    """
    try:
        return await _get_service(db).accept(
            contract_id=contract_id,
            actor_id=current_user.id,
            actor_is_admin=current_user.is_admin,
        )
    except (ContractServiceError, EnrollmentServiceError) as e:
        raise to_http_error(e)


@router.get(
    "/{contract_id}/document",
    response_model=ContractDocumentResponse,
    summary="Get contract document",
    description="Return the document reference, rendering it first if missing.",
)
async def get_contract_document(
    contract_id: str,
    current_user: AuthUser,
    db: DbSession,
) -> ContractDocumentResponse:
    """Get the rendered document of a contract.

    Raises:
        HTTPException: 404 if not found, 503 CONTRACT_RENDER_FAILED.
    """
    service = _get_service(db)
    try:
        contract = await service.get_contract(contract_id)
        ensure_owner_or_admin(current_user, contract.user_id)
        return await service.ensure_document(contract_id)
    except ContractServiceError as e:
        raise to_http_error(e)
