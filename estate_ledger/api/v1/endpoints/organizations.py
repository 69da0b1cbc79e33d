"""
Organization endpoints.

- POST /organizations
- GET  /organizations/{organization_ref}/transactions   (issuer ledger)
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.db.session import get_db
from estate_ledger.schemas.common import ErrorResponse, ValidationErrorResponse
from estate_ledger.schemas.organization import OrganizationCreate, OrganizationResponse
from estate_ledger.schemas.wallet import TransactionResponse
from estate_ledger.services.history_service import HistoryService
from estate_ledger.services.onboarding_service import OnboardingService

router = APIRouter()


def _get_onboarding_service(db: AsyncSession = Depends(get_db)) -> OnboardingService:
    return OnboardingService(db)


def _get_history_service(db: AsyncSession = Depends(get_db)) -> HistoryService:
    return HistoryService(db)


@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=201,
    summary="Create an issuing organization",
    responses={
        409: {"model": ErrorResponse, "description": "Name already taken"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_organization(
    body: OrganizationCreate,
    service: OnboardingService = Depends(_get_onboarding_service),
) -> OrganizationResponse:
    return await service.create_organization(body.name)


@router.get(
    "/{organization_ref}/transactions",
    response_model=List[TransactionResponse],
    summary="List an organization's ledger entries",
    description=(
        "Liquidity inflows, the investor debits that funded them and the "
        "rewards paid from the organization's properties, newest first. "
        "Use ``skip`` and ``limit`` to paginate."
    ),
    responses={404: {"model": ErrorResponse, "description": "Organization not found"}},
)
async def list_organization_transactions(
    organization_ref: str,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: HistoryService = Depends(_get_history_service),
) -> List[TransactionResponse]:
    return await service.list_organization_transactions(
        organization_ref, skip=skip, limit=limit
    )
