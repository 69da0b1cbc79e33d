"""
Property endpoints.

- POST  /properties              (list a property)
- GET   /properties/{property_ref}
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.db.session import get_db
from estate_ledger.schemas.common import ErrorResponse, ValidationErrorResponse
from estate_ledger.schemas.property import PropertyCreate, PropertyResponse
from estate_ledger.services.onboarding_service import OnboardingService

router = APIRouter()


def _get_onboarding_service(db: AsyncSession = Depends(get_db)) -> OnboardingService:
    return OnboardingService(db)


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=201,
    summary="List a property",
    description=(
        "Creates a property with its full token supply available. "
        "``price_per_token`` is derived as ``total_value / total_tokens``."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Organization not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_property(
    body: PropertyCreate,
    service: OnboardingService = Depends(_get_onboarding_service),
) -> PropertyResponse:
    return await service.create_property(
        body.organization_ref,
        body.title,
        body.total_value,
        body.total_tokens,
        expected_roi=body.expected_roi,
        status=body.status,
    )


@router.get(
    "/{property_ref}",
    response_model=PropertyResponse,
    summary="Get a property by id or code",
    responses={404: {"model": ErrorResponse, "description": "Property not found"}},
)
async def get_property(
    property_ref: str,
    service: OnboardingService = Depends(_get_onboarding_service),
) -> PropertyResponse:
    return await service.get_property(property_ref)
