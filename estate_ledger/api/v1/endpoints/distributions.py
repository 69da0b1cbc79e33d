"""
Return distribution endpoint.

- POST /properties/{property_ref}/distributions
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.api.deps import get_notifier
from estate_ledger.core.ledger import ZERO
from estate_ledger.db.session import get_db
from estate_ledger.schemas.common import ErrorResponse, ValidationErrorResponse
from estate_ledger.schemas.distribution import (
    DistributionRequest,
    DistributionResponse,
    RewardResponse,
)
from estate_ledger.services.distribution_service import DistributionService
from estate_ledger.services.settlement_service import Notifier

router = APIRouter()


def _get_distribution_service(
    db: AsyncSession = Depends(get_db),
    notify: Optional[Notifier] = Depends(get_notifier),
) -> DistributionService:
    return DistributionService(db, notify=notify)


@router.post(
    "/properties/{property_ref}/distributions",
    response_model=DistributionResponse,
    status_code=201,
    summary="Distribute a return pool to token holders",
    description=(
        "Credits every investor holding confirmed tokens in the property with "
        "``investor_tokens / total_tokens × total_return``. One reward and one "
        "reward transaction are written per investor."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Property not found"},
        422: {
            "model": ValidationErrorResponse,
            "description": "Invalid amount or no confirmed investments",
        },
        503: {"model": ErrorResponse, "description": "Lock wait exceeded; safe to retry"},
    },
)
async def distribute_return(
    property_ref: str,
    body: DistributionRequest,
    service: DistributionService = Depends(_get_distribution_service),
) -> DistributionResponse:
    rewards = await service.distribute(property_ref, body.total_return)
    return DistributionResponse(
        rewards=[RewardResponse.model_validate(r) for r in rewards],
        count=len(rewards),
        total_distributed=sum((r.amount for r in rewards), ZERO),
    )
