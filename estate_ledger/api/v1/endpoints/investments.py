"""
Settlement endpoint.

- POST /investments  (buy property tokens with wallet balance)
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.api.deps import get_notifier
from estate_ledger.db.session import get_db
from estate_ledger.schemas.common import ErrorResponse, ValidationErrorResponse
from estate_ledger.schemas.investment import InvestmentResponse, SettlementRequest
from estate_ledger.services.settlement_service import Notifier, SettlementService

router = APIRouter()


# ── Dependency injection ──


def _get_settlement_service(
    db: AsyncSession = Depends(get_db),
    notify: Optional[Notifier] = Depends(get_notifier),
) -> SettlementService:
    return SettlementService(db, notify=notify)


# ── Endpoints ──


@router.post(
    "",
    response_model=InvestmentResponse,
    status_code=201,
    summary="Settle an investment",
    description=(
        "Atomically debits the investor's wallet by ``tokens × price_per_token``, "
        "reserves the tokens, credits the issuing organization and records the "
        "investment. Portfolio and certificate updates follow asynchronously."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Investor or property not found"},
        422: {
            "model": ValidationErrorResponse,
            "description": "Invalid quantity, insufficient inventory or insufficient funds",
        },
        503: {"model": ErrorResponse, "description": "Lock wait exceeded; safe to retry"},
    },
)
async def settle_investment(
    body: SettlementRequest,
    service: SettlementService = Depends(_get_settlement_service),
) -> InvestmentResponse:
    return await service.settle(body.investor_ref, body.property_ref, body.tokens)
