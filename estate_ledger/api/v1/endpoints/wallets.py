"""
Wallet endpoints.

- GET   /wallets/{investor_ref}           (current balances)
- POST  /wallets/{investor_ref}/deposits  (credit a settled deposit)
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.api.deps import get_notifier
from estate_ledger.db.session import get_db
from estate_ledger.schemas.common import ErrorResponse, ValidationErrorResponse
from estate_ledger.schemas.wallet import DepositRequest, TransactionResponse, WalletResponse
from estate_ledger.services.settlement_service import Notifier
from estate_ledger.services.wallet_service import WalletService

router = APIRouter()


def _get_wallet_service(
    db: AsyncSession = Depends(get_db),
    notify: Optional[Notifier] = Depends(get_notifier),
) -> WalletService:
    return WalletService(db, notify=notify)


@router.get(
    "/{investor_ref}",
    response_model=WalletResponse,
    summary="Get an investor's wallet",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def get_wallet(
    investor_ref: str,
    service: WalletService = Depends(_get_wallet_service),
) -> WalletResponse:
    return await service.get_wallet(investor_ref)


@router.post(
    "/{investor_ref}/deposits",
    response_model=TransactionResponse,
    status_code=201,
    summary="Record a deposit",
    responses={
        404: {"model": ErrorResponse, "description": "Investor not found"},
        422: {"model": ValidationErrorResponse, "description": "Invalid amount"},
    },
)
async def record_deposit(
    investor_ref: str,
    body: DepositRequest,
    service: WalletService = Depends(_get_wallet_service),
) -> TransactionResponse:
    return await service.record_deposit(investor_ref, body.amount)
