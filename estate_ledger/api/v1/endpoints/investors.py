"""
Investor endpoints.

- POST  /investors                      (onboard an investor)
- POST  /investors/{investor_ref}/kyc/verify
- GET   /investors/{investor_ref}/portfolio
- GET   /investors/{investor_ref}/investments
- GET   /investors/{investor_ref}/rewards
- GET   /investors/{investor_ref}/transactions
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.api.deps import get_notifier
from estate_ledger.db.session import get_db
from estate_ledger.schemas.common import ErrorResponse, ValidationErrorResponse
from estate_ledger.schemas.distribution import RewardResponse
from estate_ledger.schemas.investment import InvestmentResponse
from estate_ledger.schemas.investor import InvestorCreate, InvestorResponse
from estate_ledger.schemas.portfolio import PortfolioResponse
from estate_ledger.schemas.wallet import TransactionResponse
from estate_ledger.services.history_service import HistoryService
from estate_ledger.services.onboarding_service import OnboardingService
from estate_ledger.services.portfolio_service import PortfolioService
from estate_ledger.services.settlement_service import Notifier

router = APIRouter()


# ── Dependency injection ──


def _get_onboarding_service(
    db: AsyncSession = Depends(get_db),
    notify: Optional[Notifier] = Depends(get_notifier),
) -> OnboardingService:
    return OnboardingService(db, notify=notify)


def _get_history_service(db: AsyncSession = Depends(get_db)) -> HistoryService:
    return HistoryService(db)


def _get_portfolio_service(db: AsyncSession = Depends(get_db)) -> PortfolioService:
    return PortfolioService(db)


# ── Endpoints ──


@router.post(
    "",
    response_model=InvestorResponse,
    status_code=201,
    summary="Register an investor",
    description=(
        "Creates the investor together with a zero-balance wallet and an empty "
        "portfolio. A placeholder payment method is added asynchronously."
    ),
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def register_investor(
    body: InvestorCreate,
    service: OnboardingService = Depends(_get_onboarding_service),
) -> InvestorResponse:
    return await service.register_investor(body.full_name, str(body.email))


@router.post(
    "/{investor_ref}/kyc/verify",
    response_model=InvestorResponse,
    summary="Mark KYC as cleared",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def verify_kyc(
    investor_ref: str,
    service: OnboardingService = Depends(_get_onboarding_service),
) -> InvestorResponse:
    return await service.verify_kyc(investor_ref)


@router.get(
    "/{investor_ref}/portfolio",
    response_model=PortfolioResponse,
    summary="Get an investor's portfolio",
    description="Figures may trail the most recent settlements by one dispatcher cycle.",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def get_portfolio(
    investor_ref: str,
    service: PortfolioService = Depends(_get_portfolio_service),
) -> PortfolioResponse:
    return await service.get_portfolio(investor_ref)


@router.get(
    "/{investor_ref}/investments",
    response_model=List[InvestmentResponse],
    summary="List an investor's investments",
    description="Newest first. Use ``skip`` and ``limit`` to paginate.",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def list_investments(
    investor_ref: str,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: HistoryService = Depends(_get_history_service),
) -> List[InvestmentResponse]:
    return await service.list_investments(investor_ref, skip=skip, limit=limit)


@router.get(
    "/{investor_ref}/rewards",
    response_model=List[RewardResponse],
    summary="List an investor's rewards",
    description="Newest first. Use ``skip`` and ``limit`` to paginate.",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def list_rewards(
    investor_ref: str,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: HistoryService = Depends(_get_history_service),
) -> List[RewardResponse]:
    return await service.list_rewards(investor_ref, skip=skip, limit=limit)


@router.get(
    "/{investor_ref}/transactions",
    response_model=List[TransactionResponse],
    summary="List an investor's ledger entries",
    description=(
        "Deposits, investment debits and rewards, newest first. "
        "Use ``skip`` and ``limit`` to paginate."
    ),
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def list_transactions(
    investor_ref: str,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: HistoryService = Depends(_get_history_service),
) -> List[TransactionResponse]:
    return await service.list_transactions(investor_ref, skip=skip, limit=limit)
