"""
Shared pytest fixtures.

Tests run with ``USE_SQLITE=true``. Service, listener and outbox tests get a
fresh SQLite file per test (``engine`` / ``session_factory``) so concurrency
is exercised against a real write lock; API tests mock the services instead.
"""

import os

os.environ.setdefault("USE_SQLITE", "true")

import uuid  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Tuple  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from estate_ledger.db.base import metadata  # noqa: E402
from estate_ledger.db.session import build_engine, build_session_factory  # noqa: E402
from estate_ledger.models.investment import (  # noqa: E402
    Investment,
    InvestmentStatus,
    PaymentStatus,
)
from estate_ledger.models.investor import Investor, KycStatus  # noqa: E402
from estate_ledger.models.organization import Organization  # noqa: E402
from estate_ledger.models.property import Property, PropertyStatus  # noqa: E402
from estate_ledger.services.onboarding_service import OnboardingService  # noqa: E402
from estate_ledger.services.wallet_service import WalletService  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers: unsaved domain objects with fixed ids
# ────────────────────────────────────────────────────────────────────────────

ORGANIZATION_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
INVESTOR_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
INVESTMENT_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
PROPERTY_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")
REWARD_ID = uuid.UUID("55555555-5555-5555-5555-555555555555")
TRANSACTION_ID = uuid.UUID("66666666-6666-6666-6666-666666666666")


def make_investor(
    *,
    id: uuid.UUID = INVESTOR_ID,
    code: str = "USR-000001",
    full_name: str = "Test Investor",
    email: str = "test@example.com",
    kyc_status: KycStatus = KycStatus.PENDING,
) -> Investor:
    return Investor(
        id=id,
        code=code,
        full_name=full_name,
        email=email,
        kyc_status=kyc_status,
        created_at=datetime.now(timezone.utc),
    )


def make_organization(
    *,
    id: uuid.UUID = ORGANIZATION_ID,
    code: str = "ORG-000001",
    name: str = "Test Developments",
    liquidity: Decimal = Decimal("0"),
) -> Organization:
    return Organization(
        id=id,
        code=code,
        name=name,
        liquidity=liquidity,
        created_at=datetime.now(timezone.utc),
    )


def make_property(
    *,
    id: uuid.UUID = PROPERTY_ID,
    code: str = "PROP-000001",
    organization_id: uuid.UUID = ORGANIZATION_ID,
    title: str = "Test Tower",
    total_value: Decimal = Decimal("1000000"),
    total_tokens: Decimal = Decimal("1000"),
    available_tokens: Decimal = Decimal("1000"),
    price_per_token: Decimal = Decimal("1000"),
    status: PropertyStatus = PropertyStatus.ACTIVE,
) -> Property:
    now = datetime.now(timezone.utc)
    return Property(
        id=id,
        code=code,
        organization_id=organization_id,
        title=title,
        status=status,
        total_value=total_value,
        total_tokens=total_tokens,
        available_tokens=available_tokens,
        price_per_token=price_per_token,
        expected_roi=Decimal("8.5"),
        created_at=now,
        updated_at=now,
    )


def make_investment(
    *,
    id: uuid.UUID = INVESTMENT_ID,
    investor_id: uuid.UUID = INVESTOR_ID,
    property_id: uuid.UUID = PROPERTY_ID,
    tokens: Decimal = Decimal("10"),
    amount: Decimal = Decimal("10000"),
) -> Investment:
    return Investment(
        id=id,
        code="INV-000001",
        investor_id=investor_id,
        property_id=property_id,
        tokens_purchased=tokens,
        amount_paid=amount,
        price_per_token=Decimal("1000"),
        expected_roi=Decimal("8.5"),
        status=InvestmentStatus.CONFIRMED,
        payment_status=PaymentStatus.COMPLETED,
        created_at=datetime.now(timezone.utc),
    )


# ────────────────────────────────────────────────────────────────────────────
# Database fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture()
async def engine(tmp_path):
    """A fresh SQLite file with every table created."""
    eng = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", lock_timeout_seconds=10.0
    )
    async with eng.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession for tests that never reach the database."""
    session = AsyncMock()
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    return session


# ── Seeding helpers (go through the services like a real caller) ──


async def create_listing(
    session_factory,
    *,
    org_name: str = "Harbourline Developments",
    title: str = "Marina Heights",
    total_value="1000000",
    total_tokens="1000",
    expected_roi="8.5",
) -> Tuple[Organization, Property]:
    async with session_factory() as session:
        service = OnboardingService(session)
        org = await service.create_organization(org_name)
        prop = await service.create_property(
            org.code, title, total_value, total_tokens, expected_roi=expected_roi
        )
    return org, prop


async def create_funded_investor(
    session_factory,
    *,
    full_name: str = "Amelia Hart",
    email: str = "amelia@example.com",
    deposit="10000",
) -> Investor:
    async with session_factory() as session:
        investor = await OnboardingService(session).register_investor(full_name, email)
        if Decimal(str(deposit)) > 0:
            await WalletService(session).record_deposit(investor.code, deposit)
    return investor


async def fetch(session_factory, model, **filters):
    """Re-read one row in a fresh session."""
    async with session_factory() as session:
        stmt = select(model).filter_by(**filters)
        return (await session.execute(stmt)).scalars().first()


async def fetch_all(session_factory, model, **filters):
    async with session_factory() as session:
        stmt = select(model).filter_by(**filters)
        return list((await session.execute(stmt)).scalars().all())


async def count_rows(session_factory, model, **filters) -> int:
    async with session_factory() as session:
        subquery = select(model).filter_by(**filters).subquery()
        stmt = select(func.count()).select_from(subquery)
        return (await session.execute(stmt)).scalar_one()
