"""
Seed script: populates the database with demo data for development.

Usage::

    python -m estate_ledger.seed

Everything goes through the services, so reference codes, transactions and
outbox events are written exactly as they would be through the API. Running
the script twice is a no-op: it stops if the demo organization exists.
"""

import asyncio
import logging
from decimal import Decimal

from estate_ledger.db.base import metadata
from estate_ledger.db.session import AsyncSessionLocal, engine
from estate_ledger.models.property import PropertyStatus
from estate_ledger.repositories.organization_repo import OrganizationRepository
from estate_ledger.services.onboarding_service import OnboardingService
from estate_ledger.services.settlement_service import SettlementService
from estate_ledger.services.wallet_service import WalletService

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s"
)
logger = logging.getLogger(__name__)

ORGANIZATION = "Harbourline Developments"

# (title, total_value, total_tokens, expected_roi, status)
PROPERTIES = [
    ("Marina Heights Residences", Decimal("1000000"), Decimal("1000"), Decimal("8.5"), PropertyStatus.ACTIVE),
    ("Old Town Lofts", Decimal("450000"), Decimal("900"), Decimal("6.25"), PropertyStatus.CONSTRUCTION),
    ("Riverside Logistics Park", Decimal("2400000"), Decimal("4800"), Decimal("7.0"), PropertyStatus.ACTIVE),
]

# (full_name, email, opening deposit, KYC verified)
INVESTORS = [
    ("Amelia Hart", "amelia.hart@example.com", Decimal("50000"), True),
    ("Jonas Weber", "jonas.weber@example.com", Decimal("12500"), True),
    ("Priya Natarajan", "priya.n@example.com", Decimal("3000"), False),
]

# (investor index, property index, tokens)
PURCHASES = [
    (0, 0, Decimal("20")),
    (1, 0, Decimal("5")),
    (0, 2, Decimal("10")),
]


async def seed() -> None:
    """Create tables and insert demo data unless it is already there."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    async with AsyncSessionLocal() as session:
        if await OrganizationRepository(session).get_by_name(ORGANIZATION) is not None:
            logger.info("Demo data already present; skipping seed.")
            return
        # Reads above leave a transaction open; services start their own.
        await session.rollback()

        onboarding = OnboardingService(session)
        wallets = WalletService(session)
        settlement = SettlementService(session)

        org = await onboarding.create_organization(ORGANIZATION)
        properties = []
        for title, value, tokens, roi, status in PROPERTIES:
            properties.append(
                await onboarding.create_property(
                    org.code, title, value, tokens, expected_roi=roi, status=status
                )
            )

        investors = []
        for full_name, email, deposit, verified in INVESTORS:
            investor = await onboarding.register_investor(full_name, email)
            if verified:
                await onboarding.verify_kyc(investor.code)
            await wallets.record_deposit(investor.code, deposit)
            investors.append(investor)

        for investor_idx, property_idx, tokens in PURCHASES:
            await settlement.settle(
                investors[investor_idx].code, properties[property_idx].code, tokens
            )

        logger.info(
            "Seeded 1 organization, %d properties, %d investors, %d investments",
            len(properties),
            len(investors),
            len(PURCHASES),
        )


if __name__ == "__main__":
    asyncio.run(seed())
