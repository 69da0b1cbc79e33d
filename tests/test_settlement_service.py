"""
Tests for SettlementService against a real SQLite database.

Covers the happy path, every rejection (with proof that nothing was
written), reference resolution by code and UUID, dispatcher notification,
and concurrent settlements competing for the same inventory or wallet.
"""

import asyncio
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from estate_ledger.core.exceptions import (
    InsufficientFunds,
    InsufficientInventory,
    InvalidArgument,
    NotFoundException,
)
from estate_ledger.core.ledger import LEDGER_MAX
from estate_ledger.models.investment import Investment, InvestmentStatus, PaymentStatus
from estate_ledger.models.organization import Organization
from estate_ledger.models.outbox import OutboxEvent
from estate_ledger.models.property import Property, PropertyStatus
from estate_ledger.models.transaction import Transaction, TransactionType
from estate_ledger.models.wallet import Wallet
from estate_ledger.services.onboarding_service import OnboardingService
from estate_ledger.services.settlement_service import SettlementService

from .conftest import count_rows, create_funded_investor, create_listing, fetch, fetch_all


async def _settle(session_factory, investor_ref, property_ref, tokens, notify=None):
    async with session_factory() as session:
        return await SettlementService(session, notify=notify).settle(
            investor_ref, property_ref, tokens
        )


@pytest_asyncio.fixture()
async def listing(session_factory):
    """1000 tokens at 10 per token."""
    return await create_listing(session_factory, total_value="10000", total_tokens="1000")


class TestSettleHappyPath:
    @pytest.mark.asyncio
    async def test_buys_tokens_with_wallet_balance(self, session_factory, listing):
        org, prop = listing
        investor = await create_funded_investor(session_factory, deposit="50")

        investment = await _settle(session_factory, investor.code, prop.code, 5)

        assert investment.code == "INV-000001"
        assert investment.tokens_purchased == Decimal("5")
        assert investment.amount_paid == Decimal("50")
        assert investment.price_per_token == Decimal("10")
        assert investment.status == InvestmentStatus.CONFIRMED
        assert investment.payment_status == PaymentStatus.COMPLETED

        wallet = await fetch(session_factory, Wallet, investor_id=investor.id)
        assert wallet.balance == Decimal("0")
        stored_prop = await fetch(session_factory, Property, id=prop.id)
        assert stored_prop.available_tokens == Decimal("995")
        stored_org = await fetch(session_factory, Organization, id=org.id)
        assert stored_org.liquidity == Decimal("50")

    @pytest.mark.asyncio
    async def test_writes_investment_and_inflow_transactions(self, session_factory, listing):
        org, prop = listing
        investor = await create_funded_investor(session_factory, deposit="50")

        investment = await _settle(session_factory, investor.code, prop.code, 5)

        debit = await fetch(
            session_factory, Transaction, reference_id=investment.id, type=TransactionType.INVESTMENT
        )
        inflow = await fetch(
            session_factory, Transaction, reference_id=investment.id, type=TransactionType.INFLOW
        )
        assert debit.amount == inflow.amount == Decimal("50")
        assert debit.from_entity == "Amelia Hart"
        assert debit.to_entity == prop.title
        assert debit.wallet_id is not None
        assert inflow.organization_id == org.id
        assert inflow.to_entity == org.name
        assert await count_rows(session_factory, Investment) == 1

    @pytest.mark.asyncio
    async def test_stages_investment_completed_event(self, session_factory, listing):
        _, prop = listing
        investor = await create_funded_investor(session_factory, deposit="50")

        investment = await _settle(session_factory, investor.code, prop.code, 5)

        rows = await fetch_all(session_factory, OutboxEvent, event_type="investment.completed")
        assert len(rows) == 1
        payload = rows[0].payload
        assert payload["investment_code"] == investment.code
        assert payload["amount"] == "50.000000"
        assert payload["investor_code"] == investor.code

    @pytest.mark.asyncio
    async def test_accepts_uuid_references_and_lowercase_codes(self, session_factory, listing):
        _, prop = listing
        investor = await create_funded_investor(session_factory, deposit="100")

        await _settle(session_factory, investor.id, str(prop.id), 2)
        await _settle(session_factory, investor.code.lower(), prop.code.lower(), "1.5")

        stored_prop = await fetch(session_factory, Property, id=prop.id)
        assert stored_prop.available_tokens == Decimal("996.5")

    @pytest.mark.asyncio
    async def test_last_tokens_mark_property_sold_out(self, session_factory):
        _, prop = await create_listing(session_factory, total_value="30", total_tokens="3")
        investor = await create_funded_investor(session_factory, deposit="30")

        await _settle(session_factory, investor.code, prop.code, 3)

        stored_prop = await fetch(session_factory, Property, id=prop.id)
        assert stored_prop.available_tokens == Decimal("0")
        assert stored_prop.status == PropertyStatus.SOLD_OUT

    @pytest.mark.asyncio
    async def test_notifies_dispatcher_after_commit(self, session_factory, listing):
        _, prop = listing
        investor = await create_funded_investor(session_factory, deposit="50")
        notify = MagicMock()

        await _settle(session_factory, investor.code, prop.code, 5, notify=notify)

        notify.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_undo_settlement(self, session_factory, listing):
        _, prop = listing
        investor = await create_funded_investor(session_factory, deposit="50")

        investment = await _settle(
            session_factory, investor.code, prop.code, 5, notify=MagicMock(side_effect=RuntimeError)
        )

        assert await fetch(session_factory, Investment, id=investment.id) is not None


class TestSettleRejections:
    async def _assert_nothing_written(self, session_factory, prop, investor, balance):
        assert await count_rows(session_factory, Investment) == 0
        assert await count_rows(session_factory, Transaction, type=TransactionType.INVESTMENT) == 0
        assert await count_rows(session_factory, OutboxEvent, event_type="investment.completed") == 0
        stored_prop = await fetch(session_factory, Property, id=prop.id)
        assert stored_prop.available_tokens == prop.available_tokens
        wallet = await fetch(session_factory, Wallet, investor_id=investor.id)
        assert wallet.balance == Decimal(balance)

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, session_factory, listing):
        _, prop = listing
        investor = await create_funded_investor(session_factory, deposit="10")

        with pytest.raises(InsufficientFunds) as exc_info:
            await _settle(session_factory, investor.code, prop.code, 5)

        assert exc_info.value.required == Decimal("50")
        await self._assert_nothing_written(session_factory, prop, investor, "10")

    @pytest.mark.asyncio
    async def test_insufficient_inventory(self, session_factory):
        _, prop = await create_listing(session_factory, total_value="30", total_tokens="3")
        investor = await create_funded_investor(session_factory, deposit="1000")

        with pytest.raises(InsufficientInventory) as exc_info:
            await _settle(session_factory, investor.code, prop.code, 5)

        assert exc_info.value.available == Decimal("3")
        await self._assert_nothing_written(session_factory, prop, investor, "1000")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tokens", [0, "-1", "0.0000001"])
    async def test_non_positive_quantity(self, session_factory, listing, tokens):
        _, prop = listing
        investor = await create_funded_investor(session_factory, deposit="50")

        with pytest.raises(InvalidArgument):
            await _settle(session_factory, investor.code, prop.code, tokens)

        await self._assert_nothing_written(session_factory, prop, investor, "50")

    @pytest.mark.asyncio
    async def test_charge_rounding_to_zero_rejected(self, session_factory):
        _, prop = await create_listing(session_factory, total_value="100", total_tokens="1000")
        investor = await create_funded_investor(session_factory, deposit="5")

        with pytest.raises(InvalidArgument, match="rounds to zero"):
            await _settle(session_factory, investor.code, prop.code, "0.000001")

        await self._assert_nothing_written(session_factory, prop, investor, "5")

    @pytest.mark.asyncio
    async def test_liquidity_past_ledger_maximum_rejected(self, session_factory, listing):
        org, prop = listing
        investor = await create_funded_investor(session_factory, deposit="50")
        async with session_factory() as session:
            stored_org = await session.get(Organization, org.id)
            stored_org.liquidity = LEDGER_MAX - Decimal("10")
            await session.commit()

        with pytest.raises(InvalidArgument, match="organization liquidity"):
            await _settle(session_factory, investor.code, prop.code, 5)

        await self._assert_nothing_written(session_factory, prop, investor, "50")
        stored_org = await fetch(session_factory, Organization, id=org.id)
        assert stored_org.liquidity == LEDGER_MAX - Decimal("10")

    @pytest.mark.asyncio
    async def test_unknown_investor(self, session_factory, listing):
        _, prop = listing
        with pytest.raises(NotFoundException, match="Investor"):
            await _settle(session_factory, "USR-999999", prop.code, 1)

    @pytest.mark.asyncio
    async def test_unknown_property(self, session_factory):
        investor = await create_funded_investor(session_factory, deposit="50")
        with pytest.raises(NotFoundException, match="Property"):
            await _settle(session_factory, investor.code, "PROP-999999", 1)


class TestConcurrentSettlement:
    @pytest.mark.asyncio
    async def test_inventory_is_never_oversold(self, session_factory):
        _, prop = await create_listing(session_factory, total_value="100", total_tokens="100")
        investors = [
            await create_funded_investor(
                session_factory, full_name=f"Buyer {i}", email=f"buyer{i}@example.com", deposit="20"
            )
            for i in range(8)
        ]

        results = await asyncio.gather(
            *(_settle(session_factory, inv.code, prop.code, 20) for inv in investors),
            return_exceptions=True,
        )

        succeeded = [r for r in results if isinstance(r, Investment)]
        rejected = [r for r in results if isinstance(r, InsufficientInventory)]
        assert len(succeeded) == 5
        assert len(rejected) == 3

        stored_prop = await fetch(session_factory, Property, id=prop.id)
        assert stored_prop.available_tokens == Decimal("0")
        holdings = await fetch_all(session_factory, Investment, property_id=prop.id)
        assert sum(i.tokens_purchased for i in holdings) + stored_prop.available_tokens == Decimal("100")
        assert len({i.code for i in holdings}) == 5

    @pytest.mark.asyncio
    async def test_wallet_is_never_overdrawn(self, session_factory):
        _, first = await create_listing(session_factory, total_value="10000", total_tokens="1000")
        async with session_factory() as session:
            second = await OnboardingService(session).create_property(
                first.organization_id, "Second Listing", "10000", "1000"
            )
        investor = await create_funded_investor(session_factory, deposit="50")

        results = await asyncio.gather(
            _settle(session_factory, investor.code, first.code, 5),
            _settle(session_factory, investor.code, second.code, 5),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Investment) for r in results) == 1
        assert sum(isinstance(r, InsufficientFunds) for r in results) == 1
        wallet = await fetch(session_factory, Wallet, investor_id=investor.id)
        assert wallet.balance == Decimal("0")
