"""
Tests for the consistency listeners, individually (idempotency, repair and
fallback paths) and end-to-end through the outbox dispatcher.
"""

import logging
import uuid
from decimal import Decimal

import pytest

from estate_ledger.core.config import Settings
from estate_ledger.events.listeners.audit import AuditLogger
from estate_ledger.events.listeners.documents import DocumentTrigger
from estate_ledger.events.listeners.portfolio import PortfolioUpdater
from estate_ledger.events.listeners.treasury import TreasuryMirror
from estate_ledger.events.outbox import OutboxDispatcher
from estate_ledger.events.registry import build_event_bus
from estate_ledger.events.types import InvestmentCompleted, decode_event
from estate_ledger.models.certificate import CertificateRequest, CertificateStatus
from estate_ledger.models.organization import Organization
from estate_ledger.models.outbox import ListenerReceipt, OutboxEvent, OutboxStatus
from estate_ledger.models.payment_method import (
    PLACEHOLDER_PROVIDER,
    READY_PROVIDER,
    PaymentMethod,
    PaymentMethodStatus,
)
from estate_ledger.models.portfolio import Portfolio
from estate_ledger.models.transaction import Transaction, TransactionType
from estate_ledger.services.distribution_service import DistributionService
from estate_ledger.services.onboarding_service import OnboardingService
from estate_ledger.services.settlement_service import SettlementService

from .conftest import count_rows, create_funded_investor, create_listing, fetch, fetch_all


async def _settled(session_factory, tokens=5):
    """List a property at 10 per token, fund an investor and settle one purchase."""
    org, prop = await create_listing(session_factory, total_value="10000", total_tokens="1000")
    investor = await create_funded_investor(session_factory, deposit="1000")
    async with session_factory() as session:
        investment = await SettlementService(session).settle(investor.code, prop.code, tokens)
    row = await fetch(session_factory, OutboxEvent, event_type="investment.completed")
    event = decode_event(row.event_type, row.payload)
    return org, prop, investor, investment, event


def _config(**overrides) -> Settings:
    overrides.setdefault("CERTIFICATE_LOOKUP_DELAY_SECONDS", 0.0)
    overrides.setdefault("CERTIFICATE_ROOT", "certs")
    return Settings(USE_SQLITE=True, **overrides)


class TestPortfolioUpdater:
    @pytest.mark.asyncio
    async def test_applies_investment_once(self, session_factory):
        _, _, investor, _, event = await _settled(session_factory)
        listener = PortfolioUpdater(session_factory)

        assert await listener.apply(event) is True
        assert await listener.apply(event) is False

        portfolio = await fetch(session_factory, Portfolio, investor_id=investor.id)
        assert portfolio.total_invested == Decimal("50")
        assert portfolio.active_investments == 1
        assert await count_rows(session_factory, ListenerReceipt, listener="portfolio_updater") == 1

    @pytest.mark.asyncio
    async def test_reward_grows_rewards_and_roi(self, session_factory):
        _, prop, investor, _, _ = await _settled(session_factory, tokens=100)
        async with session_factory() as session:
            await DistributionService(session).distribute(prop.code, "1000")
        row = await fetch(session_factory, OutboxEvent, event_type="reward.distributed")

        await PortfolioUpdater(session_factory).apply(decode_event(row.event_type, row.payload))

        portfolio = await fetch(session_factory, Portfolio, investor_id=investor.id)
        assert portfolio.total_rewards == Decimal("100")
        assert portfolio.total_roi == Decimal("100")
        assert portfolio.total_invested == Decimal("0")


class TestTreasuryMirror:
    @pytest.mark.asyncio
    async def test_existing_inflow_is_left_alone(self, session_factory):
        org, _, _, _, event = await _settled(session_factory)

        await TreasuryMirror(session_factory).apply(event)

        stored = await fetch(session_factory, Organization, id=org.id)
        assert stored.liquidity == Decimal("50")
        assert await count_rows(session_factory, Transaction, type=TransactionType.INFLOW) == 1

    @pytest.mark.asyncio
    async def test_missing_inflow_is_repaired(self, session_factory):
        org, _, _, _, event = await _settled(session_factory)
        orphan = InvestmentCompleted(
            **event.model_dump(exclude={"event_id", "timestamp", "investment_id"}),
            investment_id=uuid.uuid4(),
        )

        await TreasuryMirror(session_factory).apply(orphan)

        stored = await fetch(session_factory, Organization, id=org.id)
        assert stored.liquidity == Decimal("100")
        repaired = await fetch(
            session_factory, Transaction, reference_id=orphan.investment_id, type=TransactionType.INFLOW
        )
        assert repaired.amount == Decimal("50")


class TestDocumentTrigger:
    @pytest.mark.asyncio
    async def test_queues_certificate_once(self, session_factory):
        _, _, _, investment, event = await _settled(session_factory)
        trigger = DocumentTrigger(session_factory, lookup_delay=0, certificate_root="certs")

        await trigger(event)
        await trigger(event)

        [request] = await fetch_all(session_factory, CertificateRequest)
        assert request.investment_id == investment.id
        assert request.transaction_id == event.transaction_id
        assert request.path == f"certs/{investment.code}/{event.transaction_code}.pdf"
        assert request.status == CertificateStatus.REQUESTED

    @pytest.mark.asyncio
    async def test_falls_back_to_latest_investment_transaction(self, session_factory):
        _, _, _, _, event = await _settled(session_factory)
        stale = event.model_copy(update={"transaction_id": uuid.uuid4()})

        await DocumentTrigger(session_factory, lookup_delay=0, certificate_root="certs")(stale)

        request = await fetch(session_factory, CertificateRequest, investment_id=event.investment_id)
        assert request.transaction_id == event.transaction_id

    @pytest.mark.asyncio
    async def test_gives_up_quietly_without_transaction(self, session_factory, caplog):
        _, _, _, _, event = await _settled(session_factory)
        ghost = event.model_copy(
            update={"transaction_id": uuid.uuid4(), "investor_id": uuid.uuid4()}
        )

        with caplog.at_level(logging.WARNING):
            await DocumentTrigger(session_factory, lookup_delay=0)(ghost)

        assert await count_rows(session_factory, CertificateRequest) == 0
        assert await count_rows(session_factory, ListenerReceipt, listener="document_trigger") == 0
        assert any("certificate not queued" in r.getMessage() for r in caplog.records)


class TestAuditLogger:
    @pytest.mark.asyncio
    async def test_logs_every_event(self, caplog):
        event = InvestmentCompleted(
            investment_id=uuid.uuid4(),
            investment_code="INV-000001",
            investor_id=uuid.uuid4(),
            investor_code="USR-000001",
            property_id=uuid.uuid4(),
            property_code="PROP-000001",
            organization_id=uuid.uuid4(),
            organization_code="ORG-000001",
            tokens_purchased=Decimal("5"),
            amount=Decimal("50"),
            transaction_id=uuid.uuid4(),
            transaction_code="TXN-000002",
        )
        with caplog.at_level(logging.INFO, logger="estate_ledger.audit"):
            await AuditLogger()(event)

        [record] = [r for r in caplog.records if r.name == "estate_ledger.audit"]
        assert record.event_type == "investment.completed"
        assert "INV-000001" in record.getMessage()


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_settlement_flows_through_every_listener(self, session_factory):
        bus = build_event_bus(session_factory, _config())
        dispatcher = OutboxDispatcher(session_factory, bus, batch_size=50, max_attempts=3)
        _, _, investor, investment, event = await _settled(session_factory)

        await dispatcher.run_once()
        await dispatcher.run_once()

        portfolio = await fetch(session_factory, Portfolio, investor_id=investor.id)
        assert portfolio.total_invested == Decimal("50")
        assert portfolio.active_investments == 1
        request = await fetch(session_factory, CertificateRequest, investment_id=investment.id)
        assert request.path.startswith("certs/INV-000001/")
        [method] = await fetch_all(session_factory, PaymentMethod, investor_id=investor.id)
        assert method.status == PaymentMethodStatus.PENDING
        assert method.provider == PLACEHOLDER_PROVIDER
        assert await count_rows(session_factory, OutboxEvent, status=OutboxStatus.PENDING) == 0
        assert await count_rows(session_factory, OutboxEvent, status=OutboxStatus.FAILED) == 0

    @pytest.mark.asyncio
    async def test_kyc_promotes_placeholder_payment_method(self, session_factory):
        bus = build_event_bus(session_factory, _config())
        dispatcher = OutboxDispatcher(session_factory, bus)
        investor = await create_funded_investor(session_factory, deposit="0")
        await dispatcher.run_once()

        async with session_factory() as session:
            await OnboardingService(session).verify_kyc(investor.code)
        await dispatcher.run_once()
        await dispatcher.run_once()

        [method] = await fetch_all(session_factory, PaymentMethod, investor_id=investor.id)
        assert method.status == PaymentMethodStatus.VERIFIED
        assert method.provider == READY_PROVIDER
        verified = await fetch_all(session_factory, OutboxEvent, event_type="payment_method.verified")
        assert [row.status for row in verified] == [OutboxStatus.DISPATCHED]

    @pytest.mark.asyncio
    async def test_redelivery_does_not_double_count(self, session_factory):
        bus = build_event_bus(session_factory, _config())
        _, _, investor, _, event = await _settled(session_factory)

        assert await bus.publish(event) == []
        assert await bus.publish(event) == []

        portfolio = await fetch(session_factory, Portfolio, investor_id=investor.id)
        assert portfolio.total_invested == Decimal("50")
        assert await count_rows(session_factory, CertificateRequest) == 1
