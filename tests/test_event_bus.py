"""Tests for domain event (de)serialization and the in-process EventBus."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from estate_ledger.events.bus import WILDCARD, EventBus
from estate_ledger.events.types import (
    EVENT_REGISTRY,
    EventType,
    InvestmentCompleted,
    KycVerified,
    UserCreated,
    decode_event,
)

from .conftest import INVESTMENT_ID, INVESTOR_ID, ORGANIZATION_ID, PROPERTY_ID, TRANSACTION_ID


def _investment_completed(**overrides) -> InvestmentCompleted:
    fields = dict(
        investment_id=INVESTMENT_ID,
        investment_code="INV-000001",
        investor_id=INVESTOR_ID,
        investor_code="USR-000001",
        property_id=PROPERTY_ID,
        property_code="PROP-000001",
        organization_id=ORGANIZATION_ID,
        organization_code="ORG-000001",
        tokens_purchased=Decimal("5.000000"),
        amount=Decimal("50.000000"),
        transaction_id=TRANSACTION_ID,
        transaction_code="TXN-000001",
    )
    fields.update(overrides)
    return InvestmentCompleted(**fields)


class TestDomainEvents:
    def test_registry_covers_every_type(self):
        assert set(EVENT_REGISTRY) == {t.value for t in EventType}

    def test_each_event_gets_unique_id(self):
        a = KycVerified(investor_id=INVESTOR_ID, investor_code="USR-000001")
        b = KycVerified(investor_id=INVESTOR_ID, investor_code="USR-000001")
        assert a.event_id != b.event_id

    def test_decimals_serialize_as_exact_strings(self):
        payload = _investment_completed().model_dump(mode="json")
        assert payload["amount"] == "50.000000"
        assert "event_type" not in payload

    def test_decode_restores_typed_event(self):
        original = _investment_completed()
        decoded = decode_event("investment.completed", original.model_dump(mode="json"))
        assert isinstance(decoded, InvestmentCompleted)
        assert decoded == original
        assert decoded.amount == Decimal("50")

    def test_decode_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown event type"):
            decode_event("property.exploded", {})

    def test_decode_invalid_payload(self):
        with pytest.raises(ValidationError):
            decode_event("user.created", {"investor_code": "USR-000001"})

    def test_events_are_immutable(self):
        event = UserCreated(investor_id=INVESTOR_ID, investor_code="USR-000001", email="a@b.co")
        with pytest.raises(ValidationError):
            event.email = "other@b.co"


class TestEventBus:
    @pytest.mark.asyncio
    async def test_delivers_to_matching_and_wildcard_subscribers(self):
        bus = EventBus()
        on_investment = AsyncMock()
        on_everything = AsyncMock()
        on_kyc = AsyncMock()
        bus.subscribe(EventType.INVESTMENT_COMPLETED, on_investment, name="portfolio")
        bus.subscribe(WILDCARD, on_everything, name="audit")
        bus.subscribe("kyc.verified", on_kyc, name="kyc")

        event = _investment_completed()
        failed = await bus.publish(event)

        assert failed == []
        on_investment.assert_awaited_once_with(event)
        on_everything.assert_awaited_once_with(event)
        on_kyc.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated_and_reported(self, caplog):
        bus = EventBus()
        healthy = AsyncMock()
        bus.subscribe(EventType.INVESTMENT_COMPLETED, AsyncMock(side_effect=RuntimeError("boom")), name="broken")
        bus.subscribe(EventType.INVESTMENT_COMPLETED, healthy, name="healthy")

        failed = await bus.publish(_investment_completed())

        assert failed == ["broken"]
        healthy.assert_awaited_once()
        assert any(getattr(r, "listener", None) == "broken" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self):
        assert await EventBus().publish(_investment_completed()) == []

    def test_subscriptions_for_includes_wildcard_last(self):
        bus = EventBus()
        bus.subscribe(WILDCARD, AsyncMock(), name="audit")
        bus.subscribe(EventType.USER_CREATED, AsyncMock(), name="payments")
        names = [s.name for s in bus.subscriptions_for("user.created")]
        assert names == ["payments", "audit"]

    def test_default_subscription_name(self):
        async def update_portfolio(event):
            return None

        sub = EventBus().subscribe(EventType.USER_CREATED, update_portfolio)
        assert sub.name.endswith("update_portfolio")
        assert sub.event_type == "user.created"
