"""
Domain events.

Events are pydantic models so they serialize to JSON for the outbox and can
be rebuilt from it with :func:`decode_event`. Pydantic renders ``Decimal``
fields as exact strings in JSON mode. Every event carries a unique
``event_id`` (the de-duplication key for listener receipts), a UTC
``timestamp``, and both the id and the human-readable code of each entity it
refers to.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    INVESTMENT_COMPLETED = "investment.completed"
    REWARD_DISTRIBUTED = "reward.distributed"
    USER_CREATED = "user.created"
    KYC_VERIFIED = "kyc.verified"
    WALLET_CREDITED = "wallet.credited"
    PAYMENT_METHOD_CREATED = "payment_method.created"
    PAYMENT_METHOD_VERIFIED = "payment_method.verified"


class DomainEvent(BaseModel):
    """Base class for everything published on the event bus."""

    model_config = ConfigDict(frozen=True)

    event_type: ClassVar[EventType]

    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InvestmentCompleted(DomainEvent):
    event_type: ClassVar[EventType] = EventType.INVESTMENT_COMPLETED

    investment_id: uuid.UUID
    investment_code: str
    investor_id: uuid.UUID
    investor_code: str
    property_id: uuid.UUID
    property_code: str
    organization_id: uuid.UUID
    organization_code: str
    tokens_purchased: Decimal
    amount: Decimal
    transaction_id: uuid.UUID
    transaction_code: str
    inflow_transaction_id: Optional[uuid.UUID] = None
    inflow_transaction_code: Optional[str] = None


class RewardDistributed(DomainEvent):
    event_type: ClassVar[EventType] = EventType.REWARD_DISTRIBUTED

    reward_id: uuid.UUID
    reward_code: str
    investor_id: uuid.UUID
    investor_code: str
    property_id: uuid.UUID
    property_code: str
    amount: Decimal
    transaction_id: uuid.UUID
    transaction_code: str


class UserCreated(DomainEvent):
    event_type: ClassVar[EventType] = EventType.USER_CREATED

    investor_id: uuid.UUID
    investor_code: str
    email: str


class KycVerified(DomainEvent):
    event_type: ClassVar[EventType] = EventType.KYC_VERIFIED

    investor_id: uuid.UUID
    investor_code: str


class WalletCredited(DomainEvent):
    event_type: ClassVar[EventType] = EventType.WALLET_CREDITED

    investor_id: uuid.UUID
    investor_code: str
    wallet_id: uuid.UUID
    amount: Decimal
    transaction_id: uuid.UUID
    transaction_code: str


class PaymentMethodCreated(DomainEvent):
    event_type: ClassVar[EventType] = EventType.PAYMENT_METHOD_CREATED

    payment_method_id: uuid.UUID
    investor_id: uuid.UUID
    investor_code: str


class PaymentMethodVerified(DomainEvent):
    event_type: ClassVar[EventType] = EventType.PAYMENT_METHOD_VERIFIED

    payment_method_id: uuid.UUID
    investor_id: uuid.UUID
    investor_code: str


EVENT_REGISTRY: Dict[str, Type[DomainEvent]] = {
    cls.event_type.value: cls
    for cls in (
        InvestmentCompleted,
        RewardDistributed,
        UserCreated,
        KycVerified,
        WalletCredited,
        PaymentMethodCreated,
        PaymentMethodVerified,
    )
}


def decode_event(event_type: str, payload: Dict[str, Any]) -> DomainEvent:
    """Rebuild a typed event from its outbox row."""
    try:
        cls = EVENT_REGISTRY[event_type]
    except KeyError:
        raise ValueError(f"Unknown event type '{event_type}'") from None
    return cls.model_validate(payload)
