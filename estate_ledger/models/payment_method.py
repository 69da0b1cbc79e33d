"""
Payment method model.

Onboarding creates a ``pending`` card placeholder; once KYC clears it is
promoted to ``verified`` and waits for the investor's card details.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from estate_ledger.models.common import timestamp_field

PLACEHOLDER_PROVIDER = "Pending Verification"
READY_PROVIDER = "Ready for Card Details"


class PaymentMethodType(str, Enum):
    CARD = "card"
    BANK = "bank"
    CRYPTO = "crypto"


class PaymentMethodStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    DISABLED = "disabled"


class PaymentMethod(SQLModel, table=True):
    __tablename__ = "payment_methods"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id", index=True, ondelete="RESTRICT"
    )
    type: PaymentMethodType = Field(default=PaymentMethodType.CARD)
    provider: str = Field(max_length=100)
    status: PaymentMethodStatus = Field(default=PaymentMethodStatus.PENDING)
    is_default: bool = Field(default=False)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
