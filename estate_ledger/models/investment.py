"""
Investment domain model.

One row per settled purchase. ``amount_paid`` is fixed at
``tokens_purchased × price_per_token`` (half-up at ledger scale) when the
purchase settles; the row is never updated afterwards.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from estate_ledger.models.common import ledger_field, timestamp_field


class InvestmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    SOLD = "sold"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Investment(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for investments.

    The composite index ``ix_investments_property_status`` covers the
    distribution query (confirmed holdings of one property).
    """

    __tablename__ = "investments"  # type: ignore[assignment]

    __table_args__ = (
        Index("ix_investments_property_status", "property_id", "status"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=32)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id",
        index=True,
        ondelete="RESTRICT",
    )
    property_id: uuid.UUID = Field(
        foreign_key="properties.id",
        index=True,
        ondelete="RESTRICT",
    )
    tokens_purchased: Decimal = ledger_field()
    amount_paid: Decimal = ledger_field()
    price_per_token: Decimal = ledger_field()
    expected_roi: Decimal = ledger_field()
    status: InvestmentStatus = Field(default=InvestmentStatus.CONFIRMED)
    payment_status: PaymentStatus = Field(default=PaymentStatus.COMPLETED)
    created_at: datetime = timestamp_field(index=True)

    def __repr__(self) -> str:
        return (
            f"<Investment {self.code} investor={self.investor_id} "
            f"tokens={self.tokens_purchased} amount={self.amount_paid}>"
        )
