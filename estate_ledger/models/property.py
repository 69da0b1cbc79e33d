"""
Property (token inventory) model.

A property is listed with a fixed ``total_tokens`` supply. ``available_tokens``
starts equal to it and is decremented by each settlement while the row is
locked, so ``0 <= available_tokens <= total_tokens`` always holds and
``available_tokens`` plus the tokens of all confirmed investments equals the
supply.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from estate_ledger.core.ledger import ZERO
from estate_ledger.models.common import ledger_field, timestamp_field


class PropertyStatus(str, Enum):
    """Listing lifecycle of a property."""

    PLANNING = "planning"
    CONSTRUCTION = "construction"
    ACTIVE = "active"
    ON_HOLD = "onhold"
    SOLD_OUT = "soldout"
    COMPLETED = "completed"


class Property(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for properties.

    ``price_per_token`` is derived once at listing time as
    ``total_value / total_tokens`` and is not recomputed afterwards.
    """

    __tablename__ = "properties"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(title) > 0", name="ck_properties_title_not_empty"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=32)
    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id",
        index=True,
        ondelete="RESTRICT",
    )
    title: str = Field(max_length=255)
    status: PropertyStatus = Field(default=PropertyStatus.ACTIVE)
    total_value: Decimal = ledger_field()
    total_tokens: Decimal = ledger_field()
    available_tokens: Decimal = ledger_field()
    price_per_token: Decimal = ledger_field()
    expected_roi: Decimal = ledger_field()
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()

    def reserve(self, tokens: Decimal) -> None:
        if tokens <= ZERO or tokens > self.available_tokens:
            raise ValueError(
                f"Cannot reserve {tokens} of {self.available_tokens} available tokens"
            )
        self.available_tokens = self.available_tokens - tokens
        if self.available_tokens == ZERO:
            self.status = PropertyStatus.SOLD_OUT

    def __repr__(self) -> str:
        return (
            f"<Property {self.code} available={self.available_tokens}/"
            f"{self.total_tokens} price={self.price_per_token}>"
        )
