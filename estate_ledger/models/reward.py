"""
Reward model.

One row per investor per distribution. ``investment_id`` points at the
investor's earliest confirmed investment in the property; the amount covers
the investor's whole holding, not just that investment.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, SQLModel

from estate_ledger.models.common import ledger_field, timestamp_field


class RewardType(str, Enum):
    ROI = "roi"
    REFERRAL = "referral"
    BONUS = "bonus"


class RewardStatus(str, Enum):
    PENDING = "pending"
    DISTRIBUTED = "distributed"


class Reward(SQLModel, table=True):
    __tablename__ = "rewards"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=32)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id", index=True, ondelete="RESTRICT"
    )
    investment_id: uuid.UUID = Field(
        foreign_key="investments.id", ondelete="RESTRICT"
    )
    property_id: uuid.UUID = Field(
        foreign_key="properties.id", index=True, ondelete="RESTRICT"
    )
    amount: Decimal = ledger_field()
    type: RewardType = Field(default=RewardType.ROI)
    status: RewardStatus = Field(default=RewardStatus.DISTRIBUTED)
    created_at: datetime = timestamp_field()

    def __repr__(self) -> str:
        return f"<Reward {self.code} investor={self.investor_id} amount={self.amount}>"
