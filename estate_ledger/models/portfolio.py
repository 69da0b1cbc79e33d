"""
Portfolio aggregate model.

Written only by the portfolio listener, never by the settlement path, so its
figures trail the ledger by at most one dispatcher cycle.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import Field, SQLModel

from estate_ledger.models.common import ledger_field, timestamp_field


class Portfolio(SQLModel, table=True):
    __tablename__ = "portfolios"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id",
        unique=True,
        index=True,
        ondelete="RESTRICT",
    )
    total_invested: Decimal = ledger_field()
    total_rewards: Decimal = ledger_field()
    total_roi: Decimal = ledger_field()
    active_investments: int = Field(default=0, nullable=False)
    last_updated: datetime = timestamp_field()

    def __repr__(self) -> str:
        return (
            f"<Portfolio investor={self.investor_id} invested={self.total_invested} "
            f"active={self.active_investments}>"
        )
