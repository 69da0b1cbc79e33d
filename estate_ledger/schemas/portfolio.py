"""Schema for the portfolio aggregate."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PortfolioResponse(BaseModel):
    investor_id: UUID
    total_invested: Decimal
    total_rewards: Decimal
    total_roi: Decimal
    active_investments: int
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)
