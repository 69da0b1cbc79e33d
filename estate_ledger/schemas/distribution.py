"""Schemas for return distributions."""

from datetime import datetime
from decimal import Decimal
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from estate_ledger.models.reward import RewardStatus, RewardType
from estate_ledger.schemas.common import LedgerAmount


class DistributionRequest(BaseModel):
    """Body of ``POST /properties/{ref}/distributions``."""

    total_return: LedgerAmount = Field(..., description="Return pool to distribute")


class RewardResponse(BaseModel):
    id: UUID
    code: str
    investor_id: UUID
    investment_id: UUID
    property_id: UUID
    amount: Decimal
    type: RewardType
    status: RewardStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DistributionResponse(BaseModel):
    rewards: List[RewardResponse]
    count: int
    total_distributed: Decimal = Field(
        ..., description="Sum of the shares actually credited"
    )
