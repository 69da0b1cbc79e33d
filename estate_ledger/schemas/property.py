"""Schemas for property listings."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from estate_ledger.models.property import PropertyStatus
from estate_ledger.schemas.common import LedgerAmount, Reference


class PropertyCreate(BaseModel):
    """
    Body of ``POST /properties``.

    ``price_per_token`` is not accepted; it is derived as
    ``total_value / total_tokens``.
    """

    organization_ref: Reference = Field(..., examples=["ORG-000001"])
    title: str = Field(..., min_length=1, max_length=255, examples=["Marina Tower, Unit 12"])
    total_value: LedgerAmount
    total_tokens: LedgerAmount
    expected_roi: Decimal = Field(
        default=Decimal("0"), ge=0, max_digits=18, decimal_places=6, examples=["8.5"]
    )
    status: PropertyStatus = PropertyStatus.ACTIVE


class PropertyResponse(BaseModel):
    id: UUID
    code: str
    organization_id: UUID
    title: str
    status: PropertyStatus
    total_value: Decimal
    total_tokens: Decimal
    available_tokens: Decimal
    price_per_token: Decimal
    expected_roi: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
