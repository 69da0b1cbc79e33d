"""
Pydantic schemas for settlement requests and investment responses.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from estate_ledger.models.investment import InvestmentStatus, PaymentStatus
from estate_ledger.schemas.common import LedgerAmount, Reference


class SettlementRequest(BaseModel):
    """Body of ``POST /investments``."""

    investor_ref: Reference = Field(..., examples=["USR-000001"])
    property_ref: Reference = Field(..., examples=["PROP-000001"])
    tokens: LedgerAmount = Field(..., description="Tokens to purchase")


class InvestmentResponse(BaseModel):
    id: UUID
    code: str
    investor_id: UUID
    property_id: UUID
    tokens_purchased: Decimal
    amount_paid: Decimal
    price_per_token: Decimal
    expected_roi: Decimal
    status: InvestmentStatus
    payment_status: PaymentStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
