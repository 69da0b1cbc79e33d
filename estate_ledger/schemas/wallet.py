"""Schemas for wallets, deposits and ledger transactions."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from estate_ledger.models.transaction import TransactionStatus, TransactionType
from estate_ledger.schemas.common import LedgerAmount


class DepositRequest(BaseModel):
    amount: LedgerAmount = Field(..., description="Settled external deposit")


class WalletResponse(BaseModel):
    id: UUID
    investor_id: UUID
    balance: Decimal
    locked: Decimal
    total_deposited: Decimal
    total_withdrawn: Decimal
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    id: UUID
    code: str
    type: TransactionType
    amount: Decimal
    status: TransactionStatus
    reference_id: Optional[UUID] = None
    investor_id: Optional[UUID] = None
    wallet_id: Optional[UUID] = None
    organization_id: Optional[UUID] = None
    property_id: Optional[UUID] = None
    from_entity: Optional[str] = None
    to_entity: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
