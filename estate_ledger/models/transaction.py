"""
Transaction log model.

Append-only record of every balance and treasury movement. A settlement writes
two rows: the investor-side ``investment`` debit and the organization-side
``inflow`` credit, both pointing at the investment through ``reference_id``.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from estate_ledger.models.common import ledger_field, timestamp_field


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INVESTMENT = "investment"
    RETURN = "return"
    FEE = "fee"
    REWARD = "reward"
    INFLOW = "inflow"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for ledger transactions.

    ``from_entity`` / ``to_entity`` carry human-readable provenance (investor
    name or email, organization name) so a statement can be rendered without
    joins.
    """

    __tablename__ = "transactions"  # type: ignore[assignment]

    __table_args__ = (
        # Certificate fallback lookup: newest completed purchase of a property
        # by an investor.
        Index(
            "ix_transactions_investor_property_type",
            "investor_id",
            "property_id",
            "type",
            "status",
            "created_at",
        ),
        Index("ix_transactions_reference_type", "reference_id", "type"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=32)
    type: TransactionType
    amount: Decimal = ledger_field()
    status: TransactionStatus = Field(default=TransactionStatus.COMPLETED)
    reference_id: Optional[uuid.UUID] = Field(default=None)
    investor_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="investors.id", ondelete="RESTRICT"
    )
    wallet_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="wallets.id", ondelete="RESTRICT"
    )
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organizations.id", index=True, ondelete="RESTRICT"
    )
    property_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="properties.id", ondelete="RESTRICT"
    )
    from_entity: Optional[str] = Field(default=None, max_length=320)
    to_entity: Optional[str] = Field(default=None, max_length=320)
    description: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = timestamp_field()

    def __repr__(self) -> str:
        return f"<Transaction {self.code} type={self.type.value} amount={self.amount}>"
