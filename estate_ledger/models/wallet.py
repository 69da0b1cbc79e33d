"""
Wallet (balance store) model.

One wallet per investor. ``balance`` is the spendable amount; it is only ever
changed while the row is locked, and a debit larger than the balance is
rejected before anything is written, so it never goes negative.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import Field, SQLModel

from estate_ledger.core.ledger import ZERO
from estate_ledger.models.common import ledger_field, timestamp_field


class Wallet(SQLModel, table=True):
    __tablename__ = "wallets"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id",
        unique=True,
        index=True,
        ondelete="RESTRICT",
    )
    balance: Decimal = ledger_field()
    locked: Decimal = ledger_field()
    total_deposited: Decimal = ledger_field()
    total_withdrawn: Decimal = ledger_field()
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()

    def can_cover(self, amount: Decimal) -> bool:
        return self.balance >= amount

    def debit(self, amount: Decimal) -> None:
        if amount <= ZERO or amount > self.balance:
            raise ValueError(f"Cannot debit {amount} from balance {self.balance}")
        self.balance = self.balance - amount

    def credit(self, amount: Decimal) -> None:
        if amount <= ZERO:
            raise ValueError(f"Cannot credit non-positive amount {amount}")
        self.balance = self.balance + amount

    def __repr__(self) -> str:
        return f"<Wallet investor={self.investor_id} balance={self.balance}>"
