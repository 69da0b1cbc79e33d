"""
Organization (issuer treasury) model.

``liquidity`` grows only through settled investment inflows.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from estate_ledger.models.common import ledger_field, timestamp_field


class Organization(SQLModel, table=True):
    __tablename__ = "organizations"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_organizations_name_not_empty"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=32)
    name: str = Field(unique=True, index=True, max_length=255)
    liquidity: Decimal = ledger_field()
    created_at: datetime = timestamp_field()

    def __repr__(self) -> str:
        return f"<Organization {self.code} name='{self.name}' liquidity={self.liquidity}>"
