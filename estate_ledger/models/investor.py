"""
Investor domain model.

An investor is created once at onboarding together with a zero-balance wallet
and an empty portfolio. ``code`` is the human-readable ``USR-######``
reference used in URLs and event payloads.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from estate_ledger.models.common import timestamp_field


class KycStatus(str, Enum):
    """Identity-verification states."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Investor(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for investors.

    ``email`` is unique so duplicate registrations fail at the database even
    when two requests race past the service-level check.
    """

    __tablename__ = "investors"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(full_name) > 0", name="ck_investors_name_not_empty"),
        CheckConstraint("length(email) > 0", name="ck_investors_email_not_empty"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=32)
    full_name: str = Field(index=True, max_length=255)
    email: str = Field(unique=True, index=True, max_length=320)
    kyc_status: KycStatus = Field(default=KycStatus.PENDING)
    created_at: datetime = timestamp_field()

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def __repr__(self) -> str:
        return f"<Investor {self.code} email='{self.email}' kyc={self.kyc_status.value}>"
