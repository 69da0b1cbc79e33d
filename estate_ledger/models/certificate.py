"""
Certificate request model.

Queued by the document listener after a settlement; an external renderer
produces the PDF at ``path`` and flips ``status``.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from estate_ledger.models.common import timestamp_field


class CertificateStatus(str, Enum):
    REQUESTED = "requested"
    GENERATED = "generated"
    FAILED = "failed"


class CertificateRequest(SQLModel, table=True):
    __tablename__ = "certificate_requests"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investment_id: uuid.UUID = Field(
        foreign_key="investments.id", unique=True, ondelete="RESTRICT"
    )
    transaction_id: uuid.UUID = Field(
        foreign_key="transactions.id", ondelete="RESTRICT"
    )
    path: str = Field(max_length=500)
    status: CertificateStatus = Field(default=CertificateStatus.REQUESTED)
    created_at: datetime = timestamp_field()
