"""
Transactional outbox tables.

``OutboxEvent`` rows are written in the same transaction as the state change
they describe, so an event exists if and only if its change committed. The
dispatcher delivers them afterwards and records one ``ListenerReceipt`` per
listener that applied the event, which is how redelivery stays harmless.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime, Index, UniqueConstraint
from sqlmodel import Field, SQLModel

from estate_ledger.models.common import timestamp_field, utcnow


class OutboxStatus(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DISPATCHED = "dispatched"
    FAILED = "failed"


class OutboxEvent(SQLModel, table=True):
    """
    One staged domain event.

    ``available_at`` doubles as the retry schedule for ``pending`` rows and as
    the lease expiry for ``in_flight`` rows; a row whose lease expired (its
    dispatcher died mid-delivery) is claimed again.
    """

    __tablename__ = "outbox_events"  # type: ignore[assignment]

    __table_args__ = (
        Index("ix_outbox_events_status_available", "status", "available_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: uuid.UUID = Field(unique=True, index=True)
    event_type: str = Field(max_length=64, index=True)
    payload: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    status: OutboxStatus = Field(default=OutboxStatus.PENDING)
    attempts: int = Field(default=0, nullable=False)
    available_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )
    last_error: Optional[str] = Field(default=None, max_length=2000)
    created_at: datetime = timestamp_field()
    dispatched_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return (
            f"<OutboxEvent {self.event_type} id={self.event_id} "
            f"status={self.status.value} attempts={self.attempts}>"
        )


class ListenerReceipt(SQLModel, table=True):
    __tablename__ = "listener_receipts"  # type: ignore[assignment]

    __table_args__ = (
        UniqueConstraint("event_id", "listener", name="uq_listener_receipts_event"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: uuid.UUID = Field(index=True)
    listener: str = Field(max_length=100)
    processed_at: datetime = timestamp_field()
