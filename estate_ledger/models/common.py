"""Column helpers shared by the table models."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime
from sqlmodel import Field

from estate_ledger.core.ledger import ZERO
from estate_ledger.db.types import LedgerDecimal


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ledger_field(default: Decimal = ZERO, **kwargs: Any) -> Any:
    """A non-null ``LedgerDecimal`` column."""
    return Field(default=default, sa_type=LedgerDecimal, nullable=False, **kwargs)


def timestamp_field(**kwargs: Any) -> Any:
    """A timezone-aware timestamp defaulting to now (UTC)."""
    return Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        **kwargs,
    )
