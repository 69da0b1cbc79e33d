"""
Backing storage for human-readable reference codes.

PostgreSQL uses one native sequence per code family. SQLite has no
sequences, so a single ``reference_counters`` table holds the last value per
family and is advanced with an atomic ``UPDATE … RETURNING``.
"""

from typing import Dict

from sqlalchemy import Sequence
from sqlmodel import Field, SQLModel


class ReferenceCounter(SQLModel, table=True):
    __tablename__ = "reference_counters"  # type: ignore[assignment]

    name: str = Field(primary_key=True, max_length=64)
    value: int = Field(default=0, nullable=False)


# Code prefix -> sequence. Attached to the shared metadata so create_all()
# creates them (PostgreSQL only; other dialects skip sequences).
SEQUENCES: Dict[str, Sequence] = {
    prefix: Sequence(name, metadata=SQLModel.metadata)
    for prefix, name in (
        ("USR", "user_display_seq"),
        ("ORG", "organization_display_seq"),
        ("PROP", "property_display_seq"),
        ("INV", "investment_display_seq"),
        ("TXN", "transaction_display_seq"),
        ("RWD", "reward_display_seq"),
    )
}
