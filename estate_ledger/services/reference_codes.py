"""
Human-readable reference codes (``INV-000042``, ``TXN-000107``, …).

Codes are drawn from a per-family counter inside the caller's transaction:

* PostgreSQL: ``nextval`` on the family's native sequence. Sequence values
  are never reused, even when the surrounding transaction rolls back, so codes
  can have gaps but never repeat.
* SQLite: ``UPDATE reference_counters SET value = value + 1 … RETURNING
  value``. The update runs under the ``BEGIN IMMEDIATE`` write lock, so two
  transactions cannot read the same value; a rolled-back transaction also
  rolls back its increment.
"""

import logging

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.models.reference_counter import SEQUENCES, ReferenceCounter

logger = logging.getLogger(__name__)

CODE_WIDTH = 6

INVESTOR = "USR"
ORGANIZATION = "ORG"
PROPERTY = "PROP"
INVESTMENT = "INV"
TRANSACTION = "TXN"
REWARD = "RWD"


def format_code(prefix: str, value: int) -> str:
    return f"{prefix}-{value:0{CODE_WIDTH}d}"


async def next_reference_code(session: AsyncSession, prefix: str) -> str:
    """
    Allocate the next code for ``prefix`` in the session's transaction.

    Raises ``ValueError`` for an unknown prefix.
    """
    try:
        sequence = SEQUENCES[prefix]
    except KeyError:
        raise ValueError(f"Unknown reference code prefix '{prefix}'") from None

    if session.get_bind().dialect.supports_sequences:
        result = await session.execute(select(sequence.next_value()))
        value = int(result.scalar_one())
    else:
        value = await _next_counter_value(session, sequence.name)
    return format_code(prefix, value)


async def _next_counter_value(session: AsyncSession, name: str) -> int:
    table = ReferenceCounter.__table__
    stmt = (
        update(table)
        .where(table.c.name == name)
        .values(value=table.c.value + 1)
        .returning(table.c.value)
    )
    result = await session.execute(stmt)
    value = result.scalar_one_or_none()
    if value is None:
        await session.execute(insert(table).values(name=name, value=1))
        logger.info("Initialised reference counter %s", name)
        value = 1
    return int(value)
