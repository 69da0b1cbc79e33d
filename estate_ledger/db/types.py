"""
Column type for ledger quantities.

PostgreSQL stores them as ``NUMERIC(18, 6)``. SQLite has no exact decimal
storage (its NUMERIC affinity coerces to REAL), so there the value is kept as
its canonical decimal string instead. Either way the Python side always sees a
:class:`~decimal.Decimal` quantized to the ledger scale.
"""

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

from estate_ledger.core.ledger import LEDGER_PRECISION, LEDGER_SCALE, to_ledger


class LedgerDecimal(TypeDecorator):
    """Exact fixed-scale decimal column (precision 18, scale 6)."""

    impl = Numeric(LEDGER_PRECISION, LEDGER_SCALE, asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(40))
        return dialect.type_descriptor(Numeric(LEDGER_PRECISION, LEDGER_SCALE, asdecimal=True))

    def process_bind_param(self, value: Any, dialect) -> Optional[Any]:
        if value is None:
            return None
        amount = to_ledger(value)
        if dialect.name == "sqlite":
            return str(amount)
        return amount

    def process_result_value(self, value: Any, dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return to_ledger(value if isinstance(value, Decimal) else str(value))

    @property
    def python_type(self) -> type:
        return Decimal
