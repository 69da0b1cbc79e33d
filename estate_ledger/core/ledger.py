"""
Fixed-scale decimal arithmetic for balances, token quantities and prices.

Every stored quantity is a :class:`~decimal.Decimal` with exactly
``LEDGER_SCALE`` fractional digits. Binary floats never enter the ledger:
:func:`to_ledger` rejects them outright, so a value such as ``0.1`` has to be
spelled ``"0.1"`` or ``Decimal("0.1")`` by the caller.

Rounding rules
--------------
* Charges (``tokens × price``) and derived prices round **half-up** to the
  ledger scale.
* Pro-rata reward shares are computed with exact rational arithmetic and
  allocated by the largest-remainder method (see :func:`allocate_pro_rata`),
  so the shares of a fully held property add up to the distributed pool to
  the last unit.

Capacity
--------
Columns are ``NUMERIC(LEDGER_PRECISION, LEDGER_SCALE)``, so no stored value
may exceed ``LEDGER_MAX``. Inputs are bounded by :func:`require_positive` and
running totals (balances, liquidity) by :func:`ensure_capacity` before they
are written.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction
from typing import Any, Dict, Hashable, Mapping

from estate_ledger.core.exceptions import InvalidArgument

LEDGER_PRECISION = 18
LEDGER_SCALE = 6
QUANTUM = Decimal(1).scaleb(-LEDGER_SCALE)  # Decimal("0.000001")
ZERO = Decimal(0).quantize(QUANTUM)
LEDGER_MAX = Decimal(10).scaleb(LEDGER_PRECISION - LEDGER_SCALE - 1) - QUANTUM  # 999999999999.999999


def to_ledger(value: Any, rounding: str = ROUND_HALF_UP) -> Decimal:
    """
    Convert ``value`` to a ledger decimal quantized to ``LEDGER_SCALE`` places.

    Accepts ``Decimal``, ``int`` and numeric strings. Raises ``TypeError`` for
    ``float`` (and ``bool``) and ``ValueError`` for strings that do not parse
    or for NaN / infinity.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(
            f"Ledger values must be Decimal, int or str, not {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, str)):
        try:
            number = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"'{value}' is not a decimal number") from exc
    else:
        raise TypeError(
            f"Ledger values must be Decimal, int or str, not {type(value).__name__}"
        )
    if not number.is_finite():
        raise ValueError(f"Ledger values must be finite, got {value}")
    return number.quantize(QUANTUM, rounding=rounding)


def require_positive(value: Any, field: str) -> Decimal:
    """Return ``value`` as a ledger decimal; InvalidArgument unless 0 < value <= LEDGER_MAX."""
    try:
        amount = to_ledger(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"{field}: {exc}") from exc
    if amount <= 0:
        raise InvalidArgument(f"{field} must be greater than zero, got {amount}")
    ensure_capacity(amount, field)
    return amount


def ensure_capacity(total: Decimal, field: str) -> Decimal:
    """Raise InvalidArgument when ``total`` would not fit a ledger column."""
    if total > LEDGER_MAX:
        raise InvalidArgument(f"{field} would exceed the ledger maximum of {LEDGER_MAX}")
    return total


def settlement_amount(tokens: Decimal, price_per_token: Decimal) -> Decimal:
    """Amount charged for ``tokens`` at ``price_per_token``, half-up at ledger scale."""
    return to_ledger(tokens * price_per_token)


def price_per_token(total_value: Decimal, total_tokens: Decimal) -> Decimal:
    """Listing price derived from the property valuation; never zero."""
    if total_tokens <= 0:
        raise InvalidArgument("total_tokens must be greater than zero")
    price = to_ledger(Decimal(total_value) / Decimal(total_tokens))
    if price <= 0:
        raise InvalidArgument(
            f"total_value {total_value} over {total_tokens} tokens rounds to a zero price"
        )
    return price


def _units(value: Decimal) -> int:
    """Integer number of ``QUANTUM`` units in a ledger value."""
    return int(to_ledger(value).scaleb(LEDGER_SCALE))


def _from_units(units: int) -> Decimal:
    return Decimal(units).scaleb(-LEDGER_SCALE).quantize(QUANTUM)


def allocate_pro_rata(
    holdings: Mapping[Hashable, Decimal],
    total_tokens: Decimal,
    pool: Decimal,
) -> Dict[Hashable, Decimal]:
    """
    Split ``pool`` across ``holdings`` in proportion to tokens held.

    Parameters
    ----------
    holdings : Mapping
        Holder key (investor id) to tokens held.
    total_tokens : Decimal
        The property's full token supply. Holders together may own less than
        this; the share of unsold tokens is not distributed.
    pool : Decimal
        The total return being distributed.

    Returns
    -------
    dict
        Holder key to share, each at ledger scale.

    Each holder first receives ``floor(tokens / total_tokens × pool)`` in
    ``QUANTUM`` units. The aggregate entitlement
    ``floor(Σ tokens / total_tokens × pool)`` is then reached by handing one
    extra unit to each of the holders with the largest discarded fractions
    (ties: larger holding first, then key). For a fully held property the
    shares therefore sum to ``pool`` exactly.
    """
    if total_tokens <= 0:
        raise InvalidArgument("total_tokens must be greater than zero")
    pool_units = _units(pool)
    supply = Fraction(to_ledger(total_tokens))

    exact = {
        key: Fraction(to_ledger(tokens)) * pool_units / supply
        for key, tokens in holdings.items()
    }
    floors = {key: value.numerator // value.denominator for key, value in exact.items()}
    held = sum((Fraction(to_ledger(t)) for t in holdings.values()), Fraction(0))
    entitled = held * pool_units / supply
    residual = entitled.numerator // entitled.denominator - sum(floors.values())

    order = sorted(
        holdings,
        key=lambda k: (-(exact[k] - floors[k]), -to_ledger(holdings[k]), str(k)),
    )
    for key in order[: max(residual, 0)]:
        floors[key] += 1

    return {key: _from_units(units) for key, units in floors.items()}
