"""Fundamental odds mathematics, the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services or models.

The two pillars exposed are:

1. **Odds conversion**: American ↔ decimal, plus range validation.
2. **Profit arithmetic**: win profit in units and smallest-denomination
   currency given decimal odds.

Design decisions
----------------
* Currency is always carried as an integer number of cents.  Rounding goes
  through :mod:`decimal` with ``ROUND_HALF_UP`` so that a half cent always
  rounds away from zero, independent of float representation and of
  Python's bankers' rounding in :func:`round`.
* Units are reported to 2 decimal places using the same rounding rule.
* ``+100`` and ``-100`` are the same price (even money).  Converting back
  from decimal 2.0 always yields ``+100``.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Final, Tuple

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Widest American price accepted from pick authoring.
MAX_AMERICAN_ODDS: Final[int] = 10000

#: Decimal places for unit profit.
UNITS_PLACES: Final[Decimal] = Decimal("0.01")

_CENT: Final[Decimal] = Decimal("1")


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Decimal odds represent the total payout per unit staked, **including**
    the return of the stake itself.  Examples::

        american_to_decimal(-110) → 1.9091   (risk 110 to win 100)
        american_to_decimal(+150) → 2.5000   (risk 100 to win 150)

    Raises:
        ValueError: If ``american`` is 0, which has no decimal equivalent.
    """
    if american == 0:
        raise ValueError("Invalid American odds 0: no decimal equivalent.")
    if american > 0:
        return american / 100.0 + 1.0
    # Negative: risk |american| to win 100
    return 100.0 / abs(american) + 1.0


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Inverse of :func:`american_to_decimal`.  Even money and longer
    (``decimal_odds >= 2``) come back positive; shorter prices negative.

    Raises:
        ValueError: If ``decimal_odds <= 1``; such a price pays nothing.
    """
    if decimal_odds <= 1.0:
        raise ValueError(
            f"Invalid decimal odds {decimal_odds!r}: must be greater than 1.0."
        )
    if decimal_odds >= 2.0:
        return int(round((decimal_odds - 1.0) * 100.0))
    return int(round(-100.0 / (decimal_odds - 1.0)))


def is_valid_american_odds(american) -> bool:
    """True iff ``american`` is a nonzero number within ±10000."""
    if american is None or isinstance(american, bool):
        return False
    try:
        value = float(american)
    except (TypeError, ValueError):
        return False
    return value != 0 and -MAX_AMERICAN_ODDS <= value <= MAX_AMERICAN_ODDS


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------


def round_units(value: float) -> float:
    """Round a unit quantity to 2 dp, halves away from zero."""
    return float(Decimal(repr(value)).quantize(UNITS_PLACES, rounding=ROUND_HALF_UP))


def round_cents(value: float) -> int:
    """Round a currency quantity to the whole cent, halves away from zero."""
    return int(Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Profit arithmetic
# ---------------------------------------------------------------------------


def win_profit(
    units_risked: float,
    amount_risked: int,
    decimal_odds: float,
) -> Tuple[float, int]:
    """Net profit of a winning stake at ``decimal_odds``.

    Args:
        units_risked:  Stake in units.
        amount_risked: Stake in cents.
        decimal_odds:  Decimal odds of the wager (> 1.0).

    Returns:
        ``(profit_units, profit_amount)``: units to 2 dp, amount in cents.

    Examples::

        win_profit(1.0, 1000, 1.9091) → (0.91, 909)
        win_profit(2.0, 5000, 3.82)   → (5.64, 14100)
    """
    if decimal_odds <= 1.0:
        raise ValueError(
            f"Invalid decimal odds {decimal_odds!r}: must be greater than 1.0."
        )
    net = Decimal(repr(decimal_odds)) - 1
    units = Decimal(repr(float(units_risked))) * net
    amount = Decimal(int(amount_risked)) * net
    return (
        float(units.quantize(UNITS_PLACES, rounding=ROUND_HALF_UP)),
        int(amount.quantize(_CENT, rounding=ROUND_HALF_UP)),
    )
