"""
Parlay resolution from individually graded legs.

Legs may be ParlayLeg rows or plain dicts carrying ``odds_american``,
``odds_decimal``, ``result`` and ``selection``.

Partial pushes: a parlay with at least one pushed leg and no void/losing
leg settles as a full push.  It is not re-priced over the remaining live
legs.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from settlement.core.odds_math import (
    american_to_decimal,
    decimal_to_american,
    is_valid_american_odds,
)
from settlement.exceptions import InvalidLegError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParlayOdds:
    odds_decimal: float
    odds_american: int


def _field(leg, name):
    if isinstance(leg, dict):
        return leg.get(name)
    return getattr(leg, name, None)


def leg_decimal_odds(leg) -> float:
    """Decimal odds for a leg, derived from American odds when absent."""
    decimal = _field(leg, "odds_decimal")
    if decimal is None:
        american = _field(leg, "odds_american")
        if not is_valid_american_odds(american):
            raise InvalidLegError(
                f"Invalid odds for leg: {_field(leg, 'selection') or 'unknown'} "
                f"(american={american!r})"
            )
        decimal = american_to_decimal(american)
    if decimal <= 1.0:
        raise InvalidLegError(
            f"Invalid odds for leg: {_field(leg, 'selection') or 'unknown'} "
            f"(decimal={decimal!r})"
        )
    return float(decimal)


def calculate_parlay_odds(legs: Sequence) -> ParlayOdds:
    """
    Combined odds of a parlay: the product of every leg's decimal odds.

    A single-leg parlay returns that leg's own odds.  Any leg with missing
    or non-positive odds fails the whole parlay with InvalidLegError.
    """
    if not legs:
        raise InvalidLegError("Parlay must have at least one leg")

    if len(legs) == 1:
        leg = legs[0]
        decimal = leg_decimal_odds(leg)
        american = _field(leg, "odds_american") or decimal_to_american(decimal)
        return ParlayOdds(odds_decimal=decimal, odds_american=int(american))

    parlay_decimal = 1.0
    for leg in legs:
        parlay_decimal *= leg_decimal_odds(leg)

    return ParlayOdds(
        odds_decimal=round(parlay_decimal, 4),
        odds_american=decimal_to_american(parlay_decimal),
    )


def calculate_parlay_result(legs: Iterable) -> str:
    """
    Aggregate leg results into one parlay result.

    Priority: any void → void; any loss → loss; any push → push;
    any pending → pending; all wins → win.  Anything else → loss.
    """
    results: List[str] = [
        leg if isinstance(leg, str) else _field(leg, "result") for leg in legs
    ]
    if not results:
        return "void"

    if "void" in results:
        return "void"
    if "loss" in results:
        return "loss"
    if "push" in results:
        # Partial pushes collapse to a full push
        return "push"
    if "pending" in results:
        return "pending"
    if all(r == "win" for r in results):
        return "win"

    logger.warning("Unrecognized parlay leg results %s; settling as loss", results)
    return "loss"
