"""
Closing Line Value (CLV) calculation service.

CLV is the edge-validation metric for a posted pick.  Positive CLV means
the pick was posted at a better price than where the market ultimately
settled (the closing line), which is correlated with long-term
profitability independent of win/loss outcomes.

    clv_score = posted_decimal − closing_decimal     (rounded to 4 dp)

Only totals are scored today: the pick's over/under direction selects the
matching closing price.  Moneyline and spread picks need the picked side
matched against the closing market and are returned as None.  None always
means "not computable"; it is never a stand-in for zero edge.

Closing lines shape::

    {"moneyline": {"home": -150, "away": 130},
     "spread":    {"home": -110, "away": -110, "line": -3.5},
     "total":     {"over": -110, "under": -110, "line": 221.5}}
"""

import logging
import re
from typing import Dict, Optional

from settlement.core.odds_math import american_to_decimal, is_valid_american_odds

logger = logging.getLogger(__name__)

CLV_SUPPORTED_BET_TYPES = frozenset({"total"})

_DIRECTION_RE = re.compile(r"\b(over|under)\b", re.IGNORECASE)


def calculate_clv(
    bet_type: str,
    selection: str,
    odds_decimal: Optional[float],
    closing_lines: Optional[Dict],
) -> Optional[float]:
    """
    CLV score for one pick, or None when it cannot be computed.

    Args:
        bet_type:      Pick market.  Only "total" is scored.
        selection:     Pick selection text, e.g. "Over 225.5".
        odds_decimal:  Decimal odds the pick was posted at.
        closing_lines: Collaborator-supplied closing lines for the game.
    """
    if not closing_lines or not odds_decimal:
        return None
    if bet_type not in CLV_SUPPORTED_BET_TYPES:
        return None

    closing_total = closing_lines.get("total") or {}
    match = _DIRECTION_RE.search(selection or "")
    if not match:
        return None

    closing_price = closing_total.get(match.group(1).lower())
    if not is_valid_american_odds(closing_price):
        return None

    closing_decimal = american_to_decimal(closing_price)
    return round(float(odds_decimal) - closing_decimal, 4)


def clv_grade(clv_score: Optional[float]) -> str:
    """Human-readable CLV grade for display."""
    if clv_score is None:
        return "N/A"
    if clv_score >= 0.10:
        return "STRONG+"
    elif clv_score > 0:
        return "POSITIVE"
    elif clv_score == 0:
        return "NEUTRAL"
    elif clv_score > -0.10:
        return "NEGATIVE"
    return "STRONG-"
