"""Signed profit for a decided wager."""

from dataclasses import dataclass

from settlement.core.odds_math import round_units, win_profit


@dataclass(frozen=True)
class ProfitResult:
    profit_units: float   # 2 dp
    profit_amount: int    # cents


def calculate_profit(
    result: str,
    units_risked: float,
    amount_risked: int,
    odds_decimal: float,
) -> ProfitResult:
    """
    win          → stake × (decimal − 1)
    push / void  → 0 (stake returned)
    loss         → −stake

    Raises ValueError for any other result; a pending wager has no profit.
    """
    if result == "win":
        units, amount = win_profit(units_risked, amount_risked, odds_decimal)
        return ProfitResult(profit_units=units, profit_amount=amount)
    if result in ("push", "void"):
        return ProfitResult(profit_units=0.0, profit_amount=0)
    if result == "loss":
        return ProfitResult(
            profit_units=-round_units(units_risked),
            profit_amount=-int(amount_risked),
        )
    raise ValueError(f"Cannot calculate profit for result '{result}'")
