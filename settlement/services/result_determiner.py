"""
Single-wager outcome determination.

Pure functions: no DB, no network.  Every failure to classify a wager
becomes a ``void`` decision with a readable reason; nothing here raises
for bad input, so one malformed pick never stops a grading batch.

Cover condition (spread, from the picked side's perspective):
    margin + handicap > 0  →  win
    margin + handicap = 0  →  push
    margin + handicap < 0  →  loss
"""

import logging
from dataclasses import dataclass

from settlement.exceptions import SelectionParseError
from settlement.services.selection import ParsedSelection, parse_selection

logger = logging.getLogger(__name__)

# Scores are integers, lines are half-points at finest
_PUSH_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ResultDecision:
    result: str   # win | loss | push | void
    reason: str


def determine_pick_result(bet_type: str, selection: str, game) -> ResultDecision:
    """
    Decide win/loss/push/void for one non-parlay wager against a final score.

    ``game`` needs ``home_score`` / ``away_score`` and the team identifiers
    used for side detection (``home_team``, ``away_team``, ``home_abbr``,
    ``away_abbr``).
    """
    home = getattr(game, "home_score", None)
    away = getattr(game, "away_score", None)
    if not isinstance(home, (int, float)) or not isinstance(away, (int, float)):
        return ResultDecision("void", "Final score unavailable")

    # A tie pushes every moneyline, whichever side was named
    if bet_type == "moneyline" and home == away:
        return ResultDecision("push", "Tie game")

    try:
        parsed = parse_selection(bet_type, selection, game)
    except SelectionParseError as exc:
        logger.info("Voiding selection %r (%s): %s", selection, bet_type, exc)
        return ResultDecision("void", str(exc))

    return _grade_parsed(parsed, home, away)


def _grade_parsed(parsed: ParsedSelection, home: float, away: float) -> ResultDecision:
    if parsed.kind == "moneyline":
        return _grade_moneyline(parsed, home, away)
    if parsed.kind == "spread":
        return _grade_spread(parsed, home, away)
    if parsed.kind == "total":
        return _grade_total(parsed, home, away)
    return ResultDecision("void", f"Unknown bet type '{parsed.kind}'")


def _grade_moneyline(parsed: ParsedSelection, home: float, away: float) -> ResultDecision:
    # Ties never get here; determine_pick_result pushes them before parsing
    home_won = home > away
    picked_home = parsed.side == "home"
    if picked_home == home_won:
        return ResultDecision("win", "Moneyline winner")
    return ResultDecision("loss", "Moneyline loser")


def _grade_spread(parsed: ParsedSelection, home: float, away: float) -> ResultDecision:
    margin = home - away if parsed.side == "home" else away - home
    needed = -parsed.line
    cover = margin + parsed.line

    if abs(cover) < _PUSH_TOLERANCE:
        return ResultDecision("push", f"Exact push (margin {margin:g}, line {parsed.line:+g})")
    if cover > 0:
        return ResultDecision("win", f"Margin {margin:g} beat {needed:g}")
    return ResultDecision("loss", f"Margin {margin:g} short of {needed:g}")


def _grade_total(parsed: ParsedSelection, home: float, away: float) -> ResultDecision:
    combined = home + away
    diff = combined - parsed.line

    if abs(diff) < _PUSH_TOLERANCE:
        return ResultDecision("push", f"Exact push ({combined:g})")

    went_over = diff > 0
    comparison = ">" if went_over else "<"
    reason = f"Total {combined:g} {comparison} {parsed.line:g}"
    if went_over == (parsed.direction == "over"):
        return ResultDecision("win", reason)
    return ResultDecision("loss", reason)
