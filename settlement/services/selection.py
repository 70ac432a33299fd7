"""
Selection text parsing.

Pick authoring stores the wager as free text.  This module is the only
place that reads that text: it normalizes a selection into a typed
ParsedSelection at the boundary so the result determiner works on
structured data.

Grammar by bet type:
    moneyline   "<team>" or "<team> ML"                 e.g. "Lakers ML"
    spread      "<team> <signed number>" or "<team> PK" e.g. "Lakers -5.5"
    total       "<Over|Under> <number>"                 e.g. "Over 225.5"

The spread line is the first standalone signed number, so a trailing
price ("Lakers -5.5 -110") is ignored, as is a parenthesized "(-110)".

Side detection matches the game's team name or abbreviation.  When the
game carries no team name the literal words "home" / "away" are matched
instead.  A selection naming both sides or neither is a parse error.
"""

import re
from dataclasses import dataclass
from typing import Optional

from settlement.exceptions import SelectionParseError

SUPPORTED_KINDS = ("moneyline", "spread", "total")

_TOTAL_RE = re.compile(r"(over|under)\s+(-?\d+(?:\.\d+)?)", re.IGNORECASE)
_PRICE_SUFFIX_RE = re.compile(r"\(\s*[+-]?\d+(?:\.\d+)?\s*\)\s*$")
# Standalone signed number; "76ers" does not count
_LINE_RE = re.compile(r"(?:(?<=\s)|^)([+-]?\d+(?:\.\d+)?)(?=\s|$)")
_PICKEM_RE = re.compile(r"(?:(?<=\s)|^)(pk|pick'?em)(?=\s|$)", re.IGNORECASE)
_ML_SUFFIX_RE = re.compile(r"\s+ml$", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedSelection:
    kind: str                        # moneyline | spread | total
    side: Optional[str] = None       # home | away   (moneyline, spread)
    line: Optional[float] = None     # handicap on the picked side, or the total
    direction: Optional[str] = None  # over | under  (total)


def parse_selection(bet_type: str, selection: str, game) -> ParsedSelection:
    """
    Parse 'Lakers -5.5' (spread)  → ParsedSelection('spread', 'home', -5.5)
    Parse 'Under 210'   (total)   → ParsedSelection('total', line=210.0, direction='under')
    Parse 'Celtics ML'  (moneyline) → ParsedSelection('moneyline', 'away')

    Raises SelectionParseError when the text does not fit the grammar for
    ``bet_type`` or the bet type has no grading rule.
    """
    if bet_type not in SUPPORTED_KINDS:
        raise SelectionParseError(f"Unsupported bet type '{bet_type}'")
    if not selection or not selection.strip():
        raise SelectionParseError("Empty selection")

    text = _PRICE_SUFFIX_RE.sub("", selection.strip()).strip()

    if bet_type == "total":
        match = _TOTAL_RE.search(text)
        if not match:
            raise SelectionParseError(f"Invalid total format: '{selection}'")
        return ParsedSelection(
            kind="total",
            line=float(match.group(2)),
            direction=match.group(1).lower(),
        )

    if bet_type == "spread":
        number = _LINE_RE.search(text)
        if number:
            line = float(number.group(1))
            team_text = text[: number.start()]
        else:
            pickem = _PICKEM_RE.search(text)
            if not pickem:
                raise SelectionParseError(f"Invalid spread format: '{selection}'")
            line = 0.0
            team_text = text[: pickem.start()]
        side = detect_side(text, team_text, game)
        if side is None:
            raise SelectionParseError(f"Could not determine team: '{selection}'")
        return ParsedSelection(kind="spread", side=side, line=line)

    team_text = _ML_SUFFIX_RE.sub("", text)
    side = detect_side(text, team_text, game)
    if side is None:
        raise SelectionParseError(f"Could not determine team: '{selection}'")
    return ParsedSelection(kind="moneyline", side=side)


def detect_side(text: str, team_text: str, game) -> Optional[str]:
    """Return 'home', 'away', or None when neither or both sides match."""
    lowered = text.lower()
    team_token = team_text.strip().lower()

    is_home = _names_side(
        lowered, team_token,
        getattr(game, "home_team", None), getattr(game, "home_abbr", None), "home",
    )
    is_away = _names_side(
        lowered, team_token,
        getattr(game, "away_team", None), getattr(game, "away_abbr", None), "away",
    )

    if is_home and not is_away:
        return "home"
    if is_away and not is_home:
        return "away"
    return None


def _names_side(lowered: str, team_token: str, name, abbr, fallback: str) -> bool:
    if name:
        name_l = name.lower()
        if name_l in lowered:
            return True
        # "Lakers -5.5" against "Los Angeles Lakers"
        if len(team_token) >= 3 and team_token in name_l:
            return True
    elif re.search(rf"\b{fallback}\b", lowered):
        return True
    if abbr and re.search(rf"\b{re.escape(abbr.lower())}\b", lowered):
        return True
    return False
