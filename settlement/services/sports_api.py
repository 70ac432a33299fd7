"""
Game-data collaborator client.

Reads finished games and closing lines from The Odds API
(https://the-odds-api.com/).  The grading job only calls:

    get_finished_games(start, end) -> [game_id]
    get_closing_lines(game_id)     -> closing lines dict | None

Both may raise; the grading job treats every failure here as non-fatal.
Game ids are The Odds API event ids, which ingestion stores as the
canonical Game.game_id.
"""

import logging
import math
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests

from settlement.exceptions import MissingMarketDataError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.the-odds-api.com/v4"

# The scores endpoint only looks back this far
MAX_DAYS_FROM = 3


def _parse_commence_time(raw: Optional[str]) -> Optional[datetime]:
    """'2025-01-05T00:10:00Z' → naive UTC datetime."""
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class SportsAPIClient:
    """Client for the finished-game and closing-line feeds"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        sport: Optional[str] = None,
        provider: Optional[str] = None,
        timeout: int = 15,
    ):
        self.api_key = api_key or os.getenv("SPORTS_API_KEY")
        self.base_url = (base_url or os.getenv("SPORTS_API_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.sport = sport or os.getenv("SPORTS_API_SPORT", "basketball_nba")
        self.provider = provider or os.getenv("SPORTS_API_PROVIDER", "theoddsapi")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.provider != "none"

    def _get(self, path: str, params: Dict) -> requests.Response:
        url = f"{self.base_url}{path}"
        resp = requests.get(url, params={"apiKey": self.api_key, **params}, timeout=self.timeout)
        resp.raise_for_status()

        remaining = resp.headers.get("x-requests-remaining")
        if remaining is not None:
            logger.debug("Sports API quota remaining: %s", remaining)
        return resp

    def get_finished_games(self, start: datetime, end: datetime) -> List[str]:
        """
        Ids of games the feed reports completed with a start time in [start, end].

        Returns [] when the feed is not configured.
        """
        if not self.is_configured:
            logger.debug("Sports API not configured; no finished games reported")
            return []

        lookback_days = (datetime.utcnow() - start).total_seconds() / 86400.0
        days_from = max(1, min(MAX_DAYS_FROM, math.ceil(lookback_days)))

        data = self._get(f"/sports/{self.sport}/scores", {"daysFrom": days_from}).json()

        finished: List[str] = []
        for entry in data:
            if not entry.get("completed") or not entry.get("id"):
                continue
            commence = _parse_commence_time(entry.get("commence_time"))
            if commence is not None and not (start <= commence <= end):
                continue
            finished.append(entry["id"])

        logger.info(
            "Scores feed: %d games, %d finished in window (daysFrom=%d)",
            len(data), len(finished), days_from,
        )
        return finished

    def get_closing_lines(self, game_id: str) -> Optional[Dict]:
        """
        Closing moneyline/spread/total prices for one game, or None when
        the feed has no bookmaker lines for it.

        Raises MissingMarketDataError when the feed is not configured.
        """
        if not self.is_configured:
            raise MissingMarketDataError("Sports API not configured")

        event = self._get(
            f"/sports/{self.sport}/events/{game_id}/odds",
            {"regions": "us", "markets": "h2h,spreads,totals", "oddsFormat": "american"},
        ).json()
        return parse_closing_lines(event)


def parse_closing_lines(event: Dict) -> Optional[Dict]:
    """
    Collapse an odds-feed event into the closing lines shape.

    The first bookmaker quoting each market wins.  Returns None when no
    market is quoted at all.
    """
    home_team = event.get("home_team")
    lines: Dict[str, Dict] = {}

    for bookmaker in event.get("bookmakers") or []:
        for market in bookmaker.get("markets") or []:
            key = market.get("key")
            outcomes = market.get("outcomes") or []

            if key == "h2h" and "moneyline" not in lines:
                ml = {}
                for outcome in outcomes:
                    ml["home" if outcome.get("name") == home_team else "away"] = outcome.get("price")
                lines["moneyline"] = ml

            elif key == "spreads" and "spread" not in lines:
                spread = {}
                for outcome in outcomes:
                    if outcome.get("name") == home_team:
                        spread["home"] = outcome.get("price")
                        spread["line"] = outcome.get("point")
                    else:
                        spread["away"] = outcome.get("price")
                lines["spread"] = spread

            elif key == "totals" and "total" not in lines:
                total = {}
                for outcome in outcomes:
                    side = (outcome.get("name") or "").lower()
                    if side in ("over", "under"):
                        total[side] = outcome.get("price")
                        total["line"] = outcome.get("point")
                lines["total"] = total

    if not lines:
        return None
    lines["updated_at"] = datetime.utcnow().isoformat()
    return lines


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_sports_api: Optional[SportsAPIClient] = None


def get_sports_api() -> SportsAPIClient:
    global _sports_api
    if _sports_api is None:
        _sports_api = SportsAPIClient()
    return _sports_api
