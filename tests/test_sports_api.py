"""Tests for the game-data collaborator client."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from settlement.exceptions import MissingMarketDataError
from settlement.services.sports_api import SportsAPIClient, parse_closing_lines


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.headers = {"x-requests-remaining": "480"}
    resp.raise_for_status.return_value = None
    return resp


def test_unconfigured_client_reports_nothing(monkeypatch):
    monkeypatch.delenv("SPORTS_API_KEY", raising=False)
    client = SportsAPIClient()
    assert client.is_configured is False
    assert client.get_finished_games(datetime.utcnow() - timedelta(days=1), datetime.utcnow()) == []
    with pytest.raises(MissingMarketDataError):
        client.get_closing_lines("g1")


def test_finished_games_filters_window_and_completion():
    now = datetime.utcnow()
    start, end = now - timedelta(hours=12), now
    inside = (now - timedelta(hours=5)).strftime("%Y-%m-%dT%H:%M:%SZ")
    outside = (now - timedelta(hours=20)).strftime("%Y-%m-%dT%H:%M:%SZ")
    payload = [
        {"id": "a", "completed": True, "commence_time": inside},
        {"id": "b", "completed": False, "commence_time": inside},
        {"id": "c", "completed": True, "commence_time": outside},
    ]
    client = SportsAPIClient(api_key="k", sport="basketball_nba")

    with patch("settlement.services.sports_api.requests.get", return_value=_response(payload)) as get:
        assert client.get_finished_games(start, end) == ["a"]

    params = get.call_args.kwargs["params"]
    assert params["apiKey"] == "k"
    assert params["daysFrom"] == 1


def test_closing_lines_parsed_from_event():
    event = {
        "home_team": "Los Angeles Lakers",
        "away_team": "Boston Celtics",
        "bookmakers": [{
            "key": "draftkings",
            "markets": [
                {"key": "h2h", "outcomes": [
                    {"name": "Los Angeles Lakers", "price": -150},
                    {"name": "Boston Celtics", "price": 130},
                ]},
                {"key": "spreads", "outcomes": [
                    {"name": "Los Angeles Lakers", "price": -110, "point": -3.5},
                    {"name": "Boston Celtics", "price": -110, "point": 3.5},
                ]},
                {"key": "totals", "outcomes": [
                    {"name": "Over", "price": -115, "point": 221.5},
                    {"name": "Under", "price": -105, "point": 221.5},
                ]},
            ],
        }],
    }
    client = SportsAPIClient(api_key="k")
    with patch("settlement.services.sports_api.requests.get", return_value=_response(event)):
        lines = client.get_closing_lines("evt-1")

    assert lines["moneyline"] == {"home": -150, "away": 130}
    assert lines["spread"] == {"home": -110, "line": -3.5, "away": -110}
    assert lines["total"] == {"over": -115, "under": -105, "line": 221.5}


def test_no_bookmakers_means_no_lines():
    assert parse_closing_lines({"home_team": "X", "bookmakers": []}) is None
