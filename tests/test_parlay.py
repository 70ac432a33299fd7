"""
Tests for parlay.py

Run with: pytest tests/test_parlay.py -v
"""

import pytest

from settlement.exceptions import InvalidLegError
from settlement.services.parlay import (
    calculate_parlay_odds,
    calculate_parlay_result,
    leg_decimal_odds,
)


class TestCalculateParlayOdds:
    """Combined odds from legs."""

    def test_two_leg_product(self):
        odds = calculate_parlay_odds([
            {"selection": "Lakers -5.5", "odds_decimal": 1.91},
            {"selection": "Over 225.5", "odds_decimal": 2.00},
        ])
        assert odds.odds_decimal == pytest.approx(3.82)
        assert odds.odds_american == 282

    def test_decimal_derived_from_american(self):
        odds = calculate_parlay_odds([
            {"selection": "A", "odds_american": -110},
            {"selection": "B", "odds_american": -110},
        ])
        # (1.9091)^2 = 3.6446
        assert odds.odds_decimal == pytest.approx(3.6446, abs=1e-4)
        assert odds.odds_american == 264

    def test_single_leg_returns_own_odds(self):
        odds = calculate_parlay_odds([{"selection": "A", "odds_american": 150}])
        assert odds.odds_decimal == pytest.approx(2.5)
        assert odds.odds_american == 150

    def test_empty_parlay_rejected(self):
        with pytest.raises(InvalidLegError):
            calculate_parlay_odds([])

    @pytest.mark.parametrize("bad_leg", [
        {"selection": "A", "odds_decimal": -1.5},
        {"selection": "A", "odds_decimal": 0.0},
        {"selection": "A", "odds_american": 0},
        {"selection": "A"},
    ])
    def test_invalid_leg_fails_whole_parlay(self, bad_leg):
        legs = [{"selection": "Good", "odds_decimal": 1.91}, bad_leg]
        with pytest.raises(InvalidLegError):
            calculate_parlay_odds(legs)

    def test_attribute_legs(self):
        class Leg:
            selection = "Lakers -5.5"
            odds_american = -120
            odds_decimal = None

        assert leg_decimal_odds(Leg()) == pytest.approx(1.8333, abs=1e-4)


class TestCalculateParlayResult:
    """Aggregate result policy."""

    @pytest.mark.parametrize("results, expected", [
        (["win", "win"], "win"),
        (["win", "loss", "pending"], "loss"),
        (["void", "loss", "win"], "void"),
        (["win", "push"], "push"),
        (["push", "push"], "push"),
        (["push", "pending"], "push"),
        (["win", "pending"], "pending"),
        (["win", "mystery"], "loss"),
        ([], "void"),
    ])
    def test_policy(self, results, expected):
        assert calculate_parlay_result(results) == expected

    def test_reads_result_from_legs(self):
        legs = [{"result": "win"}, {"result": "win"}, {"result": "win"}]
        assert calculate_parlay_result(legs) == "win"
