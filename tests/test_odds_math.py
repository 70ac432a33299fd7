"""Tests for core/odds_math.py"""

import pytest

from settlement.core.odds_math import (
    american_to_decimal,
    decimal_to_american,
    is_valid_american_odds,
    round_cents,
    round_units,
    win_profit,
)


class TestAmericanToDecimal:
    """Test odds conversion."""

    def test_positive_odds(self):
        assert american_to_decimal(100) == pytest.approx(2.0)
        assert american_to_decimal(150) == pytest.approx(2.5)
        assert american_to_decimal(200) == pytest.approx(3.0)

    def test_negative_odds(self):
        assert american_to_decimal(-110) == pytest.approx(1.9091, abs=1e-4)
        assert american_to_decimal(-150) == pytest.approx(1.6667, abs=1e-4)
        assert american_to_decimal(-200) == pytest.approx(1.5)

    def test_zero_rejected(self):
        with pytest.raises(ValueError):
            american_to_decimal(0)


class TestDecimalToAmerican:

    @pytest.mark.parametrize("decimal_odds, expected", [
        (2.0, 100),
        (2.5, 150),
        (3.82, 282),
        (1.5, -200),
        (1.9091, -110),
    ])
    def test_known_prices(self, decimal_odds, expected):
        assert decimal_to_american(decimal_odds) == expected

    def test_pays_nothing_rejected(self):
        with pytest.raises(ValueError):
            decimal_to_american(1.0)


def test_round_trip_within_one():
    valid = list(range(-10000, -100)) + list(range(100, 10001))
    for american in valid:
        back = decimal_to_american(american_to_decimal(american))
        assert abs(back - american) <= 1, american


def test_even_money_normalizes_to_plus_100():
    # -100 and +100 are the same price
    assert decimal_to_american(american_to_decimal(-100)) == 100


@pytest.mark.parametrize("value, expected", [
    (-110, True),
    (150, True),
    (10000, True),
    (-10000, True),
    (0, False),
    (10001, False),
    (-10001, False),
    (None, False),
    ("abc", False),
    (True, False),
])
def test_is_valid_american_odds(value, expected):
    assert is_valid_american_odds(value) is expected


def test_rounding_halves_away_from_zero():
    assert round_cents(2.5) == 3
    assert round_cents(-2.5) == -3
    assert round_units(0.125) == 0.13
    assert round_units(1.005) == 1.01


class TestWinProfit:

    def test_minus_110(self):
        units, amount = win_profit(1.0, 1000, 1.9091)
        assert units == 0.91
        assert amount == 909

    def test_parlay_price(self):
        units, amount = win_profit(2.0, 5000, 3.82)
        assert units == pytest.approx(5.64)
        assert amount == 14100

    def test_amount_is_integer_cents(self):
        _, amount = win_profit(1.5, 1500, 2.35)
        assert isinstance(amount, int)
        assert amount == 2025

    def test_invalid_odds(self):
        with pytest.raises(ValueError):
            win_profit(1.0, 1000, 1.0)
