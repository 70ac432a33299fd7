"""Tests for clv.py"""

import pytest

from settlement.services.clv import calculate_clv, clv_grade

CLOSING = {
    "moneyline": {"home": -150, "away": 130},
    "spread": {"home": -110, "away": -110, "line": -3.5},
    "total": {"over": -120, "under": 100, "line": 221.5},
}


def test_over_beats_close():
    # posted -110 (1.9091) vs close -120 (1.8333)
    assert calculate_clv("total", "Over 220.5", 1.9091, CLOSING) == pytest.approx(0.0758, abs=1e-4)


def test_under_worse_than_close():
    # posted -110 vs close +100 (2.0)
    assert calculate_clv("total", "Under 220.5", 1.9091, CLOSING) == pytest.approx(-0.0909, abs=1e-4)


def test_rounded_to_four_places():
    score = calculate_clv("total", "Over 220.5", 1.95, CLOSING)
    assert score == round(score, 4)


@pytest.mark.parametrize("bet_type, selection", [
    ("moneyline", "Lakers ML"),
    ("spread", "Lakers -3.5"),
    ("prop", "Over 25.5"),
])
def test_unsupported_markets_are_none(bet_type, selection):
    assert calculate_clv(bet_type, selection, 1.9091, CLOSING) is None


@pytest.mark.parametrize("closing", [None, {}, {"total": {}}, {"total": {"over": 0}}])
def test_missing_market_data_is_none(closing):
    assert calculate_clv("total", "Over 220.5", 1.9091, closing) is None


def test_no_direction_is_none():
    assert calculate_clv("total", "garbage text", 1.9091, CLOSING) is None


@pytest.mark.parametrize("score, grade", [
    (None, "N/A"),
    (0.15, "STRONG+"),
    (0.02, "POSITIVE"),
    (0.0, "NEUTRAL"),
    (-0.05, "NEGATIVE"),
    (-0.2, "STRONG-"),
])
def test_clv_grade(score, grade):
    assert clv_grade(score) == grade
