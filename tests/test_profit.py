"""Tests for profit.py"""

import pytest

from settlement.services.profit import calculate_profit


def test_win_minus_110():
    profit = calculate_profit("win", 1.0, 1000, 1.9091)
    assert profit.profit_units == 0.91
    assert profit.profit_amount == 909


def test_parlay_win_units():
    profit = calculate_profit("win", 1.5, 1500, 3.82)
    assert profit.profit_units == pytest.approx(1.5 * 2.82, abs=0.005)
    assert profit.profit_amount == 4230


@pytest.mark.parametrize("result", ["push", "void"])
def test_stake_returned(result):
    profit = calculate_profit(result, 2.0, 2000, 1.9091)
    assert profit.profit_units == 0.0
    assert profit.profit_amount == 0


def test_loss_is_negative_stake():
    profit = calculate_profit("loss", 2.5, 2500, None)
    assert profit.profit_units == -2.5
    assert profit.profit_amount == -2500


def test_pending_has_no_profit():
    with pytest.raises(ValueError):
        calculate_profit("pending", 1.0, 1000, 1.9091)
