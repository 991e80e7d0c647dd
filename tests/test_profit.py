"""Tests for the profit calculator and listing price function."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

import pytest

from src.engine.breakeven import calculate_break_even, calculate_break_even_pct
from src.engine.profit import apply_sell_price, calculate_profit, calculate_sell_price

_THREE_DP = Decimal("0.001")


def _q(value: Decimal) -> Decimal:
    return value.quantize(_THREE_DP, rounding=ROUND_HALF_UP)


class TestCalculateProfit:
    def test_profit_is_net_of_fees(self) -> None:
        result = calculate_profit(Decimal("100"), Decimal("150"))
        assert result["profit_usd"] == _q(Decimal("150") * 94 / 97 - Decimal("100"))

    def test_break_even_sale_has_zero_profit(self) -> None:
        buy = Decimal("100")
        result = calculate_profit(buy, calculate_break_even(buy))
        assert result["profit_usd"] == Decimal("0.000")
        assert result["profit_margin"] == Decimal("0.00")

    def test_loss(self) -> None:
        result = calculate_profit(Decimal("100"), Decimal("90"))
        assert result["profit_usd"] < 0
        assert result["profit_margin"] < 0

    def test_zero_buy_price_has_zero_margin(self) -> None:
        result = calculate_profit(Decimal("0"), Decimal("10"))
        assert result["profit_margin"] == Decimal("0")

    @pytest.mark.parametrize("buy,sell", [("100", "150"), ("12.5", "13.9"), ("3.333", "2.1"), ("250", "1000")])
    def test_margin_consistent_with_profit(self, buy: str, sell: str) -> None:
        result = calculate_profit(Decimal(buy), Decimal(sell))
        expected = result["profit_usd"] / Decimal(buy) * 100
        assert abs(result["profit_margin"] - expected) <= Decimal("0.005")

    def test_negative_sell_raises(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            calculate_profit(Decimal("10"), Decimal("-1"))


class TestApplySellPrice:
    def test_sets_price_and_profit_together(self, make_trade) -> None:
        trade = make_trade(buy_usd="100", break_even="103.19")

        updated = apply_sell_price(trade, Decimal("120"))

        expected = calculate_profit(Decimal("100"), Decimal("120"))
        assert updated.sell.usd == Decimal("120")
        assert updated.profit_usd == expected["profit_usd"]
        assert updated.profit_margin == expected["profit_margin"]
        assert updated.sell.break_even == Decimal("103.19")

    def test_original_trade_untouched(self, make_trade) -> None:
        trade = make_trade(buy_usd="100")
        apply_sell_price(trade, Decimal("120"))
        assert trade.sell is None
        assert trade.profit_usd == Decimal("0")


class TestCalculateSellPrice:
    def test_undercuts_market_low(self) -> None:
        """Scenario D: low 110, buy 100, break_even_pct 4."""
        assert calculate_sell_price(Decimal("110"), Decimal("100"), 4) == Decimal("109.999")

    def test_floors_at_pct_markup(self) -> None:
        """Market barely above breakeven: 100 / 0.96 = 104.1667 → 104.167."""
        assert calculate_sell_price(Decimal("103.5"), Decimal("100"), 4) == Decimal("104.167")

    def test_never_below_break_even(self) -> None:
        for buy in (Decimal("0.37"), Decimal("7.77"), Decimal("100"), Decimal("912.5")):
            be = calculate_break_even(buy)
            pct = calculate_break_even_pct(buy, be)
            price = calculate_sell_price(be + Decimal("0.0001"), buy, pct)
            assert price >= be

    @pytest.mark.parametrize("pct", [-1, 100])
    def test_out_of_range_pct_raises(self, pct: int) -> None:
        with pytest.raises(ValueError, match="break_even_pct"):
            calculate_sell_price(Decimal("10"), Decimal("5"), pct)
