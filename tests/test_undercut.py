"""Tests for the undercut pricing engine."""

from __future__ import annotations

import random
from decimal import Decimal

import pytest

from src.engine.breakeven import calculate_break_even
from src.engine.undercut import calculate_undercut_price, max_pos_for_rarity
from src.pipeline.market import OrderBookEntry
from tests.helpers import OWN_ACCOUNTS, build_order_book

SCENARIO_B_PRICES = ["10.0", "10.5", "10.8", "11.0", "15.0", "16.0", "16.2"]


def _reprice(book: list[OrderBookEntry], uid: str, new_price: Decimal) -> list[OrderBookEntry]:
    """The book as it looks after our listing moved to ``new_price``."""
    moved = [e.model_copy(update={"buy_price": new_price}) if e.uid == uid else e for e in book]
    return sorted(moved, key=lambda e: e.buy_price)


class TestMaxPosForRarity:
    @pytest.mark.parametrize("rarity,expected", [(1, 14), (2, 11), (3, 8), (4, 5)])
    def test_depth_per_rarity(self, rarity: int, expected: int) -> None:
        assert max_pos_for_rarity(rarity) == expected

    @pytest.mark.parametrize("rarity", [0, 5])
    def test_unknown_rarity_raises(self, rarity: int) -> None:
        with pytest.raises(ValueError, match="rarity"):
            max_pos_for_rarity(rarity)


class TestDecline:
    def test_scenario_a_inside_window(self, make_trade) -> None:
        """Rarity 1, own listing 6th of 20: well inside the 14-deep window."""
        prices = [f"{10 + i * 0.5:.3f}" for i in range(20)]
        book = build_order_book(prices, own_index=5)
        trade = make_trade(buy_usd="5")

        assert calculate_undercut_price(book, trade, 1, OWN_ACCOUNTS) is None

    def test_already_cheapest(self, make_trade) -> None:
        prices = ["20.0", "10.0", "10.5", "11.0", "12.0", "13.0", "14.0"]
        book = sorted(build_order_book(prices, own_index=1), key=lambda e: e.buy_price)
        trade = make_trade(buy_usd="5")

        assert calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS) is None

    def test_own_listing_missing_from_book(self, make_trade) -> None:
        book = build_order_book(SCENARIO_B_PRICES, own_index=6, own_uid="SOMEONE-ELSE")
        trade = make_trade(break_even="10.2")

        assert calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS) is None

    def test_no_improvement_over_current_price(self, make_trade) -> None:
        """Breakeven above every competitor: clamped price does not beat ours."""
        prices = ["9.0", "9.1", "9.2", "9.3", "9.4", "9.5", "10.0"]
        book = build_order_book(prices, own_index=6)
        trade = make_trade(break_even="10.2")

        assert calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS) is None

    def test_own_accounts_do_not_count_as_competition(self, make_trade) -> None:
        """Three sibling listings ahead of ours collapse the rank from 7 to 4."""
        prices = ["9.0", "9.1", "9.2", "9.3", "9.4", "9.5", "9.6", "12.0"]
        sellers = {0: "alice-vault", 2: "alice-vault", 4: "alice"}
        book = build_order_book(prices, own_index=7, sellers=sellers)
        trade = make_trade(buy_usd="5")

        assert calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS) is None
        assert calculate_undercut_price(book, trade, 4, frozenset()) is not None

    def test_rank_inside_window_stays(self, make_trade) -> None:
        """Rarity 4 listing ranked 4th: pos + 1 = 4 < 5."""
        prices = ["10.0", "10.1", "10.2", "12.0"]
        book = build_order_book(prices, own_index=3)
        trade = make_trade(break_even="5")

        assert calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS) is None


class TestReprice:
    def test_scenario_b_undercuts_price_gap(self, make_trade) -> None:
        """11.0 -> 15.0 is a >= 8% gap; undercut 15.0 instead of the floor."""
        book = build_order_book(SCENARIO_B_PRICES, own_index=6)
        trade = make_trade(buy_usd="9.88", break_even="10.2")

        decision = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)

        assert decision is not None
        assert decision.new_price == Decimal("14.999")
        assert decision.old_price == Decimal("16.2")
        assert decision.market_id == "mkt-C7-338-OWN"

    def test_rank_at_window_edge_is_repriced(self, make_trade) -> None:
        """Rarity 4 listing ranked exactly 5th: pos + 1 = max_pos, so it moves."""
        prices = ["10.0", "10.1", "10.2", "10.3", "12.0"]
        book = build_order_book(prices, own_index=4)
        trade = make_trade(break_even="5")

        decision = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)

        assert decision is not None
        assert decision.new_price == Decimal("9.999")

    def test_no_gap_undercuts_cheapest(self, make_trade) -> None:
        prices = ["10.0", "10.1", "10.2", "10.3", "10.4", "10.5", "13.0"]
        book = build_order_book(prices, own_index=6)
        trade = make_trade(break_even="5")

        decision = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)

        assert decision is not None
        assert decision.new_price == Decimal("9.999")

    def test_gap_beyond_window_is_ignored(self, make_trade) -> None:
        """Rarity 4 scans pairs up to index 4; the 10.4 -> 13.0 gap sits deeper."""
        prices = ["10.0", "10.1", "10.2", "10.3", "10.4", "13.0", "13.1", "14.0"]
        book = build_order_book(prices, own_index=7)
        trade = make_trade(break_even="5")

        decision = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)

        assert decision is not None
        assert decision.new_price == Decimal("9.999")

    def test_clamped_to_cached_break_even(self, make_trade) -> None:
        prices = ["5.0", "5.1", "5.2", "5.3", "5.4", "5.5", "8.0"]
        book = build_order_book(prices, own_index=6)
        trade = make_trade(break_even="6.0")

        decision = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)

        assert decision is not None
        assert decision.new_price == Decimal("6.000")

    def test_clamped_to_fallback_break_even(self, make_trade) -> None:
        """No cached breakeven: buy_usd × 97 / 94, rounded up to 3dp."""
        prices = ["9.0", "9.1", "9.2", "9.3", "9.4", "9.5", "12.0"]
        book = build_order_book(prices, own_index=6)
        trade = make_trade(buy_usd="10")

        decision = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)

        assert decision is not None
        assert decision.new_price == Decimal("10.320")
        assert decision.new_price >= calculate_break_even(Decimal("10"))


class TestRepeatedRuns:
    def test_gap_inside_window_rerun_declines(self, make_trade) -> None:
        """10.0 -> 11.0 is a 9% gap at rank 1; the moved listing sits at rank 1."""
        prices = ["10.0", "11.0", "11.1", "11.2", "11.3", "13.0"]
        book = build_order_book(prices, own_index=5)
        trade = make_trade(break_even="5")

        first = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)
        assert first is not None
        assert first.new_price == Decimal("10.999")

        after = _reprice(book, trade.uid, first.new_price)
        assert calculate_undercut_price(after, trade, 4, OWN_ACCOUNTS) is None

    def test_scenario_b_settles_on_second_pass(self, make_trade) -> None:
        """14.999 lands at rank max_pos - 1, so the next pass undercuts the floor once more."""
        book = build_order_book(SCENARIO_B_PRICES, own_index=6)
        trade = make_trade(buy_usd="9.88", break_even="10.2")

        first = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)
        assert first is not None
        book = _reprice(book, trade.uid, first.new_price)

        second = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)
        assert second is not None
        assert second.old_price == Decimal("14.999")
        assert second.new_price == Decimal("10.200")
        book = _reprice(book, trade.uid, second.new_price)

        assert calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS) is None

    def test_break_even_clamp_rerun_declines(self, make_trade) -> None:
        prices = ["9.0", "9.1", "9.2", "9.3", "9.4", "9.5", "12.0"]
        book = build_order_book(prices, own_index=6)
        trade = make_trade(buy_usd="10")

        first = calculate_undercut_price(book, trade, 4, OWN_ACCOUNTS)
        assert first is not None

        after = _reprice(book, trade.uid, first.new_price)
        assert calculate_undercut_price(after, trade, 4, OWN_ACCOUNTS) is None


@pytest.mark.parametrize("seed", range(40))
def test_random_books_respect_break_even_and_settle(make_trade, seed: int) -> None:
    """Never price below breakeven; prices only fall and settle within two revisions."""
    rng = random.Random(seed)
    size = rng.randint(2, 25)
    prices = sorted(Decimal(rng.randint(1000, 30000)) / 1000 for _ in range(size))
    own_index = rng.randrange(size)
    sellers = {i: "alice-vault" for i in range(size) if rng.random() < 0.2}
    book = build_order_book([str(p) for p in prices], own_index=own_index, sellers=sellers)

    buy_usd = Decimal(rng.randint(500, 20000)) / 1000
    trade = make_trade(buy_usd=buy_usd)
    rarity = rng.randint(1, 4)
    break_even = calculate_break_even(buy_usd)

    for _ in range(2):
        decision = calculate_undercut_price(book, trade, rarity, OWN_ACCOUNTS)
        if decision is None:
            return
        assert decision.new_price >= break_even
        assert decision.new_price < decision.old_price
        book = _reprice(book, trade.uid, decision.new_price)

    assert calculate_undercut_price(book, trade, rarity, OWN_ACCOUNTS) is None
