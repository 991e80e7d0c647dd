"""
Deckhand — Listing Decision Engine

Decides whether an unlisted, unencumbered card should go on the market, and at
what price. Listing only happens when the current market low is strictly above
the trade's breakeven.
"""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple

import structlog

from src.engine.breakeven import calculate_break_even_pct, resolve_break_even
from src.engine.profit import apply_sell_price, calculate_sell_price
from src.pipeline.market import MarketData, find_market_data
from src.trades.state import MarketPriceSnapshot, Trade

logger = structlog.get_logger(__name__)


class ListingDecision(NamedTuple):
    """Trade ready to persist, and the price to list it at."""
    trade: Trade
    price: Decimal


def decide_listing(
    trade: Trade,
    market_data: list[MarketData],
    gold: bool,
) -> ListingDecision | None:
    """
    Price a fresh listing from the market snapshot.

    Args:
        trade: The unlisted trade.
        market_data: Current grouped low prices.
        gold: Variant flag observed on the card.

    Returns:
        ListingDecision with break_even cached, profit recomputed and the
        observed low prices stored, or None when listing would not be
        profitable or the card type has no market data.
    """
    prices = find_market_data(market_data, trade.card_id, gold)
    if prices is None:
        return None

    market_price = prices.low_price_bcx if trade.bcx > 1 else prices.low_price
    break_even = resolve_break_even(trade.sell.break_even if trade.sell else None, trade.buy.usd)

    if market_price <= break_even:
        logger.debug(
            "listing_below_break_even",
            uid=trade.uid,
            market_price=str(market_price),
            break_even=str(break_even),
        )
        return None

    break_even_pct = calculate_break_even_pct(trade.buy.usd, break_even)
    sell_price = calculate_sell_price(market_price, trade.buy.usd, break_even_pct)

    updated = trade.with_sell(
        break_even=break_even,
        market_price=MarketPriceSnapshot(
            low_price=prices.low_price,
            low_price_bcx=prices.low_price_bcx,
        ),
    )
    updated = apply_sell_price(updated, sell_price)
    return ListingDecision(trade=updated, price=sell_price)
