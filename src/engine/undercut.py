"""
Deckhand — Undercut Pricing Engine

Keeps a listed card competitively priced without racing to the floor.

1. Own listings other than the evaluated one are removed from the ranking, so
   our accounts never compete with each other.
2. Each rarity tier has a competitive depth:
       max_pos = -3 × rarity + 17   (14 | 11 | 8 | 5)
   A listing at zero-based rank pos is left alone while pos + 1 < max_pos.
3. Otherwise we undercut the first significant price gap (>= 8% between
   neighbours) inside the window, falling back to the cheapest listing.
4. The new price is clamped to breakeven and must beat the current price.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_UP, Decimal
from typing import NamedTuple

import structlog

from src.config import settings
from src.engine.breakeven import resolve_break_even
from src.pipeline.market import OrderBookEntry
from src.trades.state import Trade

logger = structlog.get_logger(__name__)

_THREE_DP = Decimal("0.001")


class UndercutDecision(NamedTuple):
    """A price revision worth submitting."""
    market_id: str
    old_price: Decimal
    new_price: Decimal


def max_pos_for_rarity(rarity: int) -> int:
    """Order-book depth beyond which competition is irrelevant for a rarity."""
    if not 1 <= rarity <= 4:
        raise ValueError(f"rarity must be 1-4, got {rarity}")
    return settings.RARITY_DEPTH_SLOPE * rarity + settings.RARITY_DEPTH_INTERCEPT


def _competitive_view(
    order_book: list[OrderBookEntry],
    pos: int,
    own_accounts: Iterable[str],
) -> list[OrderBookEntry]:
    """Cheaper third-party listings followed by our own entry."""
    own = set(own_accounts)
    filtered = [entry for entry in order_book[:pos] if entry.seller not in own]
    filtered.append(order_book[pos])
    return filtered


def _gap_price(filtered: list[OrderBookEntry], limit: int) -> Decimal:
    price = filtered[0].buy_price - settings.UNDERCUT_STEP
    for i in range(1, limit):
        prev = filtered[i - 1].buy_price
        curr = filtered[i].buy_price
        if (curr - prev) / curr < settings.PRICE_GAP_THRESHOLD:
            continue
        price = curr - settings.UNDERCUT_STEP
        break
    return price


def calculate_undercut_price(
    order_book: list[OrderBookEntry],
    trade: Trade,
    rarity: int,
    own_accounts: Iterable[str],
) -> UndercutDecision | None:
    """
    Decide a new competitive price for an already-listed card.

    Args:
        order_book: Live listings for the card type, ascending by buy_price.
        trade: The trade whose listing is evaluated (matched by uid).
        rarity: Card rarity tier, 1-4.
        own_accounts: Accounts under our control.

    Returns:
        UndercutDecision, or None when no revision is warranted.
    """
    pos = next((i for i, e in enumerate(order_book) if e.uid == trade.uid), None)
    if pos is None:
        return None

    filtered = _competitive_view(order_book, pos, own_accounts)
    pos = len(filtered) - 1
    own_entry = filtered[pos]
    max_pos = max_pos_for_rarity(rarity)

    if pos == 0 or pos + 1 < max_pos:
        logger.debug("undercut_within_window", uid=trade.uid, pos=pos, max_pos=max_pos)
        return None

    candidate = _gap_price(filtered, min(pos, max_pos))
    break_even = resolve_break_even(trade.sell.break_even if trade.sell else None, trade.buy.usd)
    new_price = max(candidate, break_even).quantize(_THREE_DP, rounding=ROUND_UP)

    if new_price >= own_entry.buy_price:
        logger.debug(
            "undercut_no_improvement",
            uid=trade.uid,
            current=str(own_entry.buy_price),
            candidate=str(new_price),
        )
        return None

    return UndercutDecision(
        market_id=own_entry.market_id,
        old_price=own_entry.buy_price,
        new_price=new_price,
    )
