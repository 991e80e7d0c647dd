"""
Deckhand — Trade Lifecycle Classifier

Maps one trade plus its live card state to exactly one action, first match
wins:

1. FINISH        card left the tracked account (sold)
2. CLOSE         card was combined into another or its xp changed (burned)
3. ADJUST_PRICE  max-xp card currently listed for sale
4. LIST          card is unlisted and unencumbered
5. NOOP          anything else (rented, delegated, locked, staked)
"""

from __future__ import annotations

from datetime import datetime, timezone

from src.config import TradeAction
from src.pipeline.cards import CardInfo
from src.trades.state import Trade


def is_unencumbered(card_info: CardInfo, now: datetime | None = None) -> bool:
    """Card is not listed, delegated, locked, or still staked to land."""
    if card_info.market_listing_type or card_info.delegated_to or card_info.lock_days:
        return False
    if not card_info.stake_plot:
        return True

    now = now or datetime.now(timezone.utc)
    end = card_info.stake_end_date
    if end is None:
        return False
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return now > end


def classify_trade(trade: Trade, card_info: CardInfo, now: datetime | None = None) -> TradeAction:
    """Pick the single action for this trade in the current cycle."""
    if card_info.player != trade.account:
        return TradeAction.FINISH

    if card_info.combined_card_id or card_info.xp != trade.xp:
        return TradeAction.CLOSE

    if card_info.xp == 1 and card_info.is_listed_for_sale:
        return TradeAction.ADJUST_PRICE

    if is_unencumbered(card_info, now):
        return TradeAction.LIST

    return TradeAction.NOOP
