from src.engine.breakeven import (
    calculate_break_even,
    calculate_break_even_pct,
    resolve_break_even,
)
from src.engine.lifecycle import classify_trade, is_unencumbered
from src.engine.listing import ListingDecision, decide_listing
from src.engine.profit import apply_sell_price, calculate_profit, calculate_sell_price
from src.engine.undercut import UndercutDecision, calculate_undercut_price, max_pos_for_rarity

__all__ = [
    "ListingDecision",
    "UndercutDecision",
    "apply_sell_price",
    "calculate_break_even",
    "calculate_break_even_pct",
    "calculate_profit",
    "calculate_sell_price",
    "calculate_undercut_price",
    "classify_trade",
    "decide_listing",
    "is_unencumbered",
    "max_pos_for_rarity",
    "resolve_break_even",
]
