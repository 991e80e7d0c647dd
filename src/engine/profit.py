"""
Deckhand - Profit Calculator

profit_usd    = sell_usd × 94 / 97 - buy_usd
profit_margin = profit_usd / buy_usd × 100

Profit is net of the same fee ratio the breakeven price grosses up, so a trade
sold exactly at breakeven shows zero profit.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, ROUND_UP, Decimal

import structlog

from src.config import settings
from src.trades.state import Trade

logger = structlog.get_logger(__name__)

_THREE_DP = Decimal("0.001")
_TWO_DP = Decimal("0.01")
_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


def _quantize_price(value: Decimal) -> Decimal:
    return value.quantize(_THREE_DP, rounding=ROUND_HALF_UP)


def calculate_profit(buy_usd: Decimal, sell_usd: Decimal) -> dict[str, Decimal]:
    """
    Calculate absolute profit and margin for a prospective or realized sale.

    Returns:
        {"profit_usd": 3dp, "profit_margin": 2dp percent}
    """
    if buy_usd < _ZERO:
        raise ValueError("buy_usd must be non-negative")
    if sell_usd < _ZERO:
        raise ValueError("sell_usd must be non-negative")

    net_sale = sell_usd * settings.BREAK_EVEN_DENOMINATOR / settings.BREAK_EVEN_NUMERATOR
    profit_usd = _quantize_price(net_sale - buy_usd)

    profit_margin = _ZERO
    if buy_usd != _ZERO:
        profit_margin = (profit_usd / buy_usd * _HUNDRED).quantize(_TWO_DP, rounding=ROUND_HALF_UP)

    return {"profit_usd": profit_usd, "profit_margin": profit_margin}


def apply_sell_price(trade: Trade, sell_usd: Decimal) -> Trade:
    """
    Assign a new sell price and recompute profit in the same step.

    This is the only place ``sell.usd`` changes, which keeps profit_usd and
    profit_margin consistent with it.
    """
    result = calculate_profit(trade.buy.usd, sell_usd)
    updated = trade.with_sell(usd=sell_usd)
    return updated.model_copy(update=result)


def calculate_sell_price(
    market_price: Decimal,
    buy_usd: Decimal,
    break_even_pct: int,
) -> Decimal:
    """
    Price a fresh listing just under the current market low.

    The result never drops below buy_usd grossed up by ``break_even_pct``,
    which is itself at or above the trade's breakeven.

    Args:
        market_price: Current lowest listing for the card type.
        buy_usd: Purchase price.
        break_even_pct: Fee percentage implied by the breakeven price.

    Returns:
        Listing price rounded up to 3dp.

    Raises:
        ValueError: If break_even_pct is outside [0, 100).
    """
    if not 0 <= break_even_pct < 100:
        raise ValueError("break_even_pct must be in [0, 100)")

    floor = buy_usd * _HUNDRED / (_HUNDRED - Decimal(break_even_pct))
    candidate = market_price - settings.UNDERCUT_STEP
    price = max(candidate, floor).quantize(_THREE_DP, rounding=ROUND_UP)

    logger.debug(
        "sell_price_calculated",
        market_price=str(market_price),
        buy_usd=str(buy_usd),
        break_even_pct=break_even_pct,
        floor=str(floor),
        price=str(price),
    )
    return price
