"""
Deckhand — Breakeven Calculator

break_even = buy_usd × 97 / 94

The minimum resale price that nets zero profit after marketplace fees.
Once cached on a trade it is reused as-is.
"""

from __future__ import annotations

from decimal import Decimal

from src.config import settings

_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


def calculate_break_even(buy_usd: Decimal) -> Decimal:
    """
    Gross the purchase price up by the fixed fee ratio.

    Raises:
        ValueError: If buy_usd is negative.
    """
    if buy_usd < _ZERO:
        raise ValueError("buy_usd must be non-negative")
    return buy_usd * settings.BREAK_EVEN_NUMERATOR / settings.BREAK_EVEN_DENOMINATOR


def resolve_break_even(cached: Decimal | None, buy_usd: Decimal) -> Decimal:
    """Return the cached breakeven when set, else the computed fallback."""
    if cached:
        return cached
    return calculate_break_even(buy_usd)


def calculate_break_even_pct(buy_usd: Decimal, break_even: Decimal) -> int:
    """
    Fee percentage implied by a breakeven price.

    100 - trunc(buy_usd / break_even × 100), e.g. 100 / 103.19 → 4.
    """
    if break_even <= _ZERO:
        return 0
    return 100 - int(buy_usd / break_even * _HUNDRED)
