"""Builders for order books and market snapshots used across test modules."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from src.pipeline.market import MarketData, OrderBookEntry

OWN_ACCOUNTS = frozenset({"alice", "alice-vault"})


def build_order_book(
    prices: list[str],
    own_index: int,
    own_uid: str = "C7-338-OWN",
    sellers: dict[int, str] | None = None,
) -> list[OrderBookEntry]:
    """
    Order book with our listing at ``own_index``.

    Other entries belong to third-party sellers unless ``sellers`` overrides
    the seller at a given index.
    """
    sellers = sellers or {}
    book = []
    for i, price in enumerate(prices):
        if i == own_index:
            uid, seller = own_uid, "alice"
        else:
            uid, seller = f"C7-338-X{i:02d}", sellers.get(i, f"rival{i}")
        book.append(
            OrderBookEntry(uid=uid, seller=seller, buy_price=Decimal(price), market_id=f"mkt-{uid}")
        )
    return book


def market_row(low_price: str, low_price_bcx: str | None = None, **overrides: Any) -> MarketData:
    data: dict[str, Any] = {
        "card_detail_id": 338,
        "gold": False,
        "low_price": low_price,
        "low_price_bcx": low_price_bcx if low_price_bcx is not None else low_price,
    }
    data.update(overrides)
    return MarketData.model_validate(data)
