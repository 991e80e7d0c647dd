"""
Deckhand — Market Data Client

Two views of the Splinterlands market:
- the grouped snapshot (lowest listed price per card type and variant), which
  drives initial listings and triggers each scan;
- the per-card order book, which drives undercutting of existing listings.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from pydantic import BaseModel, field_validator

from src.pipeline.splinterlands import SplinterlandsClient

logger = structlog.get_logger(__name__)


def _to_decimal(v: Any) -> Decimal:
    try:
        return Decimal(str(v))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"invalid price {v!r}") from e


# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class MarketData(BaseModel):
    """Cheapest listed price for one card type and variant."""

    model_config = {"frozen": True, "extra": "ignore"}

    card_detail_id: int
    gold: bool
    low_price: Decimal
    low_price_bcx: Decimal

    @field_validator("low_price", "low_price_bcx", mode="before")
    @classmethod
    def parse_decimal(cls, v: Any) -> Decimal:
        """Never use float for money."""
        return _to_decimal(v)


class OrderBookEntry(BaseModel):
    """One live sell listing."""

    model_config = {"frozen": True, "extra": "ignore"}

    uid: str
    seller: str
    buy_price: Decimal
    market_id: str

    @field_validator("buy_price", mode="before")
    @classmethod
    def parse_decimal(cls, v: Any) -> Decimal:
        return _to_decimal(v)


def find_market_data(
    market_data: list[MarketData],
    card_detail_id: int,
    gold: bool,
) -> MarketData | None:
    """Look up the snapshot row for a card type and variant."""
    for row in market_data:
        if row.card_detail_id == card_detail_id and row.gold == gold:
            return row
    return None


# ---------------------------------------------------------------------------
# API Client
# ---------------------------------------------------------------------------


class MarketClient(SplinterlandsClient):
    """Market snapshot and order book lookups."""

    async def fetch_market_data(self) -> list[MarketData]:
        """Fetch the grouped low-price snapshot for every listed card type."""
        data = await self._get("/market/for_sale_grouped")
        rows = [MarketData.model_validate(row) for row in data or []]

        logger.info("market_data_fetched", rows=len(rows))
        return rows

    async def get_card_prices(self, card_detail_id: int, gold: bool) -> list[OrderBookEntry]:
        """
        Fetch every sell listing of a card type.

        Returns:
            Entries sorted ascending by buy_price.
        """
        data = await self._get(
            "/market/for_sale_by_card",
            params={"card_detail_id": card_detail_id, "gold": str(gold).lower()},
        )
        entries = [OrderBookEntry.model_validate(row) for row in data or []]
        entries.sort(key=lambda e: e.buy_price)

        logger.debug(
            "order_book_fetched",
            card_detail_id=card_detail_id,
            gold=gold,
            entries=len(entries),
        )
        return entries
