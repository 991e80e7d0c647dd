"""
Deckhand — Trade State

Immutable value types for one managed trade. Decision steps take a Trade and
return a new Trade; only the repository writes them to storage.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from src.config import TradeStatus


class BuyState(BaseModel):
    """Purchase side of a trade. Never changes after creation."""

    model_config = {"frozen": True}

    usd: Decimal = Field(..., ge=0, description="Purchase price in USD")


class MarketPriceSnapshot(BaseModel):
    """Low prices observed the last time the trade was listed."""

    model_config = {"frozen": True}

    low_price: Decimal | None = None
    low_price_bcx: Decimal | None = None


class SellState(BaseModel):
    """Resale side of a trade."""

    model_config = {"frozen": True}

    usd: Decimal = Field(default=Decimal("0"), description="Current or last realized price")
    break_even: Decimal | None = Field(default=None, description="Cached once, never recomputed")
    tx_count: int = Field(default=0, description="Number of price revisions")
    tx_id: str | None = None
    market_price: MarketPriceSnapshot | None = None


class Trade(BaseModel):
    """One purchased card under management."""

    model_config = {"frozen": True}

    id: int | None = Field(default=None, description="Storage id, used as the scan cursor")
    uid: str
    account: str
    card_id: int = Field(..., description="Card detail id (asset type)")
    card_name: str | None = None
    bcx: int = 1
    gold: bool = False
    xp: int | None = None
    status_id: int = TradeStatus.ACTIVE.value

    buy: BuyState
    sell: SellState | None = None

    profit_usd: Decimal = Decimal("0")
    profit_margin: Decimal = Decimal("0")

    @property
    def is_active(self) -> bool:
        return self.status_id == TradeStatus.ACTIVE.value

    def with_sell(self, **changes: object) -> Trade:
        """Return a copy whose sell state has ``changes`` applied."""
        sell = self.sell or SellState()
        return self.model_copy(update={"sell": sell.model_copy(update=changes)})
