"""
Deckhand — Card Metadata Client

Fetches the current on-chain state of owned card instances: owner, xp,
listing, delegation, lock and land-stake encumbrances. Records are validated
on ingestion; a payload missing a required field fails the whole batch with
CardInfoError rather than leaking half-populated data into decisions.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.config import MarketListingType
from src.pipeline.splinterlands import SplinterlandsClient

logger = structlog.get_logger(__name__)


class CardInfoError(ValueError):
    """Raised when card metadata is missing a required field."""


# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class CardDetails(BaseModel):
    """Static details of the card type."""

    name: str
    rarity: int = Field(..., ge=1, le=4)


class CardInfo(BaseModel):
    """Authoritative state of one card instance for the current scan."""

    model_config = {"frozen": True, "extra": "ignore"}

    uid: str
    player: str
    card_detail_id: int
    gold: bool
    xp: int
    edition: int | None = None
    details: CardDetails

    combined_card_id: str | None = None
    market_id: str | None = None
    market_listing_type: MarketListingType | None = None
    delegated_to: str | None = None
    lock_days: int | None = None
    stake_plot: str | None = None
    stake_end_date: datetime | None = None

    @field_validator("market_listing_type", mode="before")
    @classmethod
    def parse_listing_type(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    @property
    def is_listed_for_sale(self) -> bool:
        return bool(self.market_id) and self.market_listing_type == MarketListingType.SELL


def parse_card_info(payload: list[dict[str, Any]]) -> list[CardInfo]:
    """
    Validate a raw card list.

    Raises:
        CardInfoError: If any record is missing or mistypes a required field.
    """
    cards: list[CardInfo] = []
    for raw in payload:
        try:
            cards.append(CardInfo.model_validate(raw))
        except ValidationError as e:
            raise CardInfoError(
                f"Invalid card info for uid={raw.get('uid')!r}: {e.error_count()} error(s)"
            ) from e
    return cards


class CardSale(BaseModel):
    """One completed market sale of a card instance."""

    uid: str
    seller: str
    price: Decimal | None = None
    created_date: datetime | None = None

    @field_validator("price", mode="before")
    @classmethod
    def parse_decimal(cls, v: Any) -> Decimal | None:
        """Safely convert price values to Decimal. Never use float for money."""
        if v is None or v == "":
            return None
        try:
            return Decimal(str(v))
        except (InvalidOperation, ValueError):
            return None


# ---------------------------------------------------------------------------
# API Client
# ---------------------------------------------------------------------------


class CardsClient(SplinterlandsClient):
    """Card metadata lookups."""

    async def find_card_info(self, uids: list[str]) -> list[CardInfo]:
        """
        Fetch card state for a batch of uids.

        Returns:
            Validated CardInfo records; uids unknown to the API are simply absent.
        """
        if not uids:
            return []

        data = await self._get("/cards/find", params={"ids": ",".join(uids)})
        cards = parse_card_info(data or [])

        logger.info("card_info_fetched", requested=len(uids), returned=len(cards))
        return cards

    async def find_card_sell_price(self, uid: str, account: str) -> Decimal | None:
        """
        Price at which ``account`` most recently sold card ``uid``.

        Returns:
            The realized price, or None when no matching sale exists.
        """
        data = await self._get("/market/sale_history", params={"uid": uid, "seller": account})
        sales = [CardSale.model_validate(s) for s in data or []]
        sales = [s for s in sales if s.seller == account and s.price is not None]
        if not sales:
            logger.debug("card_sale_not_found", uid=uid, account=account)
            return None

        # sale_history is returned newest first
        return sales[0].price
