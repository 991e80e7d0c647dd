"""
Deckhand — Hive Broadcast Client

Submits Splinterlands market operations and fee transfers through a signing
relay (HIVE_BROADCAST_URL). The relay holds the account keys, signs, and
broadcasts; this client only builds operations and reports the result.

Broadcasts are never retried here. A failed submission surfaces as
BroadcastError and the next scan cycle decides again from fresh state.
"""

from __future__ import annotations

import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from src.config import settings

logger = structlog.get_logger(__name__)

_THREE_DP = Decimal("0.001")


class BroadcastError(RuntimeError):
    """Raised when the relay rejects or fails to broadcast a transaction."""


# ---------------------------------------------------------------------------
# Pydantic Models
# ---------------------------------------------------------------------------


class UpdatePricePayload(BaseModel):
    """Body of an ``sm_update_price`` operation."""

    ids: list[str]
    new_price: Decimal
    list_fee: int = Field(default_factory=lambda: settings.LIST_FEE)
    list_fee_token: str = Field(default_factory=lambda: settings.LIST_FEE_TOKEN)


class CardListing(BaseModel):
    """One entry of an ``sm_sell_cards`` operation."""

    cards: list[str]
    price: Decimal
    currency: str = Field(default_factory=lambda: settings.LISTING_CURRENCY)
    fee_pct: int = Field(default_factory=lambda: settings.LISTING_FEE_PCT)
    list_fee: int = Field(default_factory=lambda: settings.LIST_FEE)
    list_fee_token: str = Field(default_factory=lambda: settings.LIST_FEE_TOKEN)


class BroadcastResult(BaseModel):
    """Relay response for a broadcast transaction."""

    model_config = {"extra": "ignore"}

    id: str


class SignedTransaction(BaseModel):
    """A broadcast fee transfer, handed to the accounting ledger."""

    id: str
    account: str
    to: str
    amount: Decimal
    currency: str


def _price(value: Decimal) -> float:
    return float(value.quantize(_THREE_DP, rounding=ROUND_HALF_UP))


def _custom_json(account: str, op_id: str, body: Any) -> list[Any]:
    return [
        "custom_json",
        {
            "id": op_id,
            "required_auths": [account],
            "required_posting_auths": [],
            "json": json.dumps(body),
        },
    ]


# ---------------------------------------------------------------------------
# Relay Client
# ---------------------------------------------------------------------------


class HiveClient:
    """
    Async client for the signing relay.

    Usage:
        async with HiveClient() as hive:
            result = await hive.update_card_price("alice", payload)
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None):
        self._base_url = base_url or settings.HIVE_BROADCAST_URL
        self._api_key = api_key if api_key is not None else settings.HIVE_BROADCAST_API_KEY
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HiveClient:
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def _broadcast(self, account: str, operations: list[Any]) -> BroadcastResult:
        assert self._client is not None, "Client not initialized. Use 'async with'."

        try:
            response = await self._client.post(
                "/broadcast",
                json={"account": account, "operations": operations},
            )
            response.raise_for_status()
            result = BroadcastResult.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise BroadcastError(
                f"relay rejected broadcast for {account}: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise BroadcastError(f"relay unreachable for {account}: {e}") from e
        except ValueError as e:
            raise BroadcastError(f"malformed relay response for {account}") from e

        logger.info(
            "hive_broadcast_submitted",
            account=account,
            operation=operations[0][0],
            tx_id=result.id,
        )
        return result

    async def update_card_price(self, account: str, payload: UpdatePricePayload) -> BroadcastResult:
        """Change the price of existing market listings."""
        body = {
            "ids": payload.ids,
            "new_price": _price(payload.new_price),
            "list_fee": payload.list_fee,
            "list_fee_token": payload.list_fee_token,
        }
        return await self._broadcast(account, [_custom_json(account, "sm_update_price", body)])

    async def add_cards(self, account: str, listings: list[CardListing]) -> BroadcastResult:
        """List cards on the market."""
        body = [
            {
                "cards": listing.cards,
                "currency": listing.currency,
                "price": _price(listing.price),
                "fee_pct": listing.fee_pct,
                "list_fee": listing.list_fee,
                "list_fee_token": listing.list_fee_token,
            }
            for listing in listings
        ]
        return await self._broadcast(account, [_custom_json(account, "sm_sell_cards", body)])

    async def transfer_fee(self, account: str, amount: Decimal) -> SignedTransaction:
        """Transfer the platform fee from ``account`` to the fee account."""
        amount = amount.quantize(_THREE_DP, rounding=ROUND_HALF_UP)
        if amount <= 0:
            raise ValueError(f"fee transfer amount must be positive, got {amount}")
        op = [
            "transfer",
            {
                "from": account,
                "to": settings.FEE_ACCOUNT,
                "amount": f"{amount} {settings.FEE_CURRENCY}",
                "memo": "deckhand profit fee",
            },
        ]
        result = await self._broadcast(account, [op])
        return SignedTransaction(
            id=result.id,
            account=account,
            to=settings.FEE_ACCOUNT,
            amount=amount,
            currency=settings.FEE_CURRENCY,
        )
