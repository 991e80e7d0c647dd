"""
Deckhand — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- In-memory async database (aiosqlite)
- Trade and CardInfo builders
- Async test support via pytest-asyncio
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.models.base import Base
from src.pipeline.cards import CardInfo
from src.trades.state import BuyState, SellState, Trade


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps every session on the same connection, so all of them
    see the same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@pytest.fixture
def make_trade() -> Callable[..., Trade]:
    """Build a Trade with sensible defaults; ``buy_usd``/``break_even`` are shortcuts."""

    def _make(
        buy_usd: str | Decimal = "100",
        break_even: str | Decimal | None = None,
        sell_usd: str | Decimal | None = None,
        **overrides: Any,
    ) -> Trade:
        sell = None
        if break_even is not None or sell_usd is not None:
            sell = SellState(
                usd=Decimal(str(sell_usd)) if sell_usd is not None else Decimal("0"),
                break_even=Decimal(str(break_even)) if break_even is not None else None,
            )
        data: dict[str, Any] = {
            "id": 1,
            "uid": "C7-338-OWN",
            "account": "alice",
            "card_id": 338,
            "card_name": "Lord Arianthus",
            "bcx": 1,
            "gold": False,
            "xp": 1,
            "buy": BuyState(usd=Decimal(str(buy_usd))),
            "sell": sell,
        }
        data.update(overrides)
        return Trade(**data)

    return _make


@pytest.fixture
def make_card_info() -> Callable[..., CardInfo]:
    """Build a validated CardInfo for the default trade's card."""

    def _make(**overrides: Any) -> CardInfo:
        data: dict[str, Any] = {
            "uid": "C7-338-OWN",
            "player": "alice",
            "card_detail_id": 338,
            "gold": False,
            "xp": 1,
            "edition": 7,
            "details": {"name": "Lord Arianthus", "rarity": 4},
        }
        data.update(overrides)
        return CardInfo.model_validate(data)

    return _make

