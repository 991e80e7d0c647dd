"""
Deckhand — Trade Repository

Persistence boundary for trades. Converts between TradeRecord rows and
immutable Trade values. Every write is an upsert keyed by (uid, account).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import TradeStatus
from src.models.trade import TradeRecord
from src.trades.state import BuyState, MarketPriceSnapshot, SellState, Trade

logger = structlog.get_logger(__name__)


def _to_trade(row: TradeRecord) -> Trade:
    sell = None
    if row.sell_usd is not None or row.sell_break_even is not None or row.sell_tx_count:
        market_price = None
        if row.market_low_price is not None or row.market_low_price_bcx is not None:
            market_price = MarketPriceSnapshot(
                low_price=row.market_low_price,
                low_price_bcx=row.market_low_price_bcx,
            )
        sell = SellState(
            usd=row.sell_usd if row.sell_usd is not None else Decimal("0"),
            break_even=row.sell_break_even,
            tx_count=row.sell_tx_count,
            tx_id=row.sell_tx_id,
            market_price=market_price,
        )

    return Trade(
        id=row.id,
        uid=row.uid,
        account=row.account,
        card_id=row.card_id,
        card_name=row.card_name,
        bcx=row.bcx,
        gold=row.gold,
        xp=row.xp,
        status_id=row.status_id,
        buy=BuyState(usd=row.buy_usd),
        sell=sell,
        profit_usd=row.profit_usd,
        profit_margin=row.profit_margin,
    )


def _apply(row: TradeRecord, trade: Trade) -> None:
    row.uid = trade.uid
    row.account = trade.account
    row.card_id = trade.card_id
    row.card_name = trade.card_name
    row.bcx = trade.bcx
    row.gold = trade.gold
    row.xp = trade.xp
    row.status_id = trade.status_id
    row.buy_usd = trade.buy.usd
    row.profit_usd = trade.profit_usd
    row.profit_margin = trade.profit_margin

    if trade.sell is not None:
        row.sell_usd = trade.sell.usd
        row.sell_break_even = trade.sell.break_even
        row.sell_tx_count = trade.sell.tx_count
        row.sell_tx_id = trade.sell.tx_id
        if trade.sell.market_price is not None:
            row.market_low_price = trade.sell.market_price.low_price
            row.market_low_price_bcx = trade.sell.market_price.low_price_bcx


class TradeRepository:
    """
    Async trade storage.

    Usage:
        repo = TradeRepository(session_factory)
        page = await repo.find_active_trades(after_id=None, limit=10)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_active_trades(self, after_id: int | None, limit: int) -> list[Trade]:
        """
        Fetch one page of active trades ordered by id.

        Args:
            after_id: Keyset cursor, the last id of the previous page.
            limit: Page size.
        """
        stmt = (
            select(TradeRecord)
            .where(TradeRecord.status_id == TradeStatus.ACTIVE.value)
            .order_by(TradeRecord.id)
            .limit(limit)
        )
        if after_id is not None:
            stmt = stmt.where(TradeRecord.id > after_id)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()

        return [_to_trade(row) for row in rows]

    async def get_trade(self, uid: str, account: str) -> Trade | None:
        async with self.session_factory() as session:
            row = await self._find_row(session, uid, account)
            return _to_trade(row) if row else None

    async def update_trade(self, trade: Trade) -> Trade:
        """Upsert the trade as-is and return it with its storage id."""
        async with self.session_factory() as session:
            row = await self._find_row(session, trade.uid, trade.account)
            if row is None:
                row = TradeRecord()
                session.add(row)
            _apply(row, trade)
            await session.commit()
            await session.refresh(row)
            stored = _to_trade(row)

        logger.debug("trade_saved", uid=trade.uid, account=trade.account, status_id=trade.status_id)
        return stored

    async def close_trade(self, trade: Trade) -> Trade:
        """Mark a merged or burned trade closed."""
        return await self.update_trade(
            trade.model_copy(update={"status_id": TradeStatus.CLOSED.value})
        )

    async def finish_trade(self, trade: Trade) -> Trade:
        """Mark a sold trade finished."""
        return await self.update_trade(
            trade.model_copy(update={"status_id": TradeStatus.FINISHED.value})
        )

    @staticmethod
    async def _find_row(session: AsyncSession, uid: str, account: str) -> TradeRecord | None:
        result = await session.execute(
            select(TradeRecord).where(TradeRecord.uid == uid, TradeRecord.account == account)
        )
        return result.scalar_one_or_none()
