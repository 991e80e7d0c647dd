"""
Deckhand — Active Trade Scanner

Feeds every active trade through the lifecycle evaluator once per scan.

- Throttled: a scan only starts when ACTIVE_TRADES_SCAN_INTERVAL_HOURS have
  passed since the previous one. Pages within a scan run back to back.
- Paged with a keyset cursor on trade id, so trades that finish or close
  mid-scan never shift later pages.
- Strictly sequential: one trade's read-decide-write completes before the
  next begins.
- A failure while evaluating one trade is logged and the scan moves on.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog

from src.config import settings
from src.pipeline.cards import CardInfo, CardsClient
from src.pipeline.market import MarketData
from src.trades.evaluator import TradeEvaluator
from src.trades.repository import TradeRepository
from src.trades.state import Trade

logger = structlog.get_logger(__name__)

_THREE_DP = Decimal("0.001")


def summary_row(trade: Trade, card_info: CardInfo) -> dict[str, Any]:
    """One line of the per-page summary table."""
    sell_usd = trade.sell.usd if trade.sell else Decimal("0")
    return {
        "account": trade.account,
        "uid": trade.uid,
        "name": card_info.details.name,
        "buy_price": str(trade.buy.usd),
        "sell_price": str(sell_usd.quantize(_THREE_DP, rounding=ROUND_HALF_UP)),
        "profit_usd": str(trade.profit_usd.quantize(_THREE_DP, rounding=ROUND_HALF_UP)),
        "on_market": card_info.is_listed_for_sale,
    }


class ActiveTradeScanner:
    def __init__(
        self,
        repository: TradeRepository,
        cards: CardsClient,
        evaluator: TradeEvaluator,
        page_size: int | None = None,
        interval: timedelta | None = None,
    ):
        self.repository = repository
        self.cards = cards
        self.evaluator = evaluator
        self.page_size = page_size or settings.ACTIVE_TRADES_PAGE_SIZE
        self.interval = interval or timedelta(hours=settings.ACTIVE_TRADES_SCAN_INTERVAL_HOURS)
        self._last_checked: datetime | None = None

    def _should_scan(self, now: datetime) -> bool:
        if self._last_checked is None:
            return True
        return now - self._last_checked >= self.interval

    async def check(
        self,
        market_data: list[MarketData] | None,
        now: datetime | None = None,
    ) -> int:
        """
        Scan all active trades against a fresh market snapshot.

        Args:
            market_data: Grouped low prices; an empty or missing snapshot skips the scan.
            now: Clock override for tests.

        Returns:
            Number of trades evaluated.
        """
        if not market_data:
            return 0

        now = now or datetime.now(timezone.utc)
        if not self._should_scan(now):
            logger.debug("active_trades_scan_throttled", last_checked=self._last_checked.isoformat())
            return 0
        self._last_checked = now

        logger.info("active_trades_scan_start", market_rows=len(market_data))

        cursor: int | None = None
        evaluated = 0
        pages = 0
        while True:
            page = await self.repository.find_active_trades(after_id=cursor, limit=self.page_size)
            if not page:
                break
            cursor = page[-1].id
            pages += 1
            evaluated += await self._scan_page(page, market_data, now)

        logger.info("active_trades_scan_complete", pages=pages, evaluated=evaluated)
        return evaluated

    async def _scan_page(
        self,
        page: list[Trade],
        market_data: list[MarketData],
        now: datetime,
    ) -> int:
        card_infos = {c.uid: c for c in await self.cards.find_card_info([t.uid for t in page])}

        evaluated = 0
        rows: list[dict[str, Any]] = []
        for trade in page:
            card_info = card_infos.get(trade.uid)
            if card_info is None:
                continue

            try:
                result = await self.evaluator.evaluate(trade, card_info, market_data, now)
            except Exception as e:
                logger.error(
                    "active_trade_evaluation_failed",
                    account=trade.account,
                    uid=trade.uid,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            evaluated += 1
            if result.is_active:
                rows.append(summary_row(result, card_info))

        if rows:
            logger.info("active_trades_page_summary", trades=rows)
        return evaluated
