"""
Deckhand — Polling Scheduler

Polls the grouped market snapshot on a fixed cadence and hands each fresh
snapshot to the active trade scanner. The scanner applies its own, longer
throttle, so most polls only refresh market data.

Cadences:
- Market snapshot: MARKET_DATA_POLL_INTERVAL_MINUTES (10 by default)
- Active trade scan: ACTIVE_TRADES_SCAN_INTERVAL_HOURS (2 by default)
"""

from __future__ import annotations

import asyncio
import signal
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.pipeline.cards import CardsClient
from src.pipeline.hive import HiveClient
from src.pipeline.market import MarketClient
from src.trades.accounting import FeeLedger
from src.trades.evaluator import TradeEvaluator
from src.trades.repository import TradeRepository
from src.trades.scanner import ActiveTradeScanner

logger = structlog.get_logger(__name__)


class Scheduler:
    """
    Async scheduler for the market poll and trade scan.

    Clients are opened once in run() and shared by every poll.
    """

    def __init__(
        self,
        db_engine: Any,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.db_engine = db_engine
        self.session_factory = session_factory
        self._shutdown_event = asyncio.Event()

        self._market_last_poll: datetime | None = None
        self._market_cadence_minutes = settings.MARKET_DATA_POLL_INTERVAL_MINUTES

        self.market: MarketClient | None = None
        self.scanner: ActiveTradeScanner | None = None

    async def shutdown(self) -> None:
        """Signal graceful shutdown to the scheduler loop."""
        logger.info("scheduler_shutdown_requested")
        self._shutdown_event.set()

    def build_scanner(
        self,
        cards: CardsClient,
        market: MarketClient,
        hive: HiveClient,
    ) -> ActiveTradeScanner:
        repository = TradeRepository(self.session_factory)
        evaluator = TradeEvaluator(
            repository=repository,
            cards=cards,
            market=market,
            hive=hive,
            ledger=FeeLedger(self.session_factory),
        )
        return ActiveTradeScanner(repository, cards, evaluator)

    def _should_poll_market(self) -> bool:
        """Check if the market snapshot window has elapsed."""
        if self._market_last_poll is None:
            return True
        now = datetime.now(timezone.utc)
        elapsed_minutes = (now - self._market_last_poll).total_seconds() / 60
        return elapsed_minutes >= self._market_cadence_minutes

    async def _poll_market(self) -> int:
        """
        Fetch a market snapshot and run the trade scan against it.

        Returns:
            Number of trades evaluated (0 when the scan is throttled).
        """
        assert self.market is not None and self.scanner is not None, "Scheduler not started"

        logger.info("scheduler_market_poll_start")
        self._market_last_poll = datetime.now(timezone.utc)

        market_data = await self.market.fetch_market_data()
        evaluated = await self.scanner.check(market_data)

        logger.info(
            "scheduler_market_poll_complete",
            market_rows=len(market_data),
            evaluated=evaluated,
            next_poll_in_minutes=self._market_cadence_minutes,
        )
        return evaluated

    async def run(self) -> None:
        """
        Main scheduler loop. Runs indefinitely until shutdown is signaled.

        A failed poll is logged and retried on the next cadence.
        """
        logger.info(
            "scheduler_started",
            market_cadence_minutes=self._market_cadence_minutes,
            scan_interval_hours=settings.ACTIVE_TRADES_SCAN_INTERVAL_HOURS,
            own_accounts=sorted(settings.own_accounts),
        )

        poll_check_interval = 5

        async with CardsClient() as cards, MarketClient() as market, HiveClient() as hive:
            self.market = market
            self.scanner = self.build_scanner(cards, market, hive)

            try:
                while not self._shutdown_event.is_set():
                    try:
                        if self._should_poll_market():
                            await self._poll_market()

                        await asyncio.wait_for(
                            self._shutdown_event.wait(),
                            timeout=poll_check_interval,
                        )
                    except asyncio.TimeoutError:
                        continue
                    except Exception as e:
                        logger.error(
                            "scheduler_unknown_error",
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                        await asyncio.sleep(poll_check_interval)

            except asyncio.CancelledError:
                logger.info("scheduler_cancelled")
                raise
            finally:
                logger.info("scheduler_stopped")


async def run_scheduler(db_engine: Any, session_factory: async_sessionmaker[AsyncSession]) -> None:
    """
    Initialize and run the scheduler with graceful shutdown handling.

    Registers SIGTERM/SIGINT handlers to trigger shutdown.
    """
    scheduler = Scheduler(db_engine, session_factory)

    def handle_signal(_signum: int, _frame: Any) -> None:
        logger.info("scheduler_signal_received")
        asyncio.create_task(scheduler.shutdown())

    loop = asyncio.get_event_loop()

    try:
        loop.add_signal_handler(signal.SIGTERM, handle_signal, signal.SIGTERM, None)
        loop.add_signal_handler(signal.SIGINT, handle_signal, signal.SIGINT, None)
    except NotImplementedError:
        # Windows doesn't support add_signal_handler for all signals
        logger.warning("signal_handlers_not_supported_on_platform")

    try:
        await scheduler.run()
    except Exception as e:
        logger.error("scheduler_fatal_error", error=str(e), error_type=type(e).__name__)
        raise
