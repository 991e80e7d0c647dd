"""
Deckhand — Trade Lifecycle Evaluator

Runs one trade through a scan cycle: latch its xp baseline, classify it, and
carry out the single resulting action against the collaborators. Decisions are
pure (src.engine); this module owns the ordering of side effects:

    decision -> broadcast -> persist        (price revision)
    decision -> persist -> broadcast        (initial listing)
    realize profit -> fee transfer -> ledger -> persist   (finish)

Every method returns the trade as it stands afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog

from src.config import TradeAction, settings
from src.engine.lifecycle import classify_trade
from src.engine.listing import decide_listing
from src.engine.profit import apply_sell_price
from src.engine.undercut import calculate_undercut_price
from src.pipeline.cards import CardInfo, CardsClient
from src.pipeline.hive import BroadcastError, CardListing, HiveClient, UpdatePricePayload
from src.pipeline.market import MarketClient, MarketData
from src.trades.accounting import FeeLedger
from src.trades.repository import TradeRepository
from src.trades.state import Trade

logger = structlog.get_logger(__name__)

_HUNDRED = Decimal("100")
_ZERO = Decimal("0")
_THREE_DP = Decimal("0.001")


class TradeEvaluator:
    def __init__(
        self,
        repository: TradeRepository,
        cards: CardsClient,
        market: MarketClient,
        hive: HiveClient,
        ledger: FeeLedger,
        own_accounts: Iterable[str] | None = None,
        profit_fee_pct: Decimal | None = None,
    ):
        self.repository = repository
        self.cards = cards
        self.market = market
        self.hive = hive
        self.ledger = ledger
        self.own_accounts = frozenset(
            own_accounts if own_accounts is not None else settings.own_accounts
        )
        self.profit_fee_pct = (
            profit_fee_pct if profit_fee_pct is not None else settings.PROFIT_FEE_PCT
        )

    async def evaluate(
        self,
        trade: Trade,
        card_info: CardInfo,
        market_data: list[MarketData],
        now: datetime | None = None,
    ) -> Trade:
        """Apply exactly one lifecycle action to ``trade``."""
        trade = await self._latch_xp(trade, card_info)
        action = classify_trade(trade, card_info, now)

        if action == TradeAction.FINISH:
            return await self.finish(trade)
        if action == TradeAction.CLOSE:
            return await self.close(trade, card_info)
        if action == TradeAction.ADJUST_PRICE:
            return await self.adjust_price(trade, card_info)
        if action == TradeAction.LIST:
            return await self.list_for_sale(trade, card_info, market_data)
        return trade

    async def _latch_xp(self, trade: Trade, card_info: CardInfo) -> Trade:
        """Adopt the observed xp as baseline the first time a trade is seen."""
        if trade.xp is not None:
            return trade
        trade = trade.model_copy(update={"xp": card_info.xp})
        return await self.repository.update_trade(trade)

    # -----------------------------------------------------------------------
    # Actions
    # -----------------------------------------------------------------------

    async def finish(self, trade: Trade) -> Trade:
        """
        Settle a trade whose card was sold by a third party.

        Profit is realized at the recorded sale price when the API has one,
        otherwise at the last listed price. A fee of ``profit_fee_pct`` of
        positive profit is transferred and recorded before the trade closes.
        """
        realized = await self.cards.find_card_sell_price(trade.uid, trade.account)
        if realized is None:
            realized = trade.sell.usd if trade.sell else _ZERO
        trade = apply_sell_price(trade, realized)

        # transfers carry 3dp; a fee that rounds to zero is not sent
        fee = (trade.profit_usd * self.profit_fee_pct / _HUNDRED).quantize(
            _THREE_DP, rounding=ROUND_HALF_UP
        )
        if fee > _ZERO:
            signed_tx = await self.hive.transfer_fee(trade.account, fee)
            await self.ledger.transfer_fee(signed_tx)
        else:
            logger.info(
                "fee_transfer_skipped",
                uid=trade.uid,
                profit_usd=str(trade.profit_usd),
                fee=str(fee),
            )

        finished = await self.repository.finish_trade(trade)
        logger.info(
            "trade_finished",
            account=trade.account,
            uid=trade.uid,
            card_name=trade.card_name,
            sell_usd=str(realized),
            profit_usd=str(trade.profit_usd),
            profit_margin=str(trade.profit_margin),
        )
        return finished

    async def close(self, trade: Trade, card_info: CardInfo) -> Trade:
        """Close a trade whose card was combined or burned. No profit realized."""
        closed = await self.repository.close_trade(trade)
        logger.info(
            "trade_closed",
            account=trade.account,
            uid=trade.uid,
            card_name=trade.card_name or card_info.details.name,
            stored_xp=trade.xp,
            observed_xp=card_info.xp,
            combined_card_id=card_info.combined_card_id,
        )
        return closed

    async def adjust_price(self, trade: Trade, card_info: CardInfo) -> Trade:
        """Undercut the current listing when the order book calls for it."""
        order_book = await self.market.get_card_prices(card_info.card_detail_id, card_info.gold)
        if not order_book:
            return trade

        decision = calculate_undercut_price(
            order_book, trade, card_info.details.rarity, self.own_accounts
        )
        if decision is None:
            return trade

        payload = UpdatePricePayload(ids=[decision.market_id], new_price=decision.new_price)
        try:
            result = await self.hive.update_card_price(trade.account, payload)
        except BroadcastError as e:
            logger.error(
                "update_card_price_failed",
                account=trade.account,
                uid=trade.uid,
                new_price=str(decision.new_price),
                error=str(e),
            )
            return trade

        tx_count = trade.sell.tx_count if trade.sell else 0
        updated = apply_sell_price(trade, decision.new_price)
        updated = updated.with_sell(tx_id=result.id, tx_count=tx_count + 1)

        logger.info(
            "trade_price_updated",
            uid=trade.uid,
            card_name=trade.card_name or card_info.details.name,
            old_price=str(decision.old_price),
            new_price=str(decision.new_price),
            profit_usd=str(updated.profit_usd),
            profit_margin=str(updated.profit_margin),
        )
        return await self.repository.update_trade(updated)

    async def list_for_sale(
        self,
        trade: Trade,
        card_info: CardInfo,
        market_data: list[MarketData],
    ) -> Trade:
        """Put an unlisted card on the market when its price clears breakeven."""
        decision = decide_listing(trade, market_data, card_info.gold)
        if decision is None:
            return trade

        saved = await self.repository.update_trade(decision.trade)
        await self.hive.add_cards(
            trade.account,
            [CardListing(cards=[trade.uid], price=decision.price)],
        )

        logger.info(
            "trade_listed",
            uid=trade.uid,
            card_name=trade.card_name or card_info.details.name,
            price=str(decision.price),
            profit_usd=str(saved.profit_usd),
            profit_margin=str(saved.profit_margin),
        )
        return saved
