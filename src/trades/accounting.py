"""
Deckhand — Fee Accounting

Attributes broadcast profit-fee transfers to the paying account by writing them
to the fee_transfers ledger.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.models.fee_transfer import FeeTransfer
from src.pipeline.hive import SignedTransaction

logger = structlog.get_logger(__name__)


class FeeLedger:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def transfer_fee(self, signed_tx: SignedTransaction) -> None:
        """Record a broadcast fee transfer."""
        async with self.session_factory() as session:
            session.add(
                FeeTransfer(
                    tx_id=signed_tx.id,
                    account=signed_tx.account,
                    to_account=signed_tx.to,
                    amount=signed_tx.amount,
                    currency=signed_tx.currency,
                )
            )
            await session.commit()

        logger.info(
            "fee_transfer_recorded",
            tx_id=signed_tx.id,
            account=signed_tx.account,
            amount=str(signed_tx.amount),
            currency=signed_tx.currency,
        )

