"""
Deckhand — Fee Transfer Ledger

Append-only record of platform fees collected from finished trades.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, INTEGER, TIMESTAMP, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class FeeTransfer(Base):
    __tablename__ = "fee_transfers"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    tx_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, comment="Hive transaction id")
    account: Mapped[str] = mapped_column(String, nullable=False, index=True, comment="Paying account")
    to_account: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 3), nullable=False)
    currency: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<FeeTransfer tx_id={self.tx_id!r} account={self.account!r} "
            f"amount={self.amount} {self.currency}>"
        )
