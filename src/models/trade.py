"""
Deckhand — Trade Model

One row per purchased card instance under management. Keyed for writes by
(uid, account); the integer id is the stable scan cursor.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BOOLEAN,
    DECIMAL,
    INTEGER,
    TIMESTAMP,
    Index,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class TradeRecord(Base):
    """
    Persisted state of a trade.

    status_id: 0 active, 1 finished (sold), 2 closed (merged or burned).
    Only active rows are picked up by the scanner.
    """

    __tablename__ = "trades"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    uid: Mapped[str] = mapped_column(String, nullable=False, comment="Card instance id")
    account: Mapped[str] = mapped_column(String, nullable=False, comment="Owning account")
    card_id: Mapped[int] = mapped_column(INTEGER, nullable=False, comment="Card detail id")
    card_name: Mapped[str | None] = mapped_column(String, nullable=True)
    bcx: Mapped[int] = mapped_column(INTEGER, nullable=False, default=1, server_default="1")
    gold: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False, server_default="false")
    xp: Mapped[int | None] = mapped_column(
        INTEGER, nullable=True, comment="xp baseline latched on first scan"
    )
    status_id: Mapped[int] = mapped_column(
        INTEGER, nullable=False, default=0, server_default="0", index=True
    )

    # --- Purchase ---
    buy_usd: Mapped[Decimal] = mapped_column(DECIMAL(12, 3), nullable=False)

    # --- Resale ---
    sell_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(12, 3), nullable=True)
    sell_break_even: Mapped[Decimal | None] = mapped_column(DECIMAL(16, 6), nullable=True)
    sell_tx_count: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0, server_default="0")
    sell_tx_id: Mapped[str | None] = mapped_column(String, nullable=True)
    market_low_price: Mapped[Decimal | None] = mapped_column(DECIMAL(12, 3), nullable=True)
    market_low_price_bcx: Mapped[Decimal | None] = mapped_column(DECIMAL(12, 3), nullable=True)

    # --- Derived ---
    profit_usd: Mapped[Decimal] = mapped_column(
        DECIMAL(12, 3), nullable=False, default=Decimal("0"), server_default="0"
    )
    profit_margin: Mapped[Decimal] = mapped_column(
        DECIMAL(8, 2), nullable=False, default=Decimal("0"), server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("uid", "account", name="uq_trades_uid_account"),
        Index("ix_trades_status_id_id", "status_id", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TradeRecord uid={self.uid!r} account={self.account!r} "
            f"status_id={self.status_id} sell_usd={self.sell_usd}>"
        )
