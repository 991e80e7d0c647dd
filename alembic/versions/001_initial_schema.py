"""Initial schema — trades, fee_transfers

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- trades ---
    op.create_table(
        "trades",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("uid", sa.String(), nullable=False, comment="Card instance id"),
        sa.Column("account", sa.String(), nullable=False, comment="Owning account"),
        sa.Column("card_id", sa.INTEGER(), nullable=False, comment="Card detail id"),
        sa.Column("card_name", sa.String(), nullable=True),
        sa.Column("bcx", sa.INTEGER(), server_default="1", nullable=False),
        sa.Column("gold", sa.BOOLEAN(), server_default="false", nullable=False),
        sa.Column("xp", sa.INTEGER(), nullable=True, comment="xp baseline latched on first scan"),
        sa.Column("status_id", sa.INTEGER(), server_default="0", nullable=False),
        sa.Column("buy_usd", sa.DECIMAL(12, 3), nullable=False),
        sa.Column("sell_usd", sa.DECIMAL(12, 3), nullable=True),
        sa.Column("sell_break_even", sa.DECIMAL(16, 6), nullable=True),
        sa.Column("sell_tx_count", sa.INTEGER(), server_default="0", nullable=False),
        sa.Column("sell_tx_id", sa.String(), nullable=True),
        sa.Column("market_low_price", sa.DECIMAL(12, 3), nullable=True),
        sa.Column("market_low_price_bcx", sa.DECIMAL(12, 3), nullable=True),
        sa.Column("profit_usd", sa.DECIMAL(12, 3), server_default="0", nullable=False),
        sa.Column("profit_margin", sa.DECIMAL(8, 2), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("uid", "account", name="uq_trades_uid_account"),
    )
    op.create_index("ix_trades_status_id", "trades", ["status_id"])
    op.create_index("ix_trades_status_id_id", "trades", ["status_id", "id"])

    # --- fee_transfers (append-only ledger) ---
    op.create_table(
        "fee_transfers",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("tx_id", sa.String(), nullable=False, comment="Hive transaction id"),
        sa.Column("account", sa.String(), nullable=False, comment="Paying account"),
        sa.Column("to_account", sa.String(), nullable=False),
        sa.Column("amount", sa.DECIMAL(12, 3), nullable=False),
        sa.Column("currency", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("tx_id", name="uq_fee_transfers_tx_id"),
    )
    op.create_index("ix_fee_transfers_account", "fee_transfers", ["account"])


def downgrade() -> None:
    op.drop_index("ix_fee_transfers_account", table_name="fee_transfers")
    op.drop_table("fee_transfers")
    op.drop_index("ix_trades_status_id_id", table_name="trades")
    op.drop_index("ix_trades_status_id", table_name="trades")
    op.drop_table("trades")
