"""
Deckhand — Admin Trade Registration Script

Registers a purchased card as a new active trade. The scanner picks it up on
its next run, latches its xp, and lists it once the market clears breakeven.

Usage:
    python scripts/add_trade.py --account alice --uid C7-338-ABCDEF --card-id 338 --buy-usd 12.50
    python scripts/add_trade.py --account alice --uid G7-338-FEDCBA --card-id 338 --buy-usd 80 --gold --bcx 5
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Resolve project root so this script can be run from any working directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.config import settings
from src.trades.repository import TradeRepository
from src.trades.state import BuyState, Trade


def _decimal(value: str) -> Decimal:
    try:
        parsed = Decimal(value)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from e
    if parsed < 0:
        raise argparse.ArgumentTypeError("must be non-negative")
    return parsed


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Register a purchased card as an active Deckhand trade.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--account", required=True, help="Account that owns the card.")
    parser.add_argument("--uid", required=True, help="Card instance uid.")
    parser.add_argument("--card-id", type=int, required=True, help="Card detail id.")
    parser.add_argument("--buy-usd", type=_decimal, required=True, help="Purchase price in USD.")
    parser.add_argument("--bcx", type=int, default=1, help="Card bcx (default: 1).")
    parser.add_argument("--gold", action="store_true", help="Gold foil variant.")
    parser.add_argument("--name", default=None, help="Optional card name for logs.")
    return parser.parse_args()


async def create_trade(args: argparse.Namespace) -> Trade:
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    repository = TradeRepository(session_factory)
    if await repository.get_trade(args.uid, args.account) is not None:
        await engine.dispose()
        raise ValueError(f"trade {args.uid} for {args.account} already exists")

    trade = await repository.update_trade(
        Trade(
            uid=args.uid,
            account=args.account,
            card_id=args.card_id,
            card_name=args.name,
            bcx=args.bcx,
            gold=args.gold,
            buy=BuyState(usd=args.buy_usd),
        )
    )

    await engine.dispose()
    return trade


async def main() -> None:
    args = parse_args()

    print(f"Creating trade: account={args.account}, uid={args.uid}, buy_usd={args.buy_usd}")

    try:
        trade = await create_trade(args)
        print("Trade created successfully.")
        print(f"  trades.id  = {trade.id}")
        print(f"  card_id    = {trade.card_id} (gold={trade.gold}, bcx={trade.bcx})")
        print(f"  buy_usd    = {trade.buy.usd}")
        print()
        print("The scanner will evaluate this trade on its next run.")
    except Exception as e:
        print(f"Failed to create trade: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
