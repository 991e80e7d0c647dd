"""
Deckhand — Application Entrypoint

Run via:
    python -m src.main
"""

from __future__ import annotations

import asyncio
import logging
import sys

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.config import settings
from src.pipeline.scheduler import run_scheduler


def _configure_logging(log_level: str) -> None:
    """JSON lines on stdout, filtered by the stdlib level."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _check_config(logger: structlog.stdlib.BoundLogger) -> None:
    if not settings.own_accounts:
        logger.warning("config_accounts_missing", note="no accounts to manage")
    if not settings.FEE_ACCOUNT:
        logger.warning("config_fee_account_missing", note="fee transfers will fail")


async def main() -> None:
    _configure_logging(settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)
    _check_config(logger)

    engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))

        logger.info(
            "deckhand_started",
            accounts=sorted(settings.own_accounts),
            profit_fee_pct=str(settings.PROFIT_FEE_PCT),
        )
        await run_scheduler(engine, session_factory)
    except Exception as e:
        logger.error("deckhand_fatal_error", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        await engine.dispose()
        logger.info("deckhand_stopped")


if __name__ == "__main__":
    asyncio.run(main())
