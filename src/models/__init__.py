"""
Models package — export all SQLAlchemy models.
"""

from src.models.base import Base
from src.models.fee_transfer import FeeTransfer
from src.models.trade import TradeRecord

__all__ = ["Base", "FeeTransfer", "TradeRecord"]
