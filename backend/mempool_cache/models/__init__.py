"""Data models for the mempool cache"""

from .blockchain import (
    BlockExtended,
    BlockSummary,
    TransactionExtended,
    TransactionStripped,
)
from .cache import CacheLoadSummary, WriteResult

__all__ = [
    "BlockExtended",
    "BlockSummary",
    "TransactionExtended",
    "TransactionStripped",
    "CacheLoadSummary",
    "WriteResult",
]
