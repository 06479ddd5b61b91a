"""
Redis store package.

Connection handling, document encoding and the batched mempool restore used
by ``RedisCache``. Higher-level code should import from this package rather
than individual submodules.
"""

from .batch_fetch import BatchedFetchEngine, MempoolFetchResult
from .codec import (
    BLOCK_SUMMARIES_KEY,
    BLOCKS_KEY,
    SCHEMA_VERSION,
    SCHEMA_VERSION_KEY,
    TX_KEY_PREFIX,
    DocumentCodec,
    tx_key,
)
from .connector import RedisConnector

__all__ = [
    "BatchedFetchEngine",
    "MempoolFetchResult",
    "DocumentCodec",
    "RedisConnector",
    "BLOCKS_KEY",
    "BLOCK_SUMMARIES_KEY",
    "SCHEMA_VERSION",
    "SCHEMA_VERSION_KEY",
    "TX_KEY_PREFIX",
    "tx_key",
]
